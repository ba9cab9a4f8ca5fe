"""
Warden - JSON Store Base
========================

File-backed store with a load-mutate-persist critical section.

DESIGN:
    Each store is one human-readable JSON file, keyed by guild ID at the
    top level, that operators can open and hand-edit for recovery. Every
    public store method runs its whole read-modify-write under the store's
    own lock, so the temp-role sweep, the daily prune and command handlers
    never interleave writes to the same file. Stores never share a lock.

    Failure semantics:
    - Missing file: treated as empty.
    - Unreadable or corrupt file: logged, the corrupt copy is set aside,
      and the store behaves as empty.
    - Write failure: logged, the mutation reports False/None to its caller.
"""

import json
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

from warden.core.logger import logger


Clock = Callable[[], float]


# =============================================================================
# Helper Functions
# =============================================================================

def _key(value: Any) -> str:
    """JSON object keys are strings; IDs arrive as int or str."""
    return str(value)


def _same_id(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# =============================================================================
# JSON Store
# =============================================================================

class JsonStore:
    """
    Base class for the three record stores.

    Attributes:
        path: Location of the JSON file.
        name: Display name used in log lines.
    """

    name: str = "Store"

    def __init__(self, path: Path, clock: Optional[Clock] = None) -> None:
        self.path = Path(path)
        self._clock = clock or time.time
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    # =========================================================================
    # Load / Save
    # =========================================================================

    def _load(self) -> Dict[str, Any]:
        """Read the whole file. Never raises."""
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"{self.name} File Corrupt", [
                ("Path", str(self.path)),
                ("Error", str(e)[:100]),
            ])
            self._set_aside_corrupt()
            return {}
        except OSError as e:
            logger.error(f"{self.name} Load Failed", [
                ("Path", str(self.path)),
                ("Error", str(e)[:100]),
            ])
            return {}

        if not isinstance(data, dict):
            logger.warning(f"{self.name} Root Not An Object", [
                ("Path", str(self.path)),
                ("Type", type(data).__name__),
            ])
            return {}

        return data

    def _save(self, data: Dict[str, Any]) -> bool:
        """Write the whole file atomically. Returns False on failure."""
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"{self.name} Save Failed", [
                ("Path", str(self.path)),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            return False

    def _set_aside_corrupt(self) -> None:
        """Keep the unreadable file so the next save cannot destroy it."""
        backup = self.path.with_name(f"{self.path.name}.corrupt-{int(self.now())}")
        try:
            os.replace(self.path, backup)
            logger.warning(f"{self.name} Corrupt File Moved", [
                ("Backup", str(backup)),
            ])
        except OSError as e:
            logger.error(f"{self.name} Corrupt File Not Moved", [
                ("Error", str(e)[:100]),
            ])

    # =========================================================================
    # Critical Sections
    # =========================================================================

    def _read(self) -> Dict[str, Any]:
        with self._lock:
            return self._load()

    @contextmanager
    def _transaction(self) -> Iterator["_Transaction"]:
        """
        Load, hand the data to the caller, and persist if it was marked dirty.

        Usage:
            with self._transaction() as tx:
                tx.data["123"] = [...]
                tx.dirty = True
            if not tx.saved: ...
        """
        with self._lock:
            tx = _Transaction(self._load())
            yield tx
            if tx.dirty:
                tx.saved = self._save(tx.data)


class _Transaction:
    """Mutable view over one loaded file."""

    __slots__ = ("data", "dirty", "saved")

    def __init__(self, data: Dict[str, Any]) -> None:
        self.data = data
        self.dirty = False
        self.saved: Optional[bool] = None


__all__ = [
    "JsonStore",
    "Clock",
    "_key",
    "_same_id",
    "_as_float",
]
