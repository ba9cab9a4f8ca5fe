"""
Warden - Logger Module
======================

Tree-style logging with dated log folders and error webhook alerts.

DESIGN:
    Moderation bookkeeping is mostly background work (sweeps, prunes,
    audit record edits), so every log line needs to be scannable without
    a debugger attached. Related values are grouped under one title using
    tree connectors, and errors are mirrored to a separate file.

    Key features:
    - Tree-style formatting for structured data
    - Timestamps in LOG_TIMEZONE (default UTC)
    - One folder per day, pruned after LOG_RETENTION_DAYS
    - Session run ID to tell restarts apart
    - Optional Discord webhook for detailed errors
"""

import asyncio
import os
import shutil
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import aiohttp


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("WARDEN_LOGS_DIR", "logs"))
LOG_RETENTION_DAYS = 7
DAY_FORMAT = "%Y-%m-%d"


def _resolve_timezone() -> ZoneInfo:
    try:
        return ZoneInfo(os.getenv("LOG_TIMEZONE", "UTC"))
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


LOG_TZ = _resolve_timezone()

Details = Optional[List[Tuple[str, str]]]


# =============================================================================
# Tree Logger
# =============================================================================

class TreeLogger:
    """
    Logger with tree-style formatting.

    Attributes:
        run_id: Unique identifier for this process session.
        log_file: Path to the main log file.
        error_file: Path to the error-only log file.
    """

    def __init__(self, logs_dir: Path = LOGS_DIR) -> None:
        self.run_id: str = uuid.uuid4().hex[:8]
        self._webhook_url: Optional[str] = None
        self._logs_dir = logs_dir

        day = datetime.now(LOG_TZ).strftime(DAY_FORMAT)
        self.log_dir = logs_dir / day
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / f"warden-{day}.log"
        self.error_file = self.log_dir / f"warden-errors-{day}.log"

        self._prune_log_dirs()
        self._append(self.log_file, f"\n{'=' * 60}\nRUN {self.run_id} STARTED {datetime.now(LOG_TZ):%Y-%m-%d %H:%M:%S %Z}\n{'=' * 60}")

    def set_webhook(self, url: Optional[str]) -> None:
        self._webhook_url = url

    # =========================================================================
    # Files
    # =========================================================================

    def _prune_log_dirs(self) -> None:
        """Delete day folders older than LOG_RETENTION_DAYS."""
        cutoff = datetime.now() - timedelta(days=LOG_RETENTION_DAYS)
        removed = []
        for item in self._logs_dir.iterdir():
            try:
                day = datetime.strptime(item.name, DAY_FORMAT)
            except ValueError:
                continue
            if item.is_dir() and day < cutoff:
                shutil.rmtree(item, ignore_errors=True)
                removed.append(item.name)

        if removed:
            print(f"[logs] pruned {len(removed)} day folder(s): {', '.join(sorted(removed))}")

    @staticmethod
    def _append(path: Path, text: str) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(text + "\n")

    # =========================================================================
    # Output
    # =========================================================================

    def _emit(self, line: str, emoji: str = "", stamp: bool = True, error: bool = False) -> None:
        """Print one line and append it to the day's log (and error log)."""
        parts = []
        if stamp:
            parts.append(datetime.now(LOG_TZ).strftime("[%H:%M:%S %Z]"))
        if emoji:
            parts.append(emoji)
        parts.append(line)
        text = " ".join(parts)

        print(text)
        self._append(self.log_file, text)
        if error:
            self._append(self.error_file, text)

    def _branches(self, items: Sequence[Tuple[str, str]], indent: str = "  ", error: bool = False) -> None:
        last = len(items) - 1
        for i, (key, value) in enumerate(items):
            self._emit(f"{indent}{'└─' if i == last else '├─'} {key}: {value}", stamp=False, error=error)

    def tree(self, title: str, items: Sequence[Tuple[str, str]], emoji: str = "📦") -> None:
        """
        Log a title with its key/value pairs as branches.

        Example output:
            [14:30:45 UTC] 🧹 Case Prune Complete
              ├─ Removed: 3
              └─ Older Than: 14 days
        """
        self._append(self.log_file, "")
        self._emit(title, emoji)
        self._branches(items)
        self._append(self.log_file, "")

    def tree_nested(
        self,
        title: str,
        sections: Sequence[Tuple[str, Sequence[Tuple[str, str]]]],
        emoji: str = "📦",
    ) -> None:
        """Log a two-level tree: named sections, each with its own branches."""
        self._append(self.log_file, "")
        self._emit(title, emoji)
        last = len(sections) - 1
        for i, (name, items) in enumerate(sections):
            self._emit(f"  {'└─' if i == last else '├─'} {name}", stamp=False)
            self._branches(items, indent="     " if i == last else "  │  ")
        self._append(self.log_file, "")

    # =========================================================================
    # Levels
    # =========================================================================

    def debug(self, msg: str, details: Details = None) -> None:
        """Only written when the DEBUG env var is set."""
        if not os.getenv("DEBUG"):
            return
        self._emit(msg, "🔍")
        if details:
            self._branches(details)

    def info(self, msg: str) -> None:
        self._emit(msg, "ℹ️")

    def success(self, msg: str) -> None:
        self._emit(msg, "✅")

    def warning(self, msg: str, details: Details = None) -> None:
        self._emit(msg, "⚠️")
        if details:
            self._branches(details)

    def error(self, msg: str, details: Details = None) -> None:
        """
        Log an error to both files.

        Errors that carry details are also posted to the error webhook
        when one is set and an event loop is running.
        """
        self._emit(msg, "❌", error=True)
        if not details:
            return
        self._branches(details, error=True)

        if self._webhook_url:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            loop.create_task(self._post_webhook(msg, details))

    def critical(self, msg: str) -> None:
        self._emit(msg, "🚨", error=True)

    # =========================================================================
    # Webhook
    # =========================================================================

    async def _post_webhook(self, title: str, details: Sequence[Tuple[str, str]]) -> None:
        url = self._webhook_url
        if not url:
            return

        payload = {
            "embeds": [{
                "title": f"❌ {title}"[:256],
                "description": "\n".join(f"**{k}:** {v}" for k, v in details)[:4000],
                "color": 0xDC3545,
                "timestamp": datetime.now(LOG_TZ).isoformat(),
                "footer": {"text": f"Warden run {self.run_id}"},
            }]
        }
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, json=payload, timeout=aiohttp.ClientTimeout(total=10)) as resp:
                    if resp.status >= 300:
                        print(f"[logs] error webhook returned HTTP {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"[logs] error webhook failed: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()


__all__ = ["logger", "TreeLogger", "LOG_TZ"]
