"""
Warden - Case Ledger
====================

Append-only store of moderation cases with sequential ID allocation.

DESIGN:
    File layout: {"<guild_id>": [CaseRecord, ...], ...}

    Records are never edited once written. The only ways a record leaves
    the ledger are an explicit remove by (guild, case ID, user) and the
    retention prune, which only touches punitive kinds.

    Case numbers are derived from the records still present. Once the
    prune has removed every numbered record of a prefix, numbering starts
    again at 1.
"""

import random
from typing import Any, Dict, Iterator, List, Optional

from warden.core.case_ids import (
    composite_case_id,
    format_case_id,
    get_case_prefix,
    is_punitive,
    next_case_number,
)
from warden.core.database.base import JsonStore, _as_float, _key, _same_id
from warden.core.database.models import CaseRecord
from warden.core.logger import logger


class CaseLedger(JsonStore):
    """Guild-scoped ledger of moderation cases."""

    name = "Case Ledger"

    def __init__(self, path, clock=None, rng: random.Random = None) -> None:
        super().__init__(path, clock)
        self._rng = rng

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _records(data: Dict[str, Any], guild_id) -> List[Dict[str, Any]]:
        records = data.get(_key(guild_id))
        if not isinstance(records, list):
            return []
        return [r for r in records if isinstance(r, dict)]

    @staticmethod
    def _all_records(data: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
        for records in data.values():
            if not isinstance(records, list):
                continue
            for record in records:
                if isinstance(record, dict):
                    yield record

    def _allocate(self, data: Dict[str, Any], guild_id, punishment_type) -> str:
        rule = get_case_prefix(punishment_type)
        if rule is None:
            return composite_case_id(guild_id, self.now(), self._rng)

        if rule.is_global:
            existing = (r.get("case_id") for r in self._all_records(data))
        else:
            existing = (r.get("case_id") for r in self._records(data, guild_id))

        return format_case_id(rule.prefix, next_case_number(existing, rule.prefix))

    # =========================================================================
    # Allocation & Append
    # =========================================================================

    def allocate_case_id(self, guild_id, punishment_type) -> str:
        """
        Return the ID the next case of this kind would receive.

        PNET numbers are counted across every guild, CASE numbers within
        one guild. Kinds without a counter get a composite ID.
        """
        return self._allocate(self._read(), guild_id, punishment_type)

    def add_case(self, guild_id, case_data: Dict[str, Any]) -> Optional[CaseRecord]:
        """
        Append a case, assigning its ID and timestamp.

        Allocation and append happen in one critical section so two
        concurrent appends can never receive the same number.

        Args:
            guild_id: Guild the case belongs to.
            case_data: Record fields. ``punishment_type`` is required;
                ``case_id``, ``guild_id`` and ``timestamp`` are overwritten.

        Returns:
            The stored record, or None if it could not be persisted.
        """
        punishment_type = case_data.get("punishment_type")
        if not punishment_type:
            logger.warning("Case Rejected", [
                ("Guild ID", str(guild_id)),
                ("Reason", "Missing punishment_type"),
            ])
            return None

        with self._transaction() as tx:
            case_id = self._allocate(tx.data, guild_id, punishment_type)
            record: CaseRecord = {
                **case_data,
                "punishment_type": str(getattr(punishment_type, "value", punishment_type)),
                "case_id": case_id,
                "guild_id": guild_id,
                "timestamp": self.now(),
            }

            bucket = tx.data.get(_key(guild_id))
            if not isinstance(bucket, list):
                bucket = []
                tx.data[_key(guild_id)] = bucket
            bucket.append(record)
            tx.dirty = True

        if not tx.saved:
            return None

        logger.tree("Case Recorded", [
            ("Case ID", case_id),
            ("Type", record["punishment_type"]),
            ("User ID", str(record.get("user_id"))),
            ("Guild ID", str(guild_id)),
        ], emoji="📁")
        return dict(record)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_case(self, guild_id, case_id: str) -> Optional[CaseRecord]:
        for record in self._records(self._read(), guild_id):
            if record.get("case_id") == case_id:
                return record
        return None

    def get_cases_by_user(self, guild_id, user_id) -> List[CaseRecord]:
        return [
            r for r in self._records(self._read(), guild_id)
            if _same_id(r.get("user_id"), user_id)
        ]

    def get_cases_by_type(self, guild_id, punishment_type) -> List[CaseRecord]:
        kind = str(getattr(punishment_type, "value", punishment_type))
        return [
            r for r in self._records(self._read(), guild_id)
            if r.get("punishment_type") == kind
        ]

    def find_latest_case(self, user_id, punishment_type) -> Optional[CaseRecord]:
        """
        Find the newest case of a kind for a user across every guild.

        Used to link a reversal (unblacklist, unban) to the case it undoes.
        """
        kind = str(getattr(punishment_type, "value", punishment_type))
        matches = [
            r for r in self._all_records(self._read())
            if r.get("punishment_type") == kind and _same_id(r.get("user_id"), user_id)
        ]
        if not matches:
            return None
        return max(matches, key=lambda r: _as_float(r.get("timestamp")))

    def count_cases(self) -> int:
        return sum(1 for _ in self._all_records(self._read()))

    # =========================================================================
    # Removal
    # =========================================================================

    def remove_case(self, guild_id, case_id: str, user_id) -> Optional[CaseRecord]:
        """
        Delete the first case matching both the case ID and the user.

        Returns:
            The removed record, or None if nothing matched or the write failed.
        """
        removed = None
        with self._transaction() as tx:
            bucket = tx.data.get(_key(guild_id))
            if isinstance(bucket, list):
                for index, record in enumerate(bucket):
                    if (
                        isinstance(record, dict)
                        and record.get("case_id") == case_id
                        and _same_id(record.get("user_id"), user_id)
                    ):
                        removed = bucket.pop(index)
                        tx.dirty = True
                        break

        if removed is None or not tx.saved:
            return None

        logger.tree("Case Removed", [
            ("Case ID", case_id),
            ("User ID", str(user_id)),
            ("Guild ID", str(guild_id)),
        ], emoji="🗑️")
        return removed

    def prune(self, max_age: float) -> int:
        """
        Delete punitive cases older than ``max_age`` seconds.

        Non-punitive kinds are kept forever. A punitive record with a
        missing or unreadable timestamp counts as infinitely old.

        Returns:
            Number of records removed (0 if the write failed).
        """
        cutoff = self.now() - max_age
        removed = 0

        with self._transaction() as tx:
            for guild_key, bucket in list(tx.data.items()):
                if not isinstance(bucket, list):
                    continue
                kept = []
                for record in bucket:
                    if (
                        isinstance(record, dict)
                        and is_punitive(record.get("punishment_type"))
                        and _as_float(record.get("timestamp")) <= cutoff
                    ):
                        removed += 1
                        continue
                    kept.append(record)
                tx.data[guild_key] = kept
            tx.dirty = removed > 0

        if removed and not tx.saved:
            return 0
        return removed


__all__ = ["CaseLedger"]
