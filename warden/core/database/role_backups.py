"""
Warden - Role Backup Store
==========================

Latest-wins role snapshot per (guild, member), valid for 24 hours.

DESIGN:
    File layout:
        {"<guild_id>": {"<user_id>": {"roles": [...], "saved_at": t, "expires_at": t}}}

    A save always replaces the previous snapshot, so a member who leaves
    and rejoins repeatedly can only ever be restored to their newest role
    set. Reading an expired snapshot deletes it.

    Two older entry shapes are still read:
    - {"backups": [{"roles", "saved_at", "expires_at"}, ...]}: collapsed to
      its newest backup on read and on the next save.
    - camelCase "savedAt"/"expiresAt" keys from hand-migrated files.
"""

from typing import Any, Dict, List, Optional

from warden.core.constants import ROLE_BACKUP_TTL
from warden.core.database.base import JsonStore, _as_float, _key
from warden.core.database.models import RoleBackupRecord
from warden.core.logger import logger


# =============================================================================
# Entry Normalization
# =============================================================================

def _normalize_entry(entry: Any) -> Optional[Dict[str, Any]]:
    """
    Reduce any supported entry shape to {"roles", "saved_at", "expires_at"}.

    Returns None for entries that hold no usable backup.
    """
    if not isinstance(entry, dict):
        return None

    if "backups" in entry and "roles" not in entry:
        backups = [b for b in entry.get("backups") or [] if isinstance(b, dict)]
        if not backups:
            return None
        entry = max(backups, key=lambda b: _as_float(b.get("saved_at", b.get("savedAt"))))

    roles = entry.get("roles")
    if not isinstance(roles, list):
        return None

    return {
        "roles": list(roles),
        "saved_at": _as_float(entry.get("saved_at", entry.get("savedAt"))),
        "expires_at": _as_float(entry.get("expires_at", entry.get("expiresAt"))),
    }


# =============================================================================
# Role Backup Store
# =============================================================================

class RoleBackupStore(JsonStore):
    """Single-slot, time-limited role snapshots."""

    name = "Role Backups"

    def __init__(self, path, clock=None, ttl: float = ROLE_BACKUP_TTL) -> None:
        super().__init__(path, clock)
        self.ttl = ttl

    def _is_expired(self, entry: Dict[str, Any]) -> bool:
        return self.now() > entry["expires_at"]

    # =========================================================================
    # Save
    # =========================================================================

    def save_roles(self, guild_id, user_id, role_ids: List[int]) -> bool:
        """
        Replace the member's backup with ``role_ids``.

        An empty list still replaces (and so clears) the previous backup.

        Returns:
            True if the backup was persisted.
        """
        now = self.now()
        with self._transaction() as tx:
            guild_entries = tx.data.get(_key(guild_id))
            if not isinstance(guild_entries, dict):
                guild_entries = {}
                tx.data[_key(guild_id)] = guild_entries

            guild_entries[_key(user_id)] = {
                "roles": [int(r) for r in role_ids],
                "saved_at": now,
                "expires_at": now + self.ttl,
            }
            tx.dirty = True

        if tx.saved:
            logger.debug("Role Backup Saved", [
                ("Guild ID", str(guild_id)),
                ("User ID", str(user_id)),
                ("Roles", str(len(role_ids))),
            ])
        return bool(tx.saved)

    # =========================================================================
    # Read (lazy expiry)
    # =========================================================================

    def get_backup(self, guild_id, user_id) -> Optional[RoleBackupRecord]:
        """
        Return the member's backup, or None if absent or expired.

        An expired or unusable entry is deleted as a side effect.
        """
        with self._transaction() as tx:
            guild_entries = tx.data.get(_key(guild_id))
            if not isinstance(guild_entries, dict) or _key(user_id) not in guild_entries:
                return None

            entry = _normalize_entry(guild_entries[_key(user_id)])
            if entry is None or self._is_expired(entry):
                del guild_entries[_key(user_id)]
                if not guild_entries:
                    del tx.data[_key(guild_id)]
                tx.dirty = True
                return None

        return {"guild_id": guild_id, "user_id": user_id, **entry}

    def get_roles(self, guild_id, user_id) -> Optional[List[int]]:
        """Return the backed-up role IDs, or None if absent or expired."""
        backup = self.get_backup(guild_id, user_id)
        return backup["roles"] if backup else None

    def delete_backup(self, guild_id, user_id) -> bool:
        """Remove a backup outright (e.g. after a full restore)."""
        with self._transaction() as tx:
            guild_entries = tx.data.get(_key(guild_id))
            if isinstance(guild_entries, dict) and _key(user_id) in guild_entries:
                del guild_entries[_key(user_id)]
                if not guild_entries:
                    del tx.data[_key(guild_id)]
                tx.dirty = True
        return bool(tx.saved)

    def list_backups(self, guild_id=None) -> List[RoleBackupRecord]:
        """
        List stored backups without expiring anything.

        Args:
            guild_id: Restrict to one guild, or None for all.
        """
        data = self._read()
        guild_keys = [_key(guild_id)] if guild_id is not None else list(data.keys())

        result: List[RoleBackupRecord] = []
        for guild_key in guild_keys:
            guild_entries = data.get(guild_key)
            if not isinstance(guild_entries, dict):
                continue
            for user_key, raw in guild_entries.items():
                entry = _normalize_entry(raw)
                if entry is not None:
                    result.append({"guild_id": guild_key, "user_id": user_key, **entry})
        return result

    # =========================================================================
    # Sweep
    # =========================================================================

    def sweep_expired(self) -> int:
        """
        Remove every expired or unusable backup and any emptied guild.

        Legacy multi-slot entries that are still valid are rewritten in
        the current single-slot shape.

        Returns:
            Number of member entries removed.
        """
        removed = 0
        with self._transaction() as tx:
            for guild_key in list(tx.data.keys()):
                guild_entries = tx.data[guild_key]
                if not isinstance(guild_entries, dict):
                    del tx.data[guild_key]
                    tx.dirty = True
                    continue

                for user_key in list(guild_entries.keys()):
                    raw = guild_entries[user_key]
                    entry = _normalize_entry(raw)
                    if entry is None or self._is_expired(entry):
                        del guild_entries[user_key]
                        removed += 1
                        tx.dirty = True
                    elif entry != raw:
                        guild_entries[user_key] = entry
                        tx.dirty = True

                if not guild_entries:
                    del tx.data[guild_key]
                    tx.dirty = True

        if removed:
            logger.tree("Role Backups Swept", [
                ("Removed", str(removed)),
                ("Saved", str(bool(tx.saved))),
            ], emoji="🧹")
        return removed


__all__ = ["RoleBackupStore"]
