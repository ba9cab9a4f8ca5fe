"""
Warden - Temp Role Store
========================

Tracking records for time-boxed role grants.

DESIGN:
    File layout:
        {"<guild_id>": {"<user_id>": {"<role_id>": {"expires_at", "granted_at", "moderator_id"}}}}

    One record per (guild, user, role); granting again replaces it. This
    store only tracks deadlines. Adding and removing the Discord role is
    the caller's job.

    remove() accepts the expires_at the caller last saw. The sweep uses it
    to claim a record only if nobody re-granted or revoked it in between.
"""

from typing import Any, Dict, List, Optional

from warden.core.database.base import JsonStore, _as_float, _key
from warden.core.database.models import TempRoleRecord


def _to_record(guild_key, user_key, role_key, raw: Dict[str, Any]) -> TempRoleRecord:
    return {
        "guild_id": int(guild_key),
        "user_id": int(user_key),
        "role_id": int(role_key),
        "expires_at": _as_float(raw.get("expires_at")),
        "granted_at": _as_float(raw.get("granted_at")),
        "moderator_id": raw.get("moderator_id"),
    }


class TempRoleStore(JsonStore):
    """Keyed store of temp role deadlines."""

    name = "Temp Roles"

    def _iter(self, data: Dict[str, Any]):
        for guild_key, users in data.items():
            if not isinstance(users, dict):
                continue
            for user_key, roles in users.items():
                if not isinstance(roles, dict):
                    continue
                for role_key, raw in roles.items():
                    if not isinstance(raw, dict):
                        continue
                    try:
                        yield _to_record(guild_key, user_key, role_key, raw)
                    except ValueError:
                        continue

    def upsert(self, guild_id, user_id, role_id, expires_at: float, moderator_id=None) -> Optional[TempRoleRecord]:
        """
        Create or replace the grant for (guild, user, role).

        Returns:
            The stored record, or None if it could not be persisted.
        """
        raw = {
            "expires_at": float(expires_at),
            "granted_at": self.now(),
            "moderator_id": moderator_id,
        }
        with self._transaction() as tx:
            users = tx.data.setdefault(_key(guild_id), {})
            roles = users.setdefault(_key(user_id), {})
            roles[_key(role_id)] = raw
            tx.dirty = True

        if not tx.saved:
            return None
        return _to_record(guild_id, user_id, role_id, raw)

    def get(self, guild_id, user_id, role_id) -> Optional[TempRoleRecord]:
        """Read one grant. Never mutates, even when expired."""
        raw = self._read()
        for key in (guild_id, user_id, role_id):
            raw = raw.get(_key(key)) if isinstance(raw, dict) else None
        if not isinstance(raw, dict):
            return None
        return _to_record(guild_id, user_id, role_id, raw)

    def remove(self, guild_id, user_id, role_id, expected_expires_at: Optional[float] = None) -> Optional[TempRoleRecord]:
        """
        Delete a grant.

        Args:
            expected_expires_at: If given, only delete when the stored
                deadline still matches (the record was not replaced).

        Returns:
            The removed record, or None if it was absent, replaced, or the
            write failed.
        """
        removed = None
        with self._transaction() as tx:
            users = tx.data.get(_key(guild_id))
            roles = users.get(_key(user_id)) if isinstance(users, dict) else None
            raw = roles.get(_key(role_id)) if isinstance(roles, dict) else None

            if isinstance(raw, dict):
                unchanged = (
                    expected_expires_at is None
                    or _as_float(raw.get("expires_at")) == float(expected_expires_at)
                )
                if unchanged:
                    removed = _to_record(guild_id, user_id, role_id, roles.pop(_key(role_id)))
                    if not roles:
                        del users[_key(user_id)]
                    if not users:
                        del tx.data[_key(guild_id)]
                    tx.dirty = True

        if removed is None or not tx.saved:
            return None
        return removed

    def get_expired(self, now: Optional[float] = None) -> List[TempRoleRecord]:
        """Snapshot every grant whose deadline has passed."""
        now = self.now() if now is None else now
        return [r for r in self._iter(self._read()) if r["expires_at"] <= now]

    def list_grants(self, guild_id=None) -> List[TempRoleRecord]:
        records = list(self._iter(self._read()))
        if guild_id is None:
            return records
        return [r for r in records if r["guild_id"] == int(guild_id)]


__all__ = ["TempRoleStore"]
