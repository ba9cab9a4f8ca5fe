"""
Warden - Store Record Types
===========================

TypedDict definitions for the records kept in the JSON stores.
"""

from typing import List, Optional, TypedDict


class CaseRecord(TypedDict, total=False):
    """One ledger entry. Never edited after it is written."""
    case_id: str
    guild_id: int
    user_id: int
    user_tag: str
    punishment_type: str
    moderator_id: int
    moderator_tag: str
    reason: str
    timestamp: float
    duration: Optional[int]
    expires_at: Optional[float]
    message_count: Optional[int]
    original_case_id: Optional[str]


class RoleBackupRecord(TypedDict, total=False):
    """Latest role snapshot for one member of one guild."""
    guild_id: int
    user_id: int
    roles: List[int]
    saved_at: float
    expires_at: float


class TempRoleRecord(TypedDict, total=False):
    """A time-boxed role grant awaiting expiry."""
    guild_id: int
    user_id: int
    role_id: int
    expires_at: float
    granted_at: float
    moderator_id: Optional[int]


__all__ = [
    "CaseRecord",
    "RoleBackupRecord",
    "TempRoleRecord",
]
