"""
Warden - Database Module
========================

JSON-file stores for the case ledger, role backups and temp roles.

Each store is created lazily from the configured data directory and
shared for the life of the process.
"""

from pathlib import Path
from typing import Optional

from warden.core.database.base import JsonStore
from warden.core.database.cases import CaseLedger
from warden.core.database.models import CaseRecord, RoleBackupRecord, TempRoleRecord
from warden.core.database.role_backups import RoleBackupStore
from warden.core.database.temp_roles import TempRoleStore


CASE_DB_FILE = "case_database.json"
ROLE_BACKUP_FILE = "role_backups.json"
TEMP_ROLE_FILE = "temp_roles.json"


# =============================================================================
# Shared Instances
# =============================================================================

_case_ledger: Optional[CaseLedger] = None
_role_backups: Optional[RoleBackupStore] = None
_temp_roles: Optional[TempRoleStore] = None


def _data_dir() -> Path:
    from warden.core.config import get_config
    return get_config().data_dir


def get_case_ledger() -> CaseLedger:
    global _case_ledger
    if _case_ledger is None:
        _case_ledger = CaseLedger(_data_dir() / CASE_DB_FILE)
    return _case_ledger


def get_role_backups() -> RoleBackupStore:
    global _role_backups
    if _role_backups is None:
        _role_backups = RoleBackupStore(_data_dir() / ROLE_BACKUP_FILE)
    return _role_backups


def get_temp_roles() -> TempRoleStore:
    global _temp_roles
    if _temp_roles is None:
        _temp_roles = TempRoleStore(_data_dir() / TEMP_ROLE_FILE)
    return _temp_roles


__all__ = [
    "JsonStore",
    "CaseLedger",
    "RoleBackupStore",
    "TempRoleStore",
    "CaseRecord",
    "RoleBackupRecord",
    "TempRoleRecord",
    "get_case_ledger",
    "get_role_backups",
    "get_temp_roles",
    "CASE_DB_FILE",
    "ROLE_BACKUP_FILE",
    "TEMP_ROLE_FILE",
]
