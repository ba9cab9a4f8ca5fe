"""
Warden - Maintenance Tasks Package
==================================

Individual maintenance task implementations.
"""

from .case_prune import CasePruneTask
from .role_backup_sweep import RoleBackupSweepTask

__all__ = [
    "CasePruneTask",
    "RoleBackupSweepTask",
]
