"""
Warden - Role Backup Sweep Task
===============================

Proactively remove expired role backups, including legacy entries.
"""

from typing import Any, Dict

from warden.core.constants import LOG_TRUNCATE_SHORT
from warden.core.database import RoleBackupStore, get_role_backups
from warden.core.logger import logger
from ..base import MaintenanceTask


class RoleBackupSweepTask(MaintenanceTask):
    """Expire backups nobody has read since they passed their TTL."""

    name = "Role Backup Sweep"

    def __init__(self, bot, store: RoleBackupStore = None) -> None:
        super().__init__(bot)
        self.store = store or get_role_backups()

    async def should_run(self) -> bool:
        return True

    async def run(self) -> Dict[str, Any]:
        try:
            cleaned = self.store.sweep_expired()
        except Exception as e:
            logger.error("Role Backup Sweep Failed", [
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return {"success": False, "error": str(e)[:LOG_TRUNCATE_SHORT]}

        if cleaned:
            logger.tree("Expired Role Backups Removed", [
                ("Removed", str(cleaned)),
                ("Remaining", str(len(self.store.list_backups()))),
            ], emoji="🧹")

        return {"success": True, "cleaned": cleaned}


__all__ = ["RoleBackupSweepTask"]
