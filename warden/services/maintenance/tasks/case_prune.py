"""
Warden - Case Prune Task
========================

Delete punitive cases older than the retention window.
"""

from typing import Any, Dict

from warden.core.config import get_config
from warden.core.constants import LOG_TRUNCATE_SHORT, SECONDS_PER_DAY
from warden.core.database import CaseLedger, get_case_ledger
from warden.core.logger import logger
from ..base import MaintenanceTask


class CasePruneTask(MaintenanceTask):
    """
    Prune the case ledger.

    Only punitive kinds are removed; unbans, unblacklists and info
    cases are kept forever.
    """

    name = "Case Prune"

    def __init__(self, bot, ledger: CaseLedger = None) -> None:
        super().__init__(bot)
        self.ledger = ledger or get_case_ledger()

    async def should_run(self) -> bool:
        return get_config().case_retention_days > 0

    async def run(self) -> Dict[str, Any]:
        retention_days = get_config().case_retention_days
        try:
            deleted = self.ledger.prune(retention_days * SECONDS_PER_DAY)
        except Exception as e:
            logger.error("Case Prune Failed", [
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return {"success": False, "error": str(e)[:LOG_TRUNCATE_SHORT]}

        if deleted:
            logger.tree("Old Cases Pruned", [
                ("Deleted", str(deleted)),
                ("Retention", f"{retention_days} days"),
                ("Remaining", str(self.ledger.count_cases())),
            ], emoji="🧹")

        return {"success": True, "deleted": deleted}


__all__ = ["CasePruneTask"]
