"""
Warden - Maintenance Service
============================

Runs the store maintenance tasks once at startup and then daily.

DESIGN:
    The case ledger prune and the role backup sweep are independent of
    command handling. They run right after the bot is ready (catching up
    on anything that aged out while the process was down) and then every
    MAINTENANCE_INTERVAL seconds. A failing task is logged and the rest
    still run.
"""

import asyncio
from typing import TYPE_CHECKING, List, Optional

from warden.core.constants import LOG_TRUNCATE_SHORT, MAINTENANCE_INTERVAL, MAINTENANCE_RETRY_DELAY
from warden.core.logger import logger
from warden.utils.async_utils import create_safe_task

from .base import MaintenanceTask
from .tasks import CasePruneTask, RoleBackupSweepTask

if TYPE_CHECKING:
    from warden.bot import WardenBot


class MaintenanceService:
    """
    Scheduler for the periodic maintenance tasks.

    Each task is modular; should_run() lets a task opt out of a run.
    """

    def __init__(self, bot: "WardenBot", tasks: Optional[List[MaintenanceTask]] = None) -> None:
        self.bot = bot
        self._running = False
        self._task: Optional[asyncio.Task] = None

        self._tasks: List[MaintenanceTask] = tasks if tasks is not None else [
            CasePruneTask(bot),
            RoleBackupSweepTask(bot),
        ]

        logger.tree("Maintenance Service Loaded", [
            ("Schedule", "On start, then every 24h"),
            ("Tasks", ", ".join(t.name for t in self._tasks)),
            ("Total", str(len(self._tasks))),
        ], emoji="🔧")

    def start(self) -> None:
        if self._running:
            return

        self._running = True
        self._task = create_safe_task(self._scheduler_loop(), "Maintenance Scheduler")
        logger.info("Maintenance Scheduler Started")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Maintenance Scheduler Stopped")

    async def _scheduler_loop(self) -> None:
        await self.bot.wait_until_ready()

        while self._running:
            try:
                await self.run_all_tasks()
                await asyncio.sleep(MAINTENANCE_INTERVAL)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Maintenance Scheduler Error", [
                    ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
                    ("Retry", "1 hour"),
                ])
                await asyncio.sleep(MAINTENANCE_RETRY_DELAY)

    async def run_all_tasks(self) -> List[str]:
        """
        Run every task once.

        Returns:
            One "Name (result)" summary per task that ran.
        """
        results = []

        for task in self._tasks:
            try:
                if not await task.should_run():
                    logger.debug("Task Skipped", [("Task", task.name), ("Reason", "Conditions not met")])
                    continue

                result = await task.run()
                results.append(f"{task.name} ({task.format_result(result)})")

            except Exception as e:
                logger.error("Maintenance Task Failed", [
                    ("Task", task.name),
                    ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
                ])
                results.append(f"{task.name} (error)")

        logger.tree("Maintenance Complete", [
            ("Tasks Run", str(len(results))),
            ("Results", ", ".join(results) if results else "None"),
        ], emoji="✅")
        return results


__all__ = ["MaintenanceService", "MaintenanceTask"]
