"""
Warden - Maintenance Task Base Class
====================================

Base class for the periodic store maintenance tasks.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from warden.bot import WardenBot


class MaintenanceTask(ABC):
    """
    Abstract base class for maintenance tasks.

    Subclasses set ``name`` and implement should_run() and run().
    """

    name: str = "Unknown Task"

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

    @abstractmethod
    async def should_run(self) -> bool:
        """Return False to skip this task for the current run."""
        pass

    @abstractmethod
    async def run(self) -> Dict[str, Any]:
        """
        Execute the task.

        Returns:
            Dict with at least "success": bool plus any counts worth
            logging (e.g. "deleted": 5).
        """
        pass

    def format_result(self, result: Dict[str, Any]) -> str:
        """Short summary of a result for the run log (e.g. "3 deleted")."""
        if not result.get("success", False):
            return "failed"

        if result.get("deleted"):
            return f"{result['deleted']} deleted"
        if result.get("cleaned"):
            return f"{result['cleaned']} cleaned"
        return "clean"


__all__ = ["MaintenanceTask"]
