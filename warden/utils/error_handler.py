"""
Warden - Error Handler
======================

Categorizes unexpected exceptions and logs them with a recovery hint.

Used at the outer edges of the process (entry point, cog setup) where an
exception would otherwise end the bot without context. Component code
handles its own expected failures and never reaches this module.
"""

import json
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import aiohttp
import discord

from warden.core.config import ConfigValidationError
from warden.core.logger import logger


ERROR_DIR = Path("logs/errors")


class ErrorHandler:
    """Error categorization and critical-error capture."""

    CATEGORIES = (
        ("config", (ConfigValidationError,)),
        ("discord", (discord.HTTPException, discord.LoginFailure)),
        ("network", (aiohttp.ClientError, ConnectionError, TimeoutError)),
        ("storage", (json.JSONDecodeError, OSError)),
    )

    SUGGESTIONS = {
        "config": "Check the .env file against the required variables",
        "discord": "Check the bot token and its permissions in each server",
        "network": "Network issue - check connectivity and retry",
        "storage": "Check the data directory exists and is writable",
        "general": "Unexpected error - check logs for details",
    }

    @classmethod
    def categorize_error(cls, e: Exception) -> str:
        for category, types in cls.CATEGORIES:
            if isinstance(e, types):
                return category
        return "general"

    @classmethod
    def get_context(cls, e: Exception, location: str, **kwargs) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now().isoformat(),
            "location": location,
            "error_type": type(e).__name__,
            "error_message": str(e),
            "traceback": "".join(traceback.format_exception(type(e), e, e.__traceback__)),
            "python_version": sys.version,
            "additional_context": kwargs,
        }

    @classmethod
    def handle(cls, e: Exception, location: str, critical: bool = False, **context) -> str:
        """
        Log an exception with its category and a recovery suggestion.

        Args:
            e: The exception.
            location: Where it was caught (e.g. "main.main").
            critical: Whether the process is about to stop.
            **context: Extra values stored with critical errors.

        Returns:
            The category name.
        """
        category = cls.categorize_error(e)
        suggestion = cls.SUGGESTIONS[category]
        details = [
            ("Location", location),
            ("Category", category.upper()),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:200]),
            ("Recovery", suggestion),
        ]

        if critical:
            logger.error("Critical Error", details)
            full_context = cls.get_context(e, location, **context)
            logger.info(f"Traceback:\n{full_context['traceback']}")
            cls._store_critical_error(full_context)
        else:
            logger.warning("Unhandled Error", details)

        return category

    @staticmethod
    def _store_critical_error(context: Dict[str, Any]) -> None:
        try:
            ERROR_DIR.mkdir(exist_ok=True, parents=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            error_file = ERROR_DIR / f"error_{timestamp}.json"
            with open(error_file, "w", encoding="utf-8") as f:
                json.dump(context, f, indent=2, default=str)
            logger.info(f"Critical error saved to {error_file}")
        except OSError as save_error:
            logger.warning(f"Failed to save error details: {save_error}")


__all__ = ["ErrorHandler"]
