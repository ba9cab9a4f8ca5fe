"""
Warden - Core Package
=====================

Configuration, logging, constants and the JSON stores.

DESIGN:
    Core modules expose shared instances:
    - get_config() returns the same Config instance
    - get_case_ledger() / get_role_backups() / get_temp_roles() return
      the same store instances
    - logger is a global TreeLogger instance
"""

from .config import (
    Config,
    ConfigValidationError,
    EmbedColors,
    get_config,
    load_config,
    validate_and_log_config,
)
from .logger import logger


__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "get_config",
    "load_config",
    "validate_and_log_config",
    "logger",
]
