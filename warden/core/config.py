"""
Warden - Configuration Module
=============================

Centralized configuration management with environment variable validation.

DESIGN:
    Everything the moderation core needs from its host (log channels,
    role IDs, permission classes, tunables) is read from the environment
    once at startup into a dataclass. Only the token and developer ID are
    required; every channel and role is optional and the features that
    depend on them degrade to "skipped" when unset.

    Key patterns:
    - Singleton pattern via get_config() ensures one Config instance
    - Validation happens once at load time, not on every access
    - Permission helpers centralize authorization logic
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Set

from warden.core.constants import (
    AUDIT_LOG_FETCH_LIMIT,
    CASE_RETENTION_DAYS,
    FANOUT_CONCURRENCY,
    TEMP_ROLE_CHECK_INTERVAL,
)


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Bot configuration loaded from environment variables.

    Attributes:
        discord_token: Discord bot authentication token.
        developer_id: User ID of the bot developer (passes every check).
        global_ban_log_channel_id: Channel for global ban workflow records.
        blacklist_log_channel_id: Channel for blacklist workflow records.
        blacklist_role_id: Role applied to blacklisted members.
        verified_role_id: Role given back when a blacklist is lifted.
        ownership_role_ids: Roles allowed to override escalations.
    """

    # -------------------------------------------------------------------------
    # Required: Discord
    # -------------------------------------------------------------------------

    discord_token: str
    developer_id: int

    # -------------------------------------------------------------------------
    # Optional: Log Channels
    # -------------------------------------------------------------------------

    global_ban_log_channel_id: Optional[int] = None
    global_unban_log_channel_id: Optional[int] = None
    blacklist_log_channel_id: Optional[int] = None
    unblacklist_log_channel_id: Optional[int] = None
    role_backup_log_channel_id: Optional[int] = None
    temp_role_log_channel_id: Optional[int] = None

    # -------------------------------------------------------------------------
    # Optional: Roles
    # -------------------------------------------------------------------------

    blacklist_role_id: Optional[int] = None
    verified_role_id: Optional[int] = None

    # -------------------------------------------------------------------------
    # Optional: Permission Classes (role IDs)
    # -------------------------------------------------------------------------

    ownership_role_ids: Set[int] = field(default_factory=set)
    approver_role_ids: Set[int] = field(default_factory=set)
    global_ban_role_ids: Set[int] = field(default_factory=set)
    blacklist_role_ids: Set[int] = field(default_factory=set)

    # -------------------------------------------------------------------------
    # Optional: Tunables
    # -------------------------------------------------------------------------

    temp_role_check_interval: int = TEMP_ROLE_CHECK_INTERVAL
    case_retention_days: int = CASE_RETENTION_DAYS
    audit_log_fetch_limit: int = AUDIT_LOG_FETCH_LIMIT
    fanout_concurrency: int = FANOUT_CONCURRENCY
    send_dms: bool = True

    # -------------------------------------------------------------------------
    # Optional: Storage & Webhooks
    # -------------------------------------------------------------------------

    data_dir: Path = Path("data")
    error_webhook_url: Optional[str] = None

    def __post_init__(self) -> None:
        # Unban/unblacklist records share their punishment's channel unless split
        if self.global_unban_log_channel_id is None:
            self.global_unban_log_channel_id = self.global_ban_log_channel_id
        if self.unblacklist_log_channel_id is None:
            self.unblacklist_log_channel_id = self.blacklist_log_channel_id


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Color palette for workflow records and log embeds."""

    RED = 0xDC3545
    GREEN = 0x1F5E2E
    GOLD = 0xE6B84A
    ORANGE = 0xFF9800
    BLACK = 0x000000
    TEAL = 0x00CED1
    BLUE = 0x3498DB

    GLOBAL_BAN = RED
    GLOBAL_UNBAN = GREEN
    BLACKLIST = BLACK
    UNBLACKLIST = TEAL
    APPROVED = GREEN
    DENIED = ORANGE
    BACKUP = BLUE
    TEMP_ROLE = GOLD


# =============================================================================
# Parsing
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else None


def _env_id(name: str) -> Optional[int]:
    """Optional snowflake; junk is treated as unset."""
    value = _env(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _env_id_set(name: str) -> Set[int]:
    """Comma separated snowflakes. Invalid entries are skipped."""
    result = set()
    for part in (_env(name) or "").split(","):
        part = part.strip()
        if part.isdigit():
            result.add(int(part))
    return result


def _env_clamped(name: str, default: int, min_val: int, max_val: int) -> int:
    """
    Optional integer tunable.

    Unparseable values fall back to ``default`` and out-of-range values
    are clamped, with a warning either way.
    """
    value = _env(name)
    if value is None:
        return default

    from warden.core.logger import logger

    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default

    clamped = max(min_val, min(max_val, parsed))
    if clamped != parsed:
        logger.warning(f"Config {name}={parsed} out of range, using {clamped}")
    return clamped


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


def _env_url(name: str) -> Optional[str]:
    value = _env(name)
    if value and not value.startswith(("https://", "http://")):
        from warden.core.logger import logger
        logger.warning(f"Config {name} is not an http(s) URL, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Raises:
        ConfigValidationError: If any required variable is missing or invalid.
    """
    missing = [name for name in ("DISCORD_TOKEN", "DEVELOPER_ID") if _env(name) is None]
    if missing:
        raise ConfigValidationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    try:
        developer_id = int(_env("DEVELOPER_ID"))
    except ValueError:
        raise ConfigValidationError(f"Invalid integer for DEVELOPER_ID: {_env('DEVELOPER_ID')}")

    return Config(
        discord_token=_env("DISCORD_TOKEN"),
        developer_id=developer_id,
        global_ban_log_channel_id=_env_id("GLOBAL_BAN_LOG_CHANNEL_ID"),
        global_unban_log_channel_id=_env_id("GLOBAL_UNBAN_LOG_CHANNEL_ID"),
        blacklist_log_channel_id=_env_id("BLACKLIST_LOG_CHANNEL_ID"),
        unblacklist_log_channel_id=_env_id("UNBLACKLIST_LOG_CHANNEL_ID"),
        role_backup_log_channel_id=_env_id("ROLE_BACKUP_LOG_CHANNEL_ID"),
        temp_role_log_channel_id=_env_id("TEMP_ROLE_LOG_CHANNEL_ID"),
        blacklist_role_id=_env_id("BLACKLIST_ROLE_ID"),
        verified_role_id=_env_id("VERIFIED_ROLE_ID"),
        ownership_role_ids=_env_id_set("OWNERSHIP_ROLE_IDS"),
        approver_role_ids=_env_id_set("APPROVER_ROLE_IDS"),
        global_ban_role_ids=_env_id_set("GLOBAL_BAN_ROLE_IDS"),
        blacklist_role_ids=_env_id_set("BLACKLIST_ROLE_IDS"),
        temp_role_check_interval=_env_clamped("TEMP_ROLE_CHECK_INTERVAL", TEMP_ROLE_CHECK_INTERVAL, 1, 300),
        case_retention_days=_env_clamped("CASE_RETENTION_DAYS", CASE_RETENTION_DAYS, 1, 3650),
        audit_log_fetch_limit=_env_clamped("AUDIT_LOG_FETCH_LIMIT", AUDIT_LOG_FETCH_LIMIT, 1, 100),
        fanout_concurrency=_env_clamped("FANOUT_CONCURRENCY", FANOUT_CONCURRENCY, 1, 50),
        send_dms=_env_bool("SEND_DMS", True),
        data_dir=Path(_env("DATA_DIR") or "data"),
        error_webhook_url=_env_url("ERROR_WEBHOOK_URL"),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading if needed.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> None:
    """
    Validate configuration and log a startup summary.

    Raises:
        ConfigValidationError: If required configuration is missing.
    """
    from warden.core.logger import logger

    config = get_config()

    channels = [
        ("GLOBAL_BAN_LOG_CHANNEL_ID", config.global_ban_log_channel_id),
        ("BLACKLIST_LOG_CHANNEL_ID", config.blacklist_log_channel_id),
        ("ROLE_BACKUP_LOG_CHANNEL_ID", config.role_backup_log_channel_id),
        ("TEMP_ROLE_LOG_CHANNEL_ID", config.temp_role_log_channel_id),
    ]
    for name, value in channels:
        if not value:
            logger.info(f"Optional config not set: {name}")

    logger.tree("Configuration Validated", [
        ("Required", "✅ All required variables set"),
        ("Data Dir", str(config.data_dir)),
        ("Blacklist Role", str(config.blacklist_role_id or "Not set")),
        ("Ownership Roles", str(len(config.ownership_role_ids))),
        ("Approver Roles", str(len(config.approver_role_ids))),
        ("Temp Role Sweep", f"{config.temp_role_check_interval}s"),
        ("Case Retention", f"{config.case_retention_days} days"),
    ], emoji="⚙️")


# =============================================================================
# Permission Helpers
# =============================================================================

def is_developer(user_id: int) -> bool:
    """Check if user is the bot developer."""
    return user_id == get_config().developer_id


def _has_any_role(member, role_ids: Set[int]) -> bool:
    if member is None:
        return False
    if is_developer(member.id):
        return True
    if not role_ids:
        return False
    return any(role.id in role_ids for role in getattr(member, "roles", None) or [])


def is_owner(member) -> bool:
    """Check if a member holds an ownership role."""
    return _has_any_role(member, get_config().ownership_role_ids)


def can_approve(member) -> bool:
    """
    Check if a member may approve, deny or remind on workflow records.

    Ownership implies approver.
    """
    config = get_config()
    return _has_any_role(member, config.approver_role_ids | config.ownership_role_ids)


def can_global_ban(member) -> bool:
    """Check if a member may run global bans and escalate their records."""
    config = get_config()
    return _has_any_role(member, config.global_ban_role_ids | config.ownership_role_ids)


def can_blacklist(member) -> bool:
    """Check if a member may blacklist and escalate blacklist records."""
    config = get_config()
    return _has_any_role(member, config.blacklist_role_ids | config.ownership_role_ids)


__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "get_config",
    "load_config",
    "validate_and_log_config",
    "is_developer",
    "is_owner",
    "can_approve",
    "can_global_ban",
    "can_blacklist",
]
