"""
Warden - Centralized Constants
==============================

All magic numbers and constants are defined here for maintainability.
Import from this module instead of hardcoding values.
"""

# =============================================================================
# Time Constants (in seconds)
# =============================================================================

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SECONDS_PER_WEEK = 604800

MS_PER_SECOND = 1000

# =============================================================================
# Retention Constants (in seconds)
# =============================================================================

ROLE_BACKUP_TTL = SECONDS_PER_DAY             # Backups expire 24h after save
CASE_RETENTION_DAYS = 14                      # Punitive cases kept for 14 days
CASE_RETENTION = CASE_RETENTION_DAYS * SECONDS_PER_DAY

# =============================================================================
# Interval Constants (in seconds)
# =============================================================================

TEMP_ROLE_CHECK_INTERVAL = 10                 # Sweep expired temp roles
MAINTENANCE_INTERVAL = SECONDS_PER_DAY        # Case prune + backup sweep
MAINTENANCE_RETRY_DELAY = SECONDS_PER_HOUR    # After a scheduler crash

# =============================================================================
# De-duplication Windows (in seconds)
# =============================================================================

BACKUP_LOG_DEDUP_WINDOW = 5.0                 # Same removal seen from ban + leave

# =============================================================================
# Case ID Allocation
# =============================================================================

CASE_NUMBER_DIGITS = 4                        # CASE-0001
CASE_NUMBER_LIMIT = 1000                      # Suffixes >= this are ignored
COMPOSITE_GUILD_FRAGMENT = 6                  # Trailing guild ID digits

# =============================================================================
# Audit Log Constants
# =============================================================================

AUDIT_LOG_FETCH_LIMIT = 100                   # Messages scanned per lookup
PROOF_THREAD_ARCHIVE_MINUTES = 10080          # 1 week

# =============================================================================
# Batch Constants
# =============================================================================

FANOUT_CONCURRENCY = 5                        # Guilds acted on at once
SWEEP_BATCH_SIZE = 25                         # Expired grants per gather
PROGRESS_UPDATE_EVERY = 10                    # Targets between progress edits

# =============================================================================
# Log Truncation
# =============================================================================

LOG_TRUNCATE_SHORT = 50
LOG_TRUNCATE_MEDIUM = 100
LOG_TRUNCATE_LONG = 200

# =============================================================================
# Embed Field Limits
# =============================================================================

EMBED_FIELD_VALUE_MAX = 1024
"""Discord caps embed field values at 1024 characters."""


__all__ = [
    "SECONDS_PER_MINUTE",
    "SECONDS_PER_HOUR",
    "SECONDS_PER_DAY",
    "SECONDS_PER_WEEK",
    "MS_PER_SECOND",
    "ROLE_BACKUP_TTL",
    "CASE_RETENTION_DAYS",
    "CASE_RETENTION",
    "TEMP_ROLE_CHECK_INTERVAL",
    "MAINTENANCE_INTERVAL",
    "MAINTENANCE_RETRY_DELAY",
    "BACKUP_LOG_DEDUP_WINDOW",
    "CASE_NUMBER_DIGITS",
    "CASE_NUMBER_LIMIT",
    "COMPOSITE_GUILD_FRAGMENT",
    "AUDIT_LOG_FETCH_LIMIT",
    "PROOF_THREAD_ARCHIVE_MINUTES",
    "FANOUT_CONCURRENCY",
    "SWEEP_BATCH_SIZE",
    "PROGRESS_UPDATE_EVERY",
    "LOG_TRUNCATE_SHORT",
    "LOG_TRUNCATE_MEDIUM",
    "LOG_TRUNCATE_LONG",
    "EMBED_FIELD_VALUE_MAX",
]
