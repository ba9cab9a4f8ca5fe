"""
Warden - Case ID Rules
======================

Punishment kinds, their case-ID prefixes, and the numeric parse used by
sequential allocation.

DESIGN:
    Every rule about what a case ID looks like lives in this module so
    the storage layer never has to know about prefixes or digit counts.

    Sequential kinds:
        global_ban, global_unban   -> PNET-dddd, numbered across all guilds
        blacklist, unblacklist     -> CASE-dddd, numbered per guild

    Every other kind gets a composite ID:
        CASE-<last 6 guild digits>-<ms timestamp>-<4 random digits>

    Only suffixes in 1..999 count toward the next number. Larger values
    come from an older ID scheme and are ignored.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional

from warden.core.constants import (
    CASE_NUMBER_DIGITS,
    CASE_NUMBER_LIMIT,
    COMPOSITE_GUILD_FRAGMENT,
    MS_PER_SECOND,
)


# =============================================================================
# Punishment Kinds
# =============================================================================

class PunishmentType(str, Enum):
    """Kinds of case recorded in the ledger."""

    WARNING = "warning"
    TIMEOUT = "timeout"
    BLACKLIST = "blacklist"
    UNBLACKLIST = "unblacklist"
    GLOBAL_BAN = "global_ban"
    GLOBAL_UNBAN = "global_unban"
    GLOBAL_TIMEOUT = "global_timeout"
    GLOBAL_ROLESTRIPE = "global_rolestripe"
    GLOBAL_UNROLESTRIPE = "global_unrolestripe"
    PURGE = "purge"
    INFO = "info"


PUNITIVE_TYPES: FrozenSet[str] = frozenset({
    PunishmentType.WARNING.value,
    PunishmentType.TIMEOUT.value,
    PunishmentType.BLACKLIST.value,
    PunishmentType.GLOBAL_BAN.value,
    PunishmentType.GLOBAL_ROLESTRIPE.value,
    PunishmentType.PURGE.value,
})
"""Kinds removed by the retention prune. Everything else is kept."""


# =============================================================================
# Prefix Table
# =============================================================================

@dataclass(frozen=True)
class CasePrefix:
    """How one sequential kind is numbered."""

    prefix: str
    is_global: bool


CASE_PREFIXES: Dict[str, CasePrefix] = {
    PunishmentType.GLOBAL_BAN.value: CasePrefix("PNET", is_global=True),
    PunishmentType.GLOBAL_UNBAN.value: CasePrefix("PNET", is_global=True),
    PunishmentType.BLACKLIST.value: CasePrefix("CASE", is_global=False),
    PunishmentType.UNBLACKLIST.value: CasePrefix("CASE", is_global=False),
}

COMPOSITE_PREFIX = "CASE"


def _kind_value(punishment_type) -> str:
    if isinstance(punishment_type, PunishmentType):
        return punishment_type.value
    return str(punishment_type)


def get_case_prefix(punishment_type) -> Optional[CasePrefix]:
    """Return the sequential numbering rule for a kind, or None if it has none."""
    return CASE_PREFIXES.get(_kind_value(punishment_type))


def is_punitive(punishment_type) -> bool:
    return _kind_value(punishment_type) in PUNITIVE_TYPES


# =============================================================================
# Parsing & Formatting
# =============================================================================

_ASCII_DIGITS = frozenset("0123456789")


def parse_case_number(case_id, prefix: str) -> Optional[int]:
    """
    Parse the number out of an exact ``<prefix>-dddd`` case ID.

    Anything else (other prefixes, composite IDs, wrong digit count,
    non-string values) returns None.

    Examples:
        >>> parse_case_number("CASE-0042", "CASE")
        42
        >>> parse_case_number("CASE-123456-1700000000000-0042", "CASE")
        None
        >>> parse_case_number("PNET-0001", "CASE")
        None
    """
    if not isinstance(case_id, str):
        return None

    head = f"{prefix}-"
    if not case_id.startswith(head):
        return None

    digits = case_id[len(head):]
    if len(digits) != CASE_NUMBER_DIGITS or not set(digits) <= _ASCII_DIGITS:
        return None

    return int(digits)


def next_case_number(case_ids: Iterable, prefix: str) -> int:
    """
    Compute the next sequential number for a prefix.

    Takes the highest parsed number in 1..CASE_NUMBER_LIMIT-1 and adds one.
    Returns 1 when nothing qualifies.
    """
    highest = 0
    for case_id in case_ids:
        number = parse_case_number(case_id, prefix)
        if number is None:
            continue
        if 0 < number < CASE_NUMBER_LIMIT and number > highest:
            highest = number
    return highest + 1


def format_case_id(prefix: str, number: int) -> str:
    """Format a sequential case ID, e.g. ``CASE-0007``."""
    return f"{prefix}-{number:0{CASE_NUMBER_DIGITS}d}"


def composite_case_id(guild_id, now: float, rng: random.Random = None) -> str:
    """
    Build a non-sequential case ID for kinds without a counter.

    Args:
        guild_id: Guild the case belongs to.
        now: Current time in seconds.
        rng: Optional random source (tests pass a seeded one).
    """
    rng = rng or random
    guild_fragment = str(guild_id)[-COMPOSITE_GUILD_FRAGMENT:]
    millis = int(now * MS_PER_SECOND)
    suffix = f"{rng.randrange(10000):04d}"
    return f"{COMPOSITE_PREFIX}-{guild_fragment}-{millis}-{suffix}"


__all__ = [
    "PunishmentType",
    "PUNITIVE_TYPES",
    "CasePrefix",
    "CASE_PREFIXES",
    "COMPOSITE_PREFIX",
    "get_case_prefix",
    "is_punitive",
    "parse_case_number",
    "next_case_number",
    "format_case_id",
    "composite_case_id",
]
