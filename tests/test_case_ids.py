"""
Tests for warden/core/case_ids.py

Covers case ID parsing, the next-number rule and composite IDs.
"""

import random
import re

import pytest

from warden.core.case_ids import (
    PunishmentType,
    composite_case_id,
    format_case_id,
    get_case_prefix,
    is_punitive,
    next_case_number,
    parse_case_number,
)


# =============================================================================
# parse_case_number() Tests
# =============================================================================

class TestParseCaseNumber:
    """Tests for parse_case_number function."""

    def test_exact_format(self):
        assert parse_case_number("CASE-0042", "CASE") == 42
        assert parse_case_number("PNET-0001", "PNET") == 1

    def test_wrong_prefix(self):
        assert parse_case_number("PNET-0001", "CASE") is None

    def test_composite_id_is_not_a_number(self):
        assert parse_case_number("CASE-123456-1700000000000-0042", "CASE") is None

    @pytest.mark.parametrize("case_id", ["CASE-42", "CASE-00042", "CASE-00a1", "CASE-", "case-0001"])
    def test_malformed(self, case_id):
        assert parse_case_number(case_id, "CASE") is None

    def test_non_string(self):
        assert parse_case_number(None, "CASE") is None
        assert parse_case_number(42, "CASE") is None


# =============================================================================
# next_case_number() Tests
# =============================================================================

class TestNextCaseNumber:
    """Tests for next_case_number function."""

    def test_empty_starts_at_one(self):
        assert next_case_number([], "CASE") == 1

    def test_max_plus_one(self):
        assert next_case_number(["CASE-0001", "CASE-0007", "CASE-0003"], "CASE") == 8

    def test_legacy_large_numbers_ignored(self):
        """Suffixes of 1000 and above come from an older scheme."""
        assert next_case_number(["CASE-0005", "CASE-1500", "CASE-9999"], "CASE") == 6

    def test_only_legacy_numbers(self):
        assert next_case_number(["CASE-1000"], "CASE") == 1

    def test_zero_ignored(self):
        assert next_case_number(["CASE-0000"], "CASE") == 1

    def test_other_prefix_ignored(self):
        assert next_case_number(["PNET-0009", "CASE-0002"], "CASE") == 3


# =============================================================================
# Formatting Tests
# =============================================================================

class TestFormatting:
    """Tests for format_case_id and composite_case_id."""

    def test_format_pads_to_four(self):
        assert format_case_id("CASE", 7) == "CASE-0007"
        assert format_case_id("PNET", 123) == "PNET-0123"

    def test_composite_shape(self):
        case_id = composite_case_id(987654321012345678, 1_700_000_000.5, random.Random(1))
        assert re.fullmatch(r"CASE-345678-1700000000500-\d{4}", case_id)

    def test_composite_short_guild_id(self):
        case_id = composite_case_id(42, 1.0, random.Random(1))
        assert case_id.startswith("CASE-42-1000-")


# =============================================================================
# Kind Table Tests
# =============================================================================

class TestKinds:
    """Tests for the prefix table and punitive set."""

    def test_global_kinds_share_pnet(self):
        assert get_case_prefix(PunishmentType.GLOBAL_BAN).prefix == "PNET"
        assert get_case_prefix("global_unban").is_global

    def test_blacklist_kinds_are_per_guild(self):
        rule = get_case_prefix(PunishmentType.UNBLACKLIST)
        assert rule.prefix == "CASE"
        assert not rule.is_global

    def test_unnumbered_kind(self):
        assert get_case_prefix(PunishmentType.WARNING) is None

    def test_punitive(self):
        assert is_punitive(PunishmentType.BLACKLIST)
        assert is_punitive("global_ban")
        assert not is_punitive(PunishmentType.UNBLACKLIST)
        assert not is_punitive(PunishmentType.GLOBAL_UNBAN)
        assert not is_punitive("info")
        assert not is_punitive(None)
