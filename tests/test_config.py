"""
Tests for warden/core/config.py

Covers environment loading and the permission helpers.
"""

from pathlib import Path

import pytest

from conftest import FakeMember, FakeRole
from warden.core.config import (
    ConfigValidationError,
    can_approve,
    can_blacklist,
    can_global_ban,
    is_developer,
    is_owner,
    load_config,
)


# =============================================================================
# load_config() Tests
# =============================================================================

class TestLoadConfig:
    """Tests for load_config function."""

    @pytest.fixture
    def env(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "abc")
        monkeypatch.setenv("DEVELOPER_ID", "42")
        for name in (
            "OWNERSHIP_ROLE_IDS", "TEMP_ROLE_CHECK_INTERVAL", "SEND_DMS",
            "ERROR_WEBHOOK_URL", "BLACKLIST_ROLE_ID", "DATA_DIR",
            "GLOBAL_BAN_LOG_CHANNEL_ID", "GLOBAL_UNBAN_LOG_CHANNEL_ID",
            "BLACKLIST_LOG_CHANNEL_ID", "UNBLACKLIST_LOG_CHANNEL_ID",
        ):
            monkeypatch.delenv(name, raising=False)
        return monkeypatch

    def test_minimal(self, env):
        config = load_config()
        assert config.discord_token == "abc"
        assert config.developer_id == 42
        assert config.temp_role_check_interval == 10
        assert config.case_retention_days == 14
        assert config.send_dms is True
        assert config.data_dir == Path("data")
        assert config.global_ban_log_channel_id is None

    def test_missing_token(self, env):
        env.delenv("DISCORD_TOKEN")
        with pytest.raises(ConfigValidationError, match="DISCORD_TOKEN"):
            load_config()

    def test_bad_developer_id(self, env):
        env.setenv("DEVELOPER_ID", "not-a-number")
        with pytest.raises(ConfigValidationError):
            load_config()

    def test_role_sets_skip_junk(self, env):
        env.setenv("OWNERSHIP_ROLE_IDS", "10, 11,,abc,12")
        assert load_config().ownership_role_ids == {10, 11, 12}

    def test_interval_is_clamped(self, env):
        env.setenv("TEMP_ROLE_CHECK_INTERVAL", "0")
        assert load_config().temp_role_check_interval == 1
        env.setenv("TEMP_ROLE_CHECK_INTERVAL", "9999")
        assert load_config().temp_role_check_interval == 300
        env.setenv("TEMP_ROLE_CHECK_INTERVAL", "soon")
        assert load_config().temp_role_check_interval == 10

    def test_bool_and_url(self, env):
        env.setenv("SEND_DMS", "no")
        env.setenv("ERROR_WEBHOOK_URL", "ftp://example.com")
        config = load_config()
        assert config.send_dms is False
        assert config.error_webhook_url is None

    def test_lift_channels_fall_back(self, env):
        env.setenv("GLOBAL_BAN_LOG_CHANNEL_ID", "100")
        env.setenv("BLACKLIST_LOG_CHANNEL_ID", "200")
        env.setenv("UNBLACKLIST_LOG_CHANNEL_ID", "300")
        config = load_config()
        assert config.global_unban_log_channel_id == 100
        assert config.unblacklist_log_channel_id == 300

    def test_bad_optional_id_is_ignored(self, env):
        env.setenv("BLACKLIST_ROLE_ID", "abc")
        assert load_config().blacklist_role_id is None


# =============================================================================
# Permission Tests
# =============================================================================

class TestPermissions:
    """Tests for the role-class helpers."""

    def test_developer_passes_everything(self, test_config):
        dev = FakeMember(1, "dev", roles=[])
        assert is_developer(dev.id)
        assert is_owner(dev)
        assert can_approve(dev)
        assert can_global_ban(dev)
        assert can_blacklist(dev)

    def test_owner_implies_every_class(self, owner):
        assert is_owner(owner)
        assert can_approve(owner)
        assert can_global_ban(owner)
        assert can_blacklist(owner)

    def test_approver(self, approver):
        assert can_approve(approver)
        assert not is_owner(approver)
        assert not can_global_ban(approver)

    def test_staff(self, staff):
        assert can_global_ban(staff)
        assert can_blacklist(staff)
        assert not can_approve(staff)

    def test_outsider(self, outsider):
        assert not any(check(outsider) for check in (is_owner, can_approve, can_global_ban, can_blacklist))

    def test_user_without_roles(self, test_config):
        user = FakeMember(99, "dm user")
        del user.roles
        assert not can_approve(user)
        assert not can_approve(None)

    def test_unconfigured_class_denies(self, test_config):
        test_config.approver_role_ids = set()
        test_config.ownership_role_ids = set()
        member = FakeMember(99, "m", roles=[FakeRole(11)])
        assert not can_approve(member)
