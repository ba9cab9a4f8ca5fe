"""
Tests for warden/core/moderation_validation.py

Covers the member and role hierarchy checks.
"""

from conftest import BOT_ROLE_POSITION, FakeMember, FakeRole
from warden.core.moderation_validation import validate_role_assignable, validate_role_hierarchy


# =============================================================================
# validate_role_hierarchy() Tests
# =============================================================================

class TestValidateRoleHierarchy:
    """Tests for validate_role_hierarchy function."""

    def test_lower_target_allowed(self, guild, staff, subject):
        assert validate_role_hierarchy(staff, subject, guild, "blacklist").is_valid

    def test_higher_target_refused(self, guild, staff, owner):
        result = validate_role_hierarchy(staff, owner, guild, "blacklist")
        assert not result.is_valid
        assert result.error_message == "You cannot blacklist someone with an equal or higher role."

    def test_equal_target_refused(self, guild, staff):
        peer = guild.add_member(FakeMember(2100, "peer", roles=list(staff.roles)))
        assert not validate_role_hierarchy(staff, peer, guild, "blacklist").is_valid

    def test_guild_owner_skips_moderator_check(self, guild, staff, owner):
        guild.owner_id = staff.id
        assert validate_role_hierarchy(staff, owner, guild, "blacklist").is_valid

    def test_developer_skips_moderator_check(self, guild, owner):
        developer = guild.add_member(FakeMember(1, "dev", roles=[guild.default_role]))
        assert validate_role_hierarchy(developer, owner, guild, "blacklist").is_valid

    def test_target_above_bot_refused_even_for_owner(self, guild, owner):
        guild.owner_id = owner.id
        admin = FakeRole(800, "Admin", position=BOT_ROLE_POSITION + 1)
        target = guild.add_member(FakeMember(2200, "admin", roles=[guild.default_role, admin]))

        result = validate_role_hierarchy(owner, target, guild, "blacklist")

        assert not result.is_valid
        assert "not below mine" in result.error_message


# =============================================================================
# validate_role_assignable() Tests
# =============================================================================

class TestValidateRoleAssignable:
    """Tests for validate_role_assignable function."""

    def test_role_below_moderator_allowed(self, guild, staff):
        assert validate_role_assignable(staff, FakeRole(700, "Event", position=3), guild, "grant").is_valid

    def test_role_at_or_above_moderator_refused(self, guild, staff):
        top = staff.top_role
        assert not validate_role_assignable(staff, top, guild, "grant").is_valid

        admin = FakeRole(800, "Admin", position=20)
        result = validate_role_assignable(staff, admin, guild, "grant")
        assert result.error_message == "You can only grant roles below your highest role."

    def test_guild_owner_can_assign_high_roles(self, guild, staff):
        guild.owner_id = staff.id
        assert validate_role_assignable(staff, FakeRole(800, "Admin", position=20), guild, "grant").is_valid

    def test_role_above_bot_refused(self, guild, staff):
        guild.owner_id = staff.id
        role = FakeRole(800, "Above Bot", position=BOT_ROLE_POSITION + 5)
        assert not validate_role_assignable(staff, role, guild, "grant").is_valid

    def test_managed_and_default_roles_refused(self, guild, owner):
        booster = FakeRole(801, "Server Booster", managed=True, position=2)
        assert not validate_role_assignable(owner, booster, guild, "grant").is_valid
        assert not validate_role_assignable(owner, guild.default_role, guild, "grant").is_valid
