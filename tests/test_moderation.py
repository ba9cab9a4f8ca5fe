"""
Tests for warden/services/moderation.py

Covers blacklist and global ban actions end to end against the fake
stores, guilds and audit log.
"""

from unittest.mock import AsyncMock

import pytest

from conftest import BL_CHANNEL, FakeGuild, MockForbidden, MockNotFound, make_interaction
from warden.core.case_ids import PunishmentType
from warden.core.constants import SECONDS_PER_HOUR
from warden.services.audit_log import WorkflowKind
from warden.services.audit_log.constants import APPROVE, DENY, ESCALATE
from warden.services.moderation import MSG_ESCALATED, MSG_NO_PERMISSION, MSG_UNAVAILABLE


@pytest.fixture
def other_guilds(mock_bot):
    extra = [FakeGuild(101, "Second"), FakeGuild(102, "Third")]
    mock_bot.guilds.extend(extra)
    return extra


# =============================================================================
# Blacklist Tests
# =============================================================================

class TestBlacklist:
    """Tests for blacklist and unblacklist."""

    @pytest.mark.asyncio
    async def test_blacklist_end_to_end(
        self, moderation, ledger, backups, audit_log, clock, guild, subject, staff, blacklist_role, verified_role,
    ):
        result = await moderation.blacklist(guild, subject, staff, "alt account")

        assert result.success
        assert result.case_id == "CASE-0001"
        assert subject.roles == [guild.default_role, blacklist_role]
        assert backups.get_roles(guild.id, subject.id) == [verified_role.id]

        record = audit_log.records[-1]
        assert record.channel_id == BL_CHANNEL
        assert record.kind == WorkflowKind.BLACKLIST
        assert record.fields["Roles Before Blacklist"] == verified_role.mention

        clock.advance(25 * SECONDS_PER_HOUR)
        assert backups.get_backup(guild.id, subject.id) is None
        assert ledger.get_case(guild.id, "CASE-0001")["punishment_type"] == "blacklist"

    @pytest.mark.asyncio
    async def test_blacklist_requires_permission(self, moderation, ledger, guild, subject, approver):
        result = await moderation.blacklist(guild, subject, approver, "x")
        assert not result.success
        assert result.message == MSG_NO_PERMISSION
        assert ledger.count_cases() == 0

    @pytest.mark.asyncio
    async def test_blacklist_higher_role_refused(self, moderation, ledger, audit_log, guild, staff, owner):
        roles_before = list(owner.roles)

        result = await moderation.blacklist(guild, owner, staff, "x")

        assert not result.success
        assert result.message == "You cannot blacklist someone with an equal or higher role."
        assert owner.roles == roles_before
        assert ledger.count_cases() == 0
        assert audit_log.records == []

    @pytest.mark.asyncio
    async def test_already_blacklisted(self, moderation, ledger, guild, subject, staff, blacklist_role):
        subject.roles.append(blacklist_role)
        result = await moderation.blacklist(guild, subject, staff, "x")
        assert not result.success
        assert ledger.count_cases() == 0

    @pytest.mark.asyncio
    async def test_role_change_failure_keeps_case(self, moderation, ledger, guild, subject, staff):
        subject.remove_roles.side_effect = MockForbidden("Missing Permissions")
        result = await moderation.blacklist(guild, subject, staff, "x")
        assert not result.success
        assert result.case_id == "CASE-0001"
        assert ledger.count_cases() == 1

    @pytest.mark.asyncio
    async def test_unblacklist_links_original_case(
        self, moderation, ledger, guild, subject, staff, blacklist_role, verified_role,
    ):
        await moderation.blacklist(guild, subject, staff, "x")
        result = await moderation.unblacklist(guild, subject, staff, "appeal accepted")

        assert result.success
        assert result.case_id == "CASE-0002"
        assert blacklist_role not in subject.roles
        assert verified_role in subject.roles
        assert ledger.get_case(guild.id, "CASE-0002")["original_case_id"] == "CASE-0001"

    @pytest.mark.asyncio
    async def test_unblacklist_blocked_by_escalation(self, moderation, workflow, guild, subject, staff):
        await moderation.blacklist(guild, subject, staff, "x")
        record = (await workflow.derive_state(WorkflowKind.BLACKLIST, subject.id)).latest
        await workflow.handle_action(make_interaction(staff, guild, record), record.kind, ESCALATE, subject.id)

        result = await moderation.unblacklist(guild, subject, staff, "x")

        assert not result.success
        assert result.message == MSG_ESCALATED

    @pytest.mark.asyncio
    async def test_owner_unblacklists_escalated(self, moderation, workflow, audit_log, guild, subject, staff, owner):
        await moderation.blacklist(guild, subject, staff, "x")
        record = (await workflow.derive_state(WorkflowKind.BLACKLIST, subject.id)).latest
        await workflow.handle_action(make_interaction(staff, guild, record), record.kind, ESCALATE, subject.id)

        result = await moderation.unblacklist(guild, subject, owner, "x")

        assert result.success
        refreshed = await audit_log.fetch_record(record.channel_id, record.message_id)
        assert not refreshed.is_escalated

    @pytest.mark.asyncio
    async def test_unblacklist_fails_closed(self, moderation, audit_log, ledger, guild, subject, staff):
        await moderation.blacklist(guild, subject, staff, "x")
        audit_log.unavailable = True

        result = await moderation.unblacklist(guild, subject, staff, "x")

        assert result.message == MSG_UNAVAILABLE
        assert ledger.count_cases() == 1

    @pytest.mark.asyncio
    async def test_deny_blacklist_restores_member(
        self, moderation, workflow, ledger, guild, subject, staff, approver, blacklist_role, verified_role,
    ):
        await moderation.blacklist(guild, subject, staff, "x")
        record = (await workflow.derive_state(WorkflowKind.BLACKLIST, subject.id)).latest

        message = await workflow.handle_action(make_interaction(approver, guild, record), record.kind, DENY, subject.id)

        assert message.startswith("Denied. Blacklist removed.")
        assert blacklist_role not in subject.roles
        assert verified_role in subject.roles
        reversal = ledger.find_latest_case(subject.id, PunishmentType.UNBLACKLIST)
        assert reversal["original_case_id"] == "CASE-0001"

    @pytest.mark.asyncio
    async def test_deny_blacklist_after_member_left(
        self, moderation, workflow, ledger, audit_log, guild, subject, staff, approver,
    ):
        await moderation.blacklist(guild, subject, staff, "x")
        record = (await workflow.derive_state(WorkflowKind.BLACKLIST, subject.id)).latest
        del guild._members[subject.id]

        message = await workflow.handle_action(make_interaction(approver, guild, record), record.kind, DENY, subject.id)

        assert message.startswith("Denied. Blacklist lifted")
        reversal = ledger.find_latest_case(subject.id, PunishmentType.UNBLACKLIST)
        assert reversal["original_case_id"] == "CASE-0001"
        refreshed = await audit_log.fetch_record(record.channel_id, record.message_id)
        assert refreshed.affordances[DENY].disabled
        assert refreshed.affordances[DENY].label == "Denied by approver"

    @pytest.mark.asyncio
    async def test_deny_unblacklist_needs_member(self, moderation, workflow, ledger, guild, subject, staff, approver):
        await moderation.blacklist(guild, subject, staff, "x")
        await moderation.unblacklist(guild, subject, staff, "x")
        record = (await workflow.derive_state(WorkflowKind.UNBLACKLIST, subject.id)).latest
        del guild._members[subject.id]

        await workflow.handle_action(make_interaction(approver, guild, record), record.kind, DENY, subject.id)

        assert ledger.count_cases() == 2

    @pytest.mark.asyncio
    async def test_deny_unblacklist_reapplies(self, moderation, workflow, guild, subject, staff, approver, blacklist_role):
        await moderation.blacklist(guild, subject, staff, "x")
        await moderation.unblacklist(guild, subject, staff, "x")
        record = (await workflow.derive_state(WorkflowKind.UNBLACKLIST, subject.id)).latest

        message = await workflow.handle_action(make_interaction(approver, guild, record), record.kind, DENY, subject.id)

        assert message.startswith("Denied. Blacklist re-applied.")
        assert blacklist_role in subject.roles


# =============================================================================
# Global Ban Tests
# =============================================================================

class TestGlobalBan:
    """Tests for global_ban and global_unban."""

    @pytest.mark.asyncio
    async def test_global_ban_every_guild(self, moderation, audit_log, guild, other_guilds, subject, staff):
        result = await moderation.global_ban(guild, subject, staff, "raid")

        assert result.success
        assert result.case_id == "PNET-0001"
        assert result.batch.succeeded_count == 3
        for target in [guild] + other_guilds:
            target.ban.assert_awaited_once()
        assert audit_log.records[-1].kind == WorkflowKind.GLOBAL_BAN

    @pytest.mark.asyncio
    async def test_one_guild_failing_does_not_stop_others(self, moderation, guild, other_guilds, subject, staff):
        other_guilds[0].ban.side_effect = MockForbidden("Missing Permissions")

        result = await moderation.global_ban(guild, subject, staff, "raid")

        assert result.success
        assert result.batch.succeeded_count == 2
        assert result.batch.failed_count == 1
        assert "1 failed" in result.message

    @pytest.mark.asyncio
    async def test_global_unban_skips_guilds_without_ban(self, moderation, guild, other_guilds, subject, staff):
        await moderation.global_ban(guild, subject, staff, "raid")
        other_guilds[1].unban.side_effect = MockNotFound("Unknown Ban")

        result = await moderation.global_unban(guild, subject, staff, "appeal")

        assert result.success
        assert result.case_id == "PNET-0002"
        assert result.batch.succeeded_count == 2
        assert result.batch.skipped_count == 1

    @pytest.mark.asyncio
    async def test_global_unban_links_original(self, moderation, ledger, guild, subject, staff):
        await moderation.global_ban(guild, subject, staff, "raid")
        await moderation.global_unban(guild, subject, staff, "appeal")
        unban = ledger.find_latest_case(subject.id, PunishmentType.GLOBAL_UNBAN)
        assert unban["original_case_id"] == "PNET-0001"

    @pytest.mark.asyncio
    async def test_global_unban_blocked_by_escalation(self, moderation, workflow, guild, subject, staff, approver):
        await moderation.global_ban(guild, subject, staff, "raid")
        record = (await workflow.derive_state(WorkflowKind.GLOBAL_BAN, subject.id)).latest
        await workflow.handle_action(make_interaction(staff, guild, record), record.kind, ESCALATE, subject.id)
        guild.unban.reset_mock()

        result = await moderation.global_unban(guild, subject, staff, "appeal")

        assert result.message == MSG_ESCALATED
        guild.unban.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_small_fanout_skips_progress_updates(self, moderation, workflow, guild, other_guilds, subject, staff, approver):
        progress = AsyncMock()
        await moderation.global_ban(guild, subject, staff, "raid", on_progress=progress)
        record = (await workflow.derive_state(WorkflowKind.GLOBAL_BAN, subject.id)).latest

        message = await workflow.handle_action(make_interaction(approver, guild, record), record.kind, APPROVE, subject.id)

        assert message == "Approved."
        progress.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_global_ban_requires_permission(self, moderation, ledger, guild, subject, outsider):
        result = await moderation.global_ban(guild, subject, outsider, "raid")
        assert result.message == MSG_NO_PERMISSION
        assert ledger.count_cases() == 0
        guild.ban.assert_not_awaited()
