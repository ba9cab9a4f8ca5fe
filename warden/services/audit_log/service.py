"""
Warden - Workflow Service
=========================

Review workflow for global bans, blacklists and their reversals.

DESIGN:
    Every high-impact action posts a record to its log channel with
    approve / deny / escalate / remind buttons. The record IS the state:
    there is no table behind it. Before any authorization decision the
    service re-reads the channel (derive_state) and the clicked record
    (fetch_record), so a stale view can never grant a deny that an
    escalation has since forbidden.

    Gating rules:
    - approve, deny, remind: approver class
    - escalate: global ban class (gban records) or blacklist class
      (bl records), newest record for the user only
    - approve / deny while escalated: ownership only
    - the developer passes every check

    Deny on a record reverses the underlying action through the
    ModerationService and writes a new ledger entry for the reversal.

    Each click receives exactly one ephemeral response: the interaction
    is deferred on entry and answered once with the outcome.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

import discord

from warden.core.config import can_approve, can_blacklist, can_global_ban, get_config, is_owner
from warden.core.constants import LOG_TRUNCATE_SHORT
from warden.core.logger import logger

from .constants import (
    APPROVE,
    DENY,
    ESCALATE,
    FIELD_CASE_ID,
    FIELD_REASON,
    FIELD_STAFF,
    FIELD_STAFF_ID,
    FIELD_USER_ID,
    FIELD_USERNAME,
    REMIND,
    TRANSITION_LABELS,
    WORKFLOWS,
    WorkflowKind,
    build_custom_id,
    initial_label,
)
from .records import Affordance, AuditLog, AuditLogUnavailable, AuditRecord

if TYPE_CHECKING:
    from warden.bot import WardenBot


MSG_UNAVAILABLE = "The log channel could not be read, so the record's state could not be verified. Try again shortly."
MSG_ESCALATED = "This record has been escalated. Only ownership can approve or deny it."

PROOF_NOUNS = {
    WorkflowKind.GLOBAL_BAN: "global ban",
    WorkflowKind.BLACKLIST: "blacklist",
}


@dataclass
class EscalationState:
    """Escalation status derived from the newest record for a user."""

    escalated: bool
    latest: Optional[AuditRecord] = None


def gate_kind(kind: WorkflowKind) -> WorkflowKind:
    """Kind whose escalation gates actions on ``kind`` records."""
    return WORKFLOWS[kind].clears_escalation_of or kind


class WorkflowService:
    """Publishes workflow records and handles clicks on them."""

    def __init__(self, bot: "WardenBot", audit_log: AuditLog = None) -> None:
        self.bot = bot
        self.config = get_config()
        if audit_log is None:
            from .discord_log import DiscordAuditLog
            audit_log = DiscordAuditLog(bot)
        self.audit_log = audit_log

    def channel_for(self, kind: WorkflowKind) -> Optional[int]:
        return getattr(self.config, WORKFLOWS[kind].channel_attr, None)

    # =========================================================================
    # Publish
    # =========================================================================

    async def publish(
        self,
        kind: WorkflowKind,
        user,
        moderator,
        case_id: str,
        reason: Optional[str],
        extra_fields: Optional[List[Tuple[str, str]]] = None,
    ) -> Optional[AuditRecord]:
        """
        Post a new record for an action that has already been taken.

        Older records for the same user first lose their escalation, so
        only the newest record can carry one. Skipped without error when
        no log channel is configured for the kind.

        Returns:
            The posted record, or None if it was not published.
        """
        channel_id = self.channel_for(kind)
        if not channel_id:
            logger.debug("Workflow Record Skipped", [
                ("Workflow", kind.value),
                ("Reason", "No log channel configured"),
            ])
            return None

        shape = WORKFLOWS[kind]
        if shape.clears_escalation_of:
            await self.clear_escalations(shape.clears_escalation_of, user.id)

        fields = [
            (FIELD_CASE_ID, f"`{case_id}`"),
            (FIELD_STAFF, moderator.mention),
            (FIELD_STAFF_ID, f"`{moderator.id}`"),
            (FIELD_USER_ID, f"`{user.id}`"),
            (FIELD_USERNAME, str(user)),
            (FIELD_REASON, reason or "No reason provided"),
        ]
        fields.extend(extra_fields or [])

        affordances = [
            Affordance(
                name=action,
                label=initial_label(kind, action),
                custom_id=build_custom_id(kind, action, user.id),
            )
            for action in shape.affordances
        ]

        record = await self.audit_log.publish(channel_id, kind, shape.title, shape.color, fields, affordances)
        if record is None:
            return None

        if shape.thread_name:
            await self.audit_log.open_thread(
                record,
                shape.thread_name.format(user_id=user.id),
                shape.thread_prompt.format(staff_id=moderator.id),
            )

        logger.tree("Workflow Record Published", [
            ("Workflow", shape.title),
            ("Case ID", case_id),
            ("User ID", str(user.id)),
            ("Staff", f"{moderator} ({moderator.id})"),
        ], emoji="📋")
        return record

    async def clear_escalations(self, kind: WorkflowKind, user_id: int) -> int:
        """Re-enable the escalate button on every escalated record for a user."""
        channel_id = self.channel_for(kind)
        if not channel_id:
            return 0

        try:
            records = await self.audit_log.query(
                channel_id,
                lambda r: r.kind == kind and r.subject_id == user_id and r.is_escalated,
                self.config.audit_log_fetch_limit,
            )
        except AuditLogUnavailable as e:
            logger.warning("Escalation Clear Skipped", [
                ("User ID", str(user_id)),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return 0

        cleared = 0
        for record in records:
            if await self.audit_log.mutate_affordance(record, ESCALATE, initial_label(kind, ESCALATE), False):
                cleared += 1

        if cleared:
            logger.tree("Escalations Cleared", [
                ("User ID", str(user_id)),
                ("Records", str(cleared)),
            ], emoji="🔓")
        return cleared

    # =========================================================================
    # State
    # =========================================================================

    async def derive_state(self, kind: WorkflowKind, user_id: int) -> EscalationState:
        """
        Read the newest record of ``kind`` for a user from its log channel.

        Only the most recently created match counts; older records are
        history. Never cached.

        Raises:
            AuditLogUnavailable: The configured channel could not be read.
        """
        channel_id = self.channel_for(kind)
        if not channel_id:
            return EscalationState(escalated=False)

        records = await self.audit_log.query(
            channel_id,
            lambda r: r.kind == kind and r.subject_id == user_id,
            self.config.audit_log_fetch_limit,
        )
        latest = records[0] if records else None
        return EscalationState(escalated=bool(latest and latest.is_escalated), latest=latest)

    async def transition(self, record: AuditRecord, affordance: str, actor_name: str) -> bool:
        """
        Disable one button and relabel it with the acting staff member.

        Repeating a transition that already shows the same label is a
        no-op that reports success.
        """
        current = record.affordances.get(affordance)
        if current is None:
            return False

        label = TRANSITION_LABELS[affordance].format(actor=actor_name)
        if current.disabled and current.label == label:
            return True

        if not await self.audit_log.mutate_affordance(record, affordance, label, True):
            return False

        logger.tree("Workflow Transition", [
            ("Workflow", record.kind.value),
            ("User ID", str(record.subject_id)),
            ("Transition", label),
        ], emoji="🔁")
        await self.audit_log.post_to_thread(record, f"**{label}**")
        return True

    # =========================================================================
    # Button Handling
    # =========================================================================

    async def handle_action(self, interaction: discord.Interaction, kind: WorkflowKind, action: str, user_id: int) -> Optional[str]:
        """
        Handle a click on a workflow button.

        Returns:
            The response sent, or None if the interaction could not be
            answered at all.
        """
        try:
            await interaction.response.defer(ephemeral=True, thinking=True)
        except discord.HTTPException as e:
            logger.warning("Workflow Interaction Expired", [
                ("Action", action),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return None

        try:
            message = await self._dispatch(interaction, kind, action, user_id)
        except AuditLogUnavailable:
            message = MSG_UNAVAILABLE

        try:
            await interaction.followup.send(message, ephemeral=True)
        except discord.HTTPException as e:
            logger.warning("Workflow Response Failed", [
                ("Action", action),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
        return message

    async def _dispatch(self, interaction: discord.Interaction, kind: WorkflowKind, action: str, user_id: int) -> str:
        actor = interaction.user
        record = await self.audit_log.fetch_record(interaction.channel_id, interaction.message.id)
        if record is None or record.subject_id != user_id:
            return "This record no longer exists."

        if action == ESCALATE:
            return await self._escalate(record, actor)
        if action == REMIND:
            return await self._remind(record, actor)

        if not can_approve(actor):
            logger.warning("Workflow Permission Denied", [
                ("Actor", f"{actor.name} ({actor.id})"),
                ("Action", action),
                ("User ID", str(user_id)),
            ])
            return f"You don't have permission to {action} this record."

        if await self.is_escalated(record) and not is_owner(actor):
            logger.warning("Escalated Record Protected", [
                ("Actor", f"{actor.name} ({actor.id})"),
                ("Action", action),
                ("User ID", str(user_id)),
            ])
            return MSG_ESCALATED

        if action == APPROVE:
            return await self._approve(record, actor)
        return await self._deny(record, actor, interaction.guild)

    async def is_escalated(self, record: AuditRecord) -> bool:
        """Escalation of the clicked record or of the newest gating record."""
        if record.is_escalated:
            return True
        state = await self.derive_state(gate_kind(record.kind), record.subject_id)
        return state.escalated

    async def _approve(self, record: AuditRecord, actor) -> str:
        if record.affordances[DENY].disabled:
            return "This record was already denied."
        if record.affordances[APPROVE].disabled:
            return f"This record is already marked: {record.affordances[APPROVE].label}."

        if not await self.transition(record, APPROVE, actor.name):
            return "The record could not be updated. Try again."
        return "Approved."

    async def _deny(self, record: AuditRecord, actor, guild) -> str:
        if record.affordances[APPROVE].disabled:
            return "This record was already approved."
        if record.affordances[DENY].disabled:
            return f"This record is already marked: {record.affordances[DENY].label}."

        moderation = getattr(self.bot, "moderation", None)
        if moderation is None:
            return "Moderation is not available yet. Try again in a moment."

        result = await moderation.reverse(record, actor, guild)
        if not result.success:
            return result.message

        await self.transition(record, DENY, actor.name)
        return result.message

    async def _escalate(self, record: AuditRecord, actor) -> str:
        if ESCALATE not in record.affordances:
            return "This record cannot be escalated."

        allowed = can_global_ban(actor) if record.kind == WorkflowKind.GLOBAL_BAN else can_blacklist(actor)
        if not allowed:
            return "You don't have permission to escalate this record."

        if record.is_escalated:
            return f"This record is already marked: {record.affordances[ESCALATE].label}."

        state = await self.derive_state(record.kind, record.subject_id)
        if state.latest is not None and state.latest.message_id != record.message_id:
            return "Only the most recent record for this user can be escalated."

        if not await self.transition(record, ESCALATE, actor.name):
            return "The record could not be updated. Try again."
        return "Escalated. Only ownership can approve or deny this record now."

    async def _remind(self, record: AuditRecord, actor) -> str:
        if REMIND not in record.affordances:
            return "This record has no proof reminder."
        if not can_approve(actor):
            return "You don't have permission to send proof reminders."
        if record.affordances[REMIND].disabled:
            return f"This record is already marked: {record.affordances[REMIND].label}."

        if not await self.transition(record, REMIND, actor.name):
            return "The record could not be updated. Try again."

        staff_id = record.staff_id
        noun = PROOF_NOUNS.get(record.kind, "action")
        if staff_id:
            await self.audit_log.post_to_thread(
                record,
                f"<@{staff_id}> Reminder: please provide proof for this {noun}.",
            )
        return "Reminder sent."


__all__ = ["WorkflowService", "EscalationState", "gate_kind"]
