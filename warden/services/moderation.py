"""
Warden - Moderation Service
===========================

Blacklist and global ban actions with case recording and review records.

DESIGN:
    Every action follows the same order:
    1. Permission check, then the escalation gate for reversals
       (re-derived from the log channel, never cached).
    2. Ledger entry. No external change is made without a case ID.
    3. Discord mutation. Global actions fan out over every guild through
       run_batch and report per-guild counts.
    4. Best-effort DM and review record.

    Each operation returns one ActionResult that the caller turns into
    the single response shown to the moderator.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

import discord

from warden.core.case_ids import PunishmentType
from warden.core.config import EmbedColors, can_blacklist, can_global_ban, get_config, is_owner
from warden.core.constants import LOG_TRUNCATE_SHORT
from warden.core.database import CaseLedger, CaseRecord, RoleBackupStore, get_case_ledger, get_role_backups
from warden.core.logger import logger
from warden.core.moderation_validation import validate_role_hierarchy
from warden.utils.async_utils import safe_async_operation
from warden.utils.batch import BatchResult, ProgressCallback, SkipTarget, run_batch

from .audit_log import AuditLogUnavailable, AuditRecord, WorkflowKind, WorkflowService
from .audit_log.constants import FIELD_ROLES_BEFORE, FIELD_USERNAME

if TYPE_CHECKING:
    from warden.bot import WardenBot


MSG_NO_PERMISSION = "You don't have permission to do that."
MSG_ESCALATED = "The latest record for this user has been escalated. Only ownership can reverse it."
MSG_UNAVAILABLE = "The log channel could not be read, so the escalation state could not be verified. Nothing was changed."
MSG_NO_CASE = "The case could not be recorded, so no action was taken."


@dataclass
class ActionResult:
    """Terminal outcome of one moderation action."""

    success: bool
    message: str
    case_id: Optional[str] = None
    batch: Optional[BatchResult] = None


def _fanout_summary(verb: str, batch: BatchResult) -> str:
    summary = f"{verb} in {batch.succeeded_count} server(s)"
    extras = []
    if batch.skipped_count:
        extras.append(f"{batch.skipped_count} skipped")
    if batch.failed_count:
        extras.append(f"{batch.failed_count} failed")
    if extras:
        summary += f" ({', '.join(extras)})"
    return summary


class ModerationService:
    """Runs blacklist and global ban actions and their reversals."""

    def __init__(
        self,
        bot: "WardenBot",
        workflow: WorkflowService,
        ledger: Optional[CaseLedger] = None,
        backups: Optional[RoleBackupStore] = None,
    ) -> None:
        self.bot = bot
        self.config = get_config()
        self.workflow = workflow
        self.ledger = ledger or get_case_ledger()
        self.backups = backups or get_role_backups()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _record_case(
        self,
        guild_id: int,
        kind: PunishmentType,
        user_id: int,
        user_tag: str,
        moderator,
        reason: Optional[str],
        original_case_id: Optional[str] = None,
    ) -> Optional[CaseRecord]:
        case_data = {
            "punishment_type": kind.value,
            "user_id": user_id,
            "user_tag": user_tag,
            "moderator_id": moderator.id,
            "moderator_tag": str(moderator),
            "reason": reason or "No reason provided",
        }
        if original_case_id:
            case_data["original_case_id"] = original_case_id
        return self.ledger.add_case(guild_id, case_data)

    async def _gate(self, kind: WorkflowKind, user_id: int, actor) -> Optional[str]:
        """Return a refusal message if an escalation blocks ``actor``."""
        if is_owner(actor):
            return None
        try:
            state = await self.workflow.derive_state(kind, user_id)
        except AuditLogUnavailable:
            return MSG_UNAVAILABLE
        return MSG_ESCALATED if state.escalated else None

    async def _notify(self, user, title: str, description: str, color: int, reason: Optional[str]) -> None:
        if not self.config.send_dms:
            return
        embed = discord.Embed(title=title, description=description, color=color)
        embed.add_field(name="Reason", value=reason or "No reason provided", inline=False)
        await safe_async_operation("DM Subject", user.send(embed=embed), log_level="debug")

    @staticmethod
    async def _resolve_member(guild, user_id: int):
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except discord.HTTPException:
            return None

    def _blacklist_role(self, guild):
        if not self.config.blacklist_role_id:
            return None
        return guild.get_role(self.config.blacklist_role_id)

    async def _apply_blacklist(self, guild, member, role) -> List:
        """Swap every removable role for the blacklist role. Returns the roles taken."""
        previous = [r for r in member.roles if not r.is_default() and r.id != role.id and not r.managed]
        self.backups.save_roles(guild.id, member.id, [r.id for r in previous])

        if previous:
            await member.remove_roles(*previous, reason="Blacklisted")
        await member.add_roles(role, reason="Blacklisted")
        return previous

    async def _lift_blacklist(self, guild, member, role) -> None:
        await member.remove_roles(role, reason="Unblacklisted")
        verified = guild.get_role(self.config.verified_role_id) if self.config.verified_role_id else None
        if verified is not None and verified not in member.roles:
            await member.add_roles(verified, reason="Unblacklisted")

    async def _ban_everywhere(self, user, reason: str, on_progress: Optional[ProgressCallback]) -> BatchResult:
        async def ban_in(guild) -> None:
            await guild.ban(user, reason=reason, delete_message_seconds=0)

        return await run_batch(
            self.bot.guilds, ban_in,
            name="Global Ban",
            concurrency=self.config.fanout_concurrency,
            on_progress=on_progress,
        )

    async def _unban_everywhere(self, user, reason: str, on_progress: Optional[ProgressCallback]) -> BatchResult:
        async def unban_in(guild) -> None:
            try:
                await guild.unban(user, reason=reason)
            except discord.NotFound:
                raise SkipTarget("Not banned")

        return await run_batch(
            self.bot.guilds, unban_in,
            name="Global Unban",
            concurrency=self.config.fanout_concurrency,
            on_progress=on_progress,
        )

    # =========================================================================
    # Blacklist
    # =========================================================================

    async def blacklist(self, guild, member, moderator, reason: Optional[str] = None) -> ActionResult:
        if not can_blacklist(moderator):
            return ActionResult(False, MSG_NO_PERMISSION)

        role = self._blacklist_role(guild)
        if role is None:
            return ActionResult(False, "The blacklist role is not configured in this server.")
        if role in member.roles:
            return ActionResult(False, f"{member} is already blacklisted.")

        check = validate_role_hierarchy(moderator, member, guild, "blacklist")
        if not check.is_valid:
            return ActionResult(False, check.error_message)

        case = self._record_case(guild.id, PunishmentType.BLACKLIST, member.id, str(member), moderator, reason)
        if case is None:
            return ActionResult(False, MSG_NO_CASE)

        try:
            previous = await self._apply_blacklist(guild, member, role)
        except discord.HTTPException as e:
            logger.error("Blacklist Failed", [
                ("User", f"{member} ({member.id})"),
                ("Case ID", case["case_id"]),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return ActionResult(False, f"Case `{case['case_id']}` was recorded but the roles could not be changed: {e}", case["case_id"])

        logger.tree("USER BLACKLISTED", [
            ("User", f"{member} ({member.id})"),
            ("Moderator", f"{moderator} ({moderator.id})"),
            ("Roles Removed", str(len(previous))),
            ("Case ID", case["case_id"]),
        ], emoji="⛔")

        await self._notify(member, "You've Been Blacklisted", f"You have been blacklisted in **{guild.name}**.", EmbedColors.BLACKLIST, reason)
        await self.workflow.publish(
            WorkflowKind.BLACKLIST, member, moderator, case["case_id"], reason,
            extra_fields=[(FIELD_ROLES_BEFORE, " ".join(r.mention for r in previous) or "None")],
        )
        return ActionResult(True, f"{member} has been blacklisted. Case `{case['case_id']}`", case["case_id"])

    async def unblacklist(self, guild, member, moderator, reason: Optional[str] = None) -> ActionResult:
        if not can_blacklist(moderator):
            return ActionResult(False, MSG_NO_PERMISSION)

        refusal = await self._gate(WorkflowKind.BLACKLIST, member.id, moderator)
        if refusal:
            return ActionResult(False, refusal)

        role = self._blacklist_role(guild)
        if role is None or role not in member.roles:
            return ActionResult(False, f"{member} is not blacklisted.")

        original = self.ledger.find_latest_case(member.id, PunishmentType.BLACKLIST)
        case = self._record_case(
            guild.id, PunishmentType.UNBLACKLIST, member.id, str(member), moderator, reason,
            original_case_id=original["case_id"] if original else None,
        )
        if case is None:
            return ActionResult(False, MSG_NO_CASE)

        try:
            await self._lift_blacklist(guild, member, role)
        except discord.HTTPException as e:
            logger.error("Unblacklist Failed", [
                ("User", f"{member} ({member.id})"),
                ("Case ID", case["case_id"]),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return ActionResult(False, f"Case `{case['case_id']}` was recorded but the roles could not be changed: {e}", case["case_id"])

        logger.tree("USER UNBLACKLISTED", [
            ("User", f"{member} ({member.id})"),
            ("Moderator", f"{moderator} ({moderator.id})"),
            ("Case ID", case["case_id"]),
            ("Reverses", original["case_id"] if original else "None"),
        ], emoji="✅")

        await self._notify(member, "Blacklist Lifted", f"Your blacklist in **{guild.name}** has been lifted.", EmbedColors.UNBLACKLIST, reason)
        await self.workflow.publish(WorkflowKind.UNBLACKLIST, member, moderator, case["case_id"], reason)
        return ActionResult(True, f"{member} has been unblacklisted. Case `{case['case_id']}`", case["case_id"])

    # =========================================================================
    # Global Ban
    # =========================================================================

    async def global_ban(self, guild, user, moderator, reason: Optional[str] = None, on_progress: Optional[ProgressCallback] = None) -> ActionResult:
        if not can_global_ban(moderator):
            return ActionResult(False, MSG_NO_PERMISSION)

        case = self._record_case(guild.id, PunishmentType.GLOBAL_BAN, user.id, str(user), moderator, reason)
        if case is None:
            return ActionResult(False, MSG_NO_CASE)

        # DM first; after the ban there may be no shared server left
        await self._notify(user, "You've Been Globally Banned", "You have been banned from every server in this network.", EmbedColors.GLOBAL_BAN, reason)

        batch = await self._ban_everywhere(user, f"Global ban by {moderator}: {reason or 'No reason'}", on_progress)

        logger.tree("USER GLOBALLY BANNED", [
            ("User", f"{user} ({user.id})"),
            ("Moderator", f"{moderator} ({moderator.id})"),
            ("Case ID", case["case_id"]),
            ("Result", batch.summary()),
        ], emoji="🔨")

        await self.workflow.publish(WorkflowKind.GLOBAL_BAN, user, moderator, case["case_id"], reason)
        return ActionResult(
            batch.succeeded_count > 0,
            f"{user} globally banned. {_fanout_summary('Banned', batch)}. Case `{case['case_id']}`",
            case["case_id"],
            batch,
        )

    async def global_unban(self, guild, user, moderator, reason: Optional[str] = None, on_progress: Optional[ProgressCallback] = None) -> ActionResult:
        if not can_global_ban(moderator):
            return ActionResult(False, MSG_NO_PERMISSION)

        refusal = await self._gate(WorkflowKind.GLOBAL_BAN, user.id, moderator)
        if refusal:
            return ActionResult(False, refusal)

        original = self.ledger.find_latest_case(user.id, PunishmentType.GLOBAL_BAN)
        case = self._record_case(
            guild.id, PunishmentType.GLOBAL_UNBAN, user.id, str(user), moderator, reason,
            original_case_id=original["case_id"] if original else None,
        )
        if case is None:
            return ActionResult(False, MSG_NO_CASE)

        batch = await self._unban_everywhere(user, f"Global unban by {moderator}: {reason or 'No reason'}", on_progress)

        logger.tree("USER GLOBALLY UNBANNED", [
            ("User", f"{user} ({user.id})"),
            ("Moderator", f"{moderator} ({moderator.id})"),
            ("Case ID", case["case_id"]),
            ("Result", batch.summary()),
        ], emoji="🔓")

        await self.workflow.publish(WorkflowKind.GLOBAL_UNBAN, user, moderator, case["case_id"], reason)
        return ActionResult(
            True,
            f"{user} globally unbanned. {_fanout_summary('Unbanned', batch)}. Case `{case['case_id']}`",
            case["case_id"],
            batch,
        )

    # =========================================================================
    # Reversals (deny on a review record)
    # =========================================================================

    async def reverse(self, record: AuditRecord, actor, guild) -> ActionResult:
        """
        Undo the action a review record describes.

        Called after the workflow has checked the actor's permission and
        the escalation gate. Writes a ledger entry linked to the record's
        case through original_case_id.
        """
        user_id = record.subject_id
        user_tag = record.fields.get(FIELD_USERNAME) or str(user_id)
        reason = f"{record.title} denied by {actor}"
        case_guild_id = guild.id if guild is not None else 0

        if record.kind in (WorkflowKind.GLOBAL_BAN, WorkflowKind.GLOBAL_UNBAN):
            unbanning = record.kind == WorkflowKind.GLOBAL_BAN
            kind = PunishmentType.GLOBAL_UNBAN if unbanning else PunishmentType.GLOBAL_BAN
            case = self._record_case(case_guild_id, kind, user_id, user_tag, actor, reason, record.case_id)
            if case is None:
                return ActionResult(False, MSG_NO_CASE)

            target = discord.Object(id=user_id)
            if unbanning:
                batch = await self._unban_everywhere(target, reason, None)
                summary = _fanout_summary("Unbanned", batch)
            else:
                batch = await self._ban_everywhere(target, reason, None)
                summary = _fanout_summary("Banned", batch)

            logger.tree("Workflow Reversal", [
                ("Record", record.title),
                ("User ID", str(user_id)),
                ("Actor", f"{actor} ({actor.id})"),
                ("Case ID", case["case_id"]),
                ("Result", batch.summary()),
            ], emoji="↩️")
            return ActionResult(True, f"Denied. {summary}. Case `{case['case_id']}`", case["case_id"], batch)

        if guild is None:
            return ActionResult(False, "This record can only be denied from inside the server.")

        role = self._blacklist_role(guild)
        if role is None:
            return ActionResult(False, "The blacklist role is not configured in this server.")

        lifting = record.kind == WorkflowKind.BLACKLIST
        member = await self._resolve_member(guild, user_id)
        if member is None and not lifting:
            return ActionResult(False, "That user is no longer in this server, so nothing was changed.")

        kind = PunishmentType.UNBLACKLIST if lifting else PunishmentType.BLACKLIST
        case = self._record_case(guild.id, kind, user_id, user_tag, actor, reason, record.case_id)
        if case is None:
            return ActionResult(False, MSG_NO_CASE)

        if member is None:
            # Member left: record the lift, skip the roles
            logger.tree("Workflow Reversal", [
                ("Record", record.title),
                ("User ID", str(user_id)),
                ("Actor", f"{actor} ({actor.id})"),
                ("Case ID", case["case_id"]),
                ("Roles", "Skipped (not in server)"),
            ], emoji="↩️")
            return ActionResult(True, f"Denied. Blacklist lifted; the user is not in this server, so no roles were changed. Case `{case['case_id']}`", case["case_id"])

        try:
            if lifting:
                if role in member.roles:
                    await self._lift_blacklist(guild, member, role)
            elif role not in member.roles:
                await self._apply_blacklist(guild, member, role)
        except discord.HTTPException as e:
            logger.error("Workflow Reversal Failed", [
                ("Record", record.title),
                ("User ID", str(user_id)),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return ActionResult(False, f"Case `{case['case_id']}` was recorded but the roles could not be changed: {e}", case["case_id"])

        logger.tree("Workflow Reversal", [
            ("Record", record.title),
            ("User ID", str(user_id)),
            ("Actor", f"{actor} ({actor.id})"),
            ("Case ID", case["case_id"]),
        ], emoji="↩️")
        outcome = "Blacklist removed" if lifting else "Blacklist re-applied"
        return ActionResult(True, f"Denied. {outcome}. Case `{case['case_id']}`", case["case_id"])


__all__ = ["ModerationService", "ActionResult"]
