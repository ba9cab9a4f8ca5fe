"""
Warden - Role Backup Service
============================

Snapshots a member's roles when they leave and gives them back on return.

DESIGN:
    A kick or ban is observed twice (member remove and member ban fire
    for the same removal). Both snapshot, which is harmless because the
    store keeps only the latest one, but the "Roles Backed Up" record is
    posted once: the (guild, user) pair enters a short ExpiringSet on the
    first sighting and the second one is silent.
"""

from typing import TYPE_CHECKING, Optional

import discord

from warden.core.config import EmbedColors, get_config
from warden.core.constants import BACKUP_LOG_DEDUP_WINDOW, EMBED_FIELD_VALUE_MAX, LOG_TRUNCATE_SHORT
from warden.core.database import RoleBackupStore, get_role_backups
from warden.core.logger import logger
from warden.utils.async_utils import safe_async_operation
from warden.utils.batch import BatchResult, SkipTarget, run_batch
from warden.utils.expiring import ExpiringSet

if TYPE_CHECKING:
    from warden.bot import WardenBot


class RoleBackupService:
    """Event-side use of the role backup store."""

    def __init__(self, bot: "WardenBot", store: Optional[RoleBackupStore] = None, clock=None) -> None:
        self.bot = bot
        self.config = get_config()
        self.store = store or get_role_backups()
        self._recently_logged = ExpiringSet(BACKUP_LOG_DEDUP_WINDOW, clock=clock)

    # =========================================================================
    # Snapshot
    # =========================================================================

    async def snapshot(self, member, trigger: str) -> bool:
        """
        Save the member's current roles, except @everyone and roles managed
        by Discord (boosts, integrations) which cannot be given back.

        Members with no roles are skipped so an empty save never wipes a
        backup taken moments earlier.

        Returns:
            True if a backup was written.
        """
        roles = [r for r in getattr(member, "roles", None) or [] if not r.is_default() and not r.managed]
        if not roles:
            return False

        if not self.store.save_roles(member.guild.id, member.id, [r.id for r in roles]):
            return False

        if self._recently_logged.add((member.guild.id, member.id)):
            logger.tree("Roles Backed Up", [
                ("User", f"{member} ({member.id})"),
                ("Guild", member.guild.name),
                ("Trigger", trigger),
                ("Roles", str(len(roles))),
            ], emoji="💾")
            await self._post_log(member, roles, trigger)
        return True

    async def _post_log(self, member, roles, trigger: str) -> None:
        channel_id = self.config.role_backup_log_channel_id
        if not channel_id:
            return
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            return

        embed = discord.Embed(title="Roles Backed Up", color=EmbedColors.BACKUP)
        embed.add_field(name="User", value=f"{member.mention} (`{member.id}`)", inline=True)
        embed.add_field(name="Trigger", value=trigger, inline=True)
        embed.add_field(name="Roles", value=" ".join(r.mention for r in roles)[:EMBED_FIELD_VALUE_MAX], inline=False)
        await safe_async_operation("Role Backup Log", channel.send(embed=embed))

    async def on_member_remove(self, member) -> bool:
        return await self.snapshot(member, "Left or removed")

    async def on_member_ban(self, guild, user) -> bool:
        # A ban of a non-member has no roles to keep
        if getattr(user, "roles", None) is None:
            return False
        return await self.snapshot(user, "Banned")

    # =========================================================================
    # Restore
    # =========================================================================

    async def restore(self, member) -> Optional[BatchResult]:
        """
        Give back the backed-up roles that still exist and are not held.

        One role failing does not stop the others. The backup is kept
        unless every role was restored or skipped.

        Returns:
            Per-role outcomes, or None if there is no usable backup.
        """
        guild = member.guild
        role_ids = self.store.get_roles(guild.id, member.id)
        if not role_ids:
            return None

        async def add_role(role_id: int) -> None:
            role = guild.get_role(role_id)
            if role is None:
                raise SkipTarget("Role deleted")
            if role.managed:
                raise SkipTarget("Managed role")
            if role in member.roles:
                raise SkipTarget("Already held")
            await member.add_roles(role, reason="Restoring roles from backup")

        result = await run_batch(role_ids, add_role, name="Role Restore", concurrency=1)

        if result.failed_count == 0:
            self.store.delete_backup(guild.id, member.id)

        logger.tree("Roles Restored", [
            ("User", f"{member} ({member.id})"),
            ("Guild", guild.name),
            ("Result", result.summary()),
        ], emoji="♻️")
        if result.failed_count:
            logger.warning("Role Restore Incomplete", [
                ("User ID", str(member.id)),
                ("Failed", ", ".join(str(o.target) for o in result.failed)[:LOG_TRUNCATE_SHORT]),
            ])
        return result


__all__ = ["RoleBackupService"]
