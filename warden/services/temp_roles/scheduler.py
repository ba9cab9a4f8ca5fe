"""
Warden - Temp Role Scheduler
============================

Background service that expires temporary role grants.

DESIGN:
    Runs a sweep immediately on start (to catch grants that expired while
    the bot was offline) and then every TEMP_ROLE_CHECK_INTERVAL seconds.

    Each sweep snapshots the expired grants and handles each one
    independently:
    1. Claim: delete the tracking record, but only if its deadline is
       the one in the snapshot. A grant revoked or re-granted since the
       snapshot is left alone and counted as skipped.
    2. Resolve guild, member and role. If any is gone there is nothing
       to remove; the record is already deleted.
    3. If the member still holds the role, remove it. A failure is
       logged and counted, and the record stays deleted so a permanently
       failing removal can never loop.

    Claiming before the Discord call means a revoke racing the sweep
    finds the record already gone and does not remove the role a
    second time.

    Only one sweep runs at a time; a tick that finds one in progress
    is skipped.
"""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import discord

from warden.core.config import EmbedColors, get_config
from warden.core.constants import LOG_TRUNCATE_SHORT, SWEEP_BATCH_SIZE
from warden.core.database import TempRoleRecord, TempRoleStore, get_temp_roles
from warden.core.logger import logger
from warden.utils.async_utils import safe_async_operation
from warden.utils.duration import format_duration

if TYPE_CHECKING:
    from warden.bot import WardenBot


# =============================================================================
# Sweep Result
# =============================================================================

@dataclass
class SweepResult:
    """Aggregate counts from one sweep."""

    processed: int = 0
    removed_roles: int = 0
    cleaned: int = 0
    skipped: int = 0
    failed: int = 0
    ran: bool = True


REMOVED = "removed"
CLEANED = "cleaned"
SKIPPED = "skipped"
FAILED = "failed"


# =============================================================================
# Temp Role Scheduler
# =============================================================================

class TempRoleScheduler:
    """
    Tracks temp role deadlines and removes roles once they pass.

    Attributes:
        bot: Reference to the main bot instance.
        store: Temp role tracking store.
        task: Background task reference.
        running: Whether the scheduler loop is active.
    """

    def __init__(self, bot: "WardenBot", store: Optional[TempRoleStore] = None) -> None:
        self.bot = bot
        self.config = get_config()
        self.store = store or get_temp_roles()
        self.task: Optional[asyncio.Task] = None
        self.running: bool = False
        self._sweep_lock = asyncio.Lock()

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def start(self) -> None:
        """Start the sweep loop. The first sweep runs right away."""
        if self.task and not self.task.done():
            self.task.cancel()

        self.running = True
        self.task = asyncio.create_task(self._scheduler_loop())

        logger.tree("Temp Role Scheduler Started", [
            ("Check Interval", f"{self.config.temp_role_check_interval} seconds"),
            ("Tracked Grants", str(len(self.store.list_grants()))),
        ], emoji="⏰")

    async def stop(self) -> None:
        self.running = False

        if self.task and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass

        logger.info("Temp Role Scheduler Stopped")

    async def _scheduler_loop(self) -> None:
        await self.bot.wait_until_ready()

        while self.running:
            try:
                await self.sweep()
                await asyncio.sleep(self.config.temp_role_check_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Temp Role Scheduler Error", [
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
                ])
                await asyncio.sleep(self.config.temp_role_check_interval)

    # =========================================================================
    # Grant Tracking
    # =========================================================================

    def grant(self, guild_id: int, user_id: int, role_id: int, ttl: float, moderator_id: Optional[int] = None) -> Optional[TempRoleRecord]:
        """
        Track a grant that expires ``ttl`` seconds from now.

        Replaces any existing grant for the same (guild, user, role). The
        caller adds the Discord role.

        Returns:
            The stored grant, or None if it could not be persisted.
        """
        record = self.store.upsert(
            guild_id, user_id, role_id,
            expires_at=self.store.now() + ttl,
            moderator_id=moderator_id,
        )
        if record:
            logger.tree("Temp Role Granted", [
                ("Guild ID", str(guild_id)),
                ("User ID", str(user_id)),
                ("Role ID", str(role_id)),
                ("Duration", format_duration(ttl)),
            ], emoji="⏳")
        return record

    def revoke(self, guild_id: int, user_id: int, role_id: int) -> Optional[TempRoleRecord]:
        """
        Stop tracking a grant.

        Returns:
            The removed grant, or None if there was none (including when
            a sweep already claimed it). The caller removes the Discord
            role only when a grant was returned.
        """
        return self.store.remove(guild_id, user_id, role_id)

    def status(self, guild_id: int, user_id: int, role_id: int) -> Optional[TempRoleRecord]:
        """Read a grant without changing it, even if it has expired."""
        return self.store.get(guild_id, user_id, role_id)

    # =========================================================================
    # Sweep
    # =========================================================================

    async def sweep(self) -> SweepResult:
        """
        Expire every grant whose deadline has passed.

        Returns:
            Aggregate counts. ``ran`` is False if another sweep was
            already in progress.
        """
        if self._sweep_lock.locked():
            logger.debug("Temp Role Sweep Skipped", [("Reason", "Previous sweep still running")])
            return SweepResult(ran=False)

        async with self._sweep_lock:
            expired = self.store.get_expired()
            result = SweepResult()
            if not expired:
                return result

            for i in range(0, len(expired), SWEEP_BATCH_SIZE):
                batch = expired[i:i + SWEEP_BATCH_SIZE]
                outcomes = await asyncio.gather(
                    *(self._safe_expire(grant) for grant in batch),
                )
                for outcome in outcomes:
                    result.processed += 1
                    if outcome == REMOVED:
                        result.removed_roles += 1
                    elif outcome == CLEANED:
                        result.cleaned += 1
                    elif outcome == SKIPPED:
                        result.skipped += 1
                    else:
                        result.failed += 1

            logger.tree("Expired Temp Roles Processed", [
                ("Processed", str(result.processed)),
                ("Roles Removed", str(result.removed_roles)),
                ("Records Cleaned", str(result.cleaned)),
                ("Skipped", str(result.skipped)),
                ("Failed", str(result.failed)),
            ], emoji="⏰")
            return result

    async def _safe_expire(self, grant: TempRoleRecord) -> str:
        try:
            return await self._expire(grant)
        except Exception as e:
            logger.error("Temp Role Expiry Failed", [
                ("User ID", str(grant["user_id"])),
                ("Guild ID", str(grant["guild_id"])),
                ("Role ID", str(grant["role_id"])),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return FAILED

    async def _expire(self, grant: TempRoleRecord) -> str:
        """Claim one expired grant, then remove its role if still held."""
        claimed = self.store.remove(
            grant["guild_id"], grant["user_id"], grant["role_id"],
            expected_expires_at=grant["expires_at"],
        )
        if claimed is None:
            return SKIPPED

        guild = self.bot.get_guild(grant["guild_id"])
        if guild is None:
            logger.debug("Temp Role Cleaned", [("Guild ID", str(grant["guild_id"])), ("Reason", "Guild not accessible")])
            return CLEANED

        member = guild.get_member(grant["user_id"])
        if member is None:
            try:
                member = await guild.fetch_member(grant["user_id"])
            except discord.HTTPException:
                member = None
        if member is None:
            logger.debug("Temp Role Cleaned", [("User ID", str(grant["user_id"])), ("Reason", "Member left")])
            return CLEANED

        role = guild.get_role(grant["role_id"])
        if role is None:
            logger.debug("Temp Role Cleaned", [("Role ID", str(grant["role_id"])), ("Reason", "Role deleted")])
            return CLEANED

        if role not in member.roles:
            return CLEANED

        try:
            await member.remove_roles(role, reason="Temporary role expired")
        except discord.Forbidden:
            logger.error("Temp Role Removal Permission Denied", [
                ("User", str(member)),
                ("Role", role.name),
                ("Guild", guild.name),
            ])
            return FAILED
        except discord.HTTPException as e:
            logger.error("Temp Role Removal HTTP Error", [
                ("User", str(member)),
                ("Role", role.name),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            return FAILED

        logger.tree("TEMP ROLE EXPIRED", [
            ("User", str(member)),
            ("User ID", str(member.id)),
            ("Role", role.name),
            ("Guild", guild.name),
        ], emoji="⏰")
        await self._post_log(member, role)
        return REMOVED

    async def _post_log(self, member, role) -> None:
        channel_id = self.config.temp_role_log_channel_id
        if not channel_id:
            return
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            return

        embed = discord.Embed(title="Temp Role Expired", color=EmbedColors.TEMP_ROLE)
        embed.add_field(name="User", value=f"{member.mention} (`{member.id}`)", inline=True)
        embed.add_field(name="Role", value=role.mention, inline=True)
        await safe_async_operation("Temp Role Log", channel.send(embed=embed))


__all__ = ["TempRoleScheduler", "SweepResult"]
