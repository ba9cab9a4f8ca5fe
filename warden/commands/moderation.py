"""
Warden - Moderation Commands
============================

/blacklist, /unblacklist, /globalban and /globalunban.

DESIGN:
    Each command defers once and then edits that single response:
    progress lines while a global action is fanning out, and finally the
    ActionResult message. The moderator never sees a second reply.
"""

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from warden.core.constants import LOG_TRUNCATE_SHORT
from warden.core.logger import logger

if TYPE_CHECKING:
    from warden.bot import WardenBot
    from warden.services.moderation import ActionResult


class ModerationCog(commands.Cog):
    """Blacklist and global ban commands."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _begin(self, interaction: discord.Interaction) -> bool:
        if self.bot.moderation is None:
            await interaction.response.send_message("The bot is still starting up. Try again in a moment.", ephemeral=True)
            return False
        await interaction.response.defer(ephemeral=True, thinking=True)
        return True

    @staticmethod
    def _progress(interaction: discord.Interaction, verb: str):
        async def report(done: int, total: int) -> None:
            await interaction.edit_original_response(content=f"{verb}... {done}/{total} servers processed")
        return report

    @staticmethod
    async def _finish(interaction: discord.Interaction, result: "ActionResult") -> None:
        try:
            await interaction.edit_original_response(content=result.message)
        except discord.HTTPException as e:
            logger.warning("Command Response Failed", [
                ("Command", interaction.command.name if interaction.command else "unknown"),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])

    # =========================================================================
    # Blacklist
    # =========================================================================

    @app_commands.command(name="blacklist", description="Blacklist a member (removes their roles)")
    @app_commands.describe(member="Member to blacklist", reason="Reason for the blacklist")
    @app_commands.guild_only()
    async def blacklist(self, interaction: discord.Interaction, member: discord.Member, reason: Optional[str] = None) -> None:
        if not await self._begin(interaction):
            return
        result = await self.bot.moderation.blacklist(interaction.guild, member, interaction.user, reason)
        await self._finish(interaction, result)

    @app_commands.command(name="unblacklist", description="Lift a member's blacklist")
    @app_commands.describe(member="Member to unblacklist", reason="Reason for lifting the blacklist")
    @app_commands.guild_only()
    async def unblacklist(self, interaction: discord.Interaction, member: discord.Member, reason: Optional[str] = None) -> None:
        if not await self._begin(interaction):
            return
        result = await self.bot.moderation.unblacklist(interaction.guild, member, interaction.user, reason)
        await self._finish(interaction, result)

    # =========================================================================
    # Global Ban
    # =========================================================================

    @app_commands.command(name="globalban", description="Ban a user from every server the bot is in")
    @app_commands.describe(user="User to ban (mention or ID)", reason="Reason for the ban")
    @app_commands.guild_only()
    async def globalban(self, interaction: discord.Interaction, user: discord.User, reason: Optional[str] = None) -> None:
        if not await self._begin(interaction):
            return
        result = await self.bot.moderation.global_ban(
            interaction.guild, user, interaction.user, reason,
            on_progress=self._progress(interaction, "Banning"),
        )
        await self._finish(interaction, result)

    @app_commands.command(name="globalunban", description="Unban a user from every server the bot is in")
    @app_commands.describe(user="User to unban (ID)", reason="Reason for the unban")
    @app_commands.guild_only()
    async def globalunban(self, interaction: discord.Interaction, user: discord.User, reason: Optional[str] = None) -> None:
        if not await self._begin(interaction):
            return
        result = await self.bot.moderation.global_unban(
            interaction.guild, user, interaction.user, reason,
            on_progress=self._progress(interaction, "Unbanning"),
        )
        await self._finish(interaction, result)


async def setup(bot: "WardenBot") -> None:
    await bot.add_cog(ModerationCog(bot))
    logger.tree("Moderation Cog Loaded", [
        ("Commands", "/blacklist, /unblacklist, /globalban, /globalunban"),
    ], emoji="🔨")
