"""
Warden - Role Restore Command
=============================

/restore: give a member back the roles saved when they left or were banned.

Restoring is never automatic. Only ownership can run it, one member
at a time.
"""

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from warden.core.config import is_owner
from warden.core.logger import logger

if TYPE_CHECKING:
    from warden.bot import WardenBot


class RestoreCog(commands.Cog):
    """Manual role restore from backups."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

    @app_commands.command(name="restore", description="Give a member back the roles they had when they left")
    @app_commands.describe(member="Member to restore roles for")
    @app_commands.guild_only()
    async def restore(self, interaction: discord.Interaction, member: discord.Member) -> None:
        if not is_owner(interaction.user):
            await interaction.response.send_message("Only ownership can restore roles.", ephemeral=True)
            return
        if self.bot.role_backup_service is None:
            await interaction.response.send_message("The bot is still starting up. Try again in a moment.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await self.bot.role_backup_service.restore(member)

        if result is None:
            message = f"No role backup found for {member.mention}. Backups are kept for 24 hours."
        else:
            message = (
                f"Restored {result.succeeded_count} role(s) to {member.mention}"
                f" ({result.skipped_count} skipped, {result.failed_count} failed)."
            )
            if result.failed_count:
                message += " The backup was kept so you can try again."

        logger.tree("Role Restore Requested", [
            ("User", f"{member} ({member.id})"),
            ("By", f"{interaction.user} ({interaction.user.id})"),
            ("Result", result.summary() if result else "No backup"),
        ], emoji="♻️")
        await interaction.followup.send(message, ephemeral=True)


async def setup(bot: "WardenBot") -> None:
    await bot.add_cog(RestoreCog(bot))
    logger.tree("Restore Cog Loaded", [("Commands", "/restore")], emoji="♻️")
