"""
Warden - Temp Role Commands
===========================

/temprole grant, /temprole remove and /temprole status.

The scheduler only tracks deadlines. These commands add and remove the
Discord role themselves: grant adds the role before tracking it, remove
takes the role away only if it un-tracked a grant, so a sweep that has
already claimed the grant is never doubled.
"""

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from warden.core.config import is_developer
from warden.core.constants import LOG_TRUNCATE_SHORT
from warden.core.logger import logger
from warden.core.moderation_validation import validate_role_assignable
from warden.utils.duration import format_duration, format_remaining, parse_duration

if TYPE_CHECKING:
    from warden.bot import WardenBot


class TempRoleCog(commands.Cog):
    """Time-boxed role grants."""

    temprole = app_commands.Group(
        name="temprole",
        description="Give a role that removes itself later",
        guild_only=True,
    )

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        allowed = is_developer(interaction.user.id) or interaction.user.guild_permissions.manage_roles
        if not allowed:
            await interaction.response.send_message("You need the Manage Roles permission.", ephemeral=True)
            return False
        if self.bot.temp_role_scheduler is None:
            await interaction.response.send_message("The bot is still starting up. Try again in a moment.", ephemeral=True)
            return False
        return True

    @temprole.command(name="grant", description="Give a member a role for a limited time")
    @app_commands.describe(member="Member to receive the role", role="Role to give", duration="How long, e.g. 30m, 12h, 1d12h")
    async def grant(self, interaction: discord.Interaction, member: discord.Member, role: discord.Role, duration: str) -> None:
        seconds = parse_duration(duration)
        if seconds is None:
            await interaction.response.send_message(f"`{duration}` is not a valid duration. Try `30m`, `12h` or `1d12h`.", ephemeral=True)
            return

        check = validate_role_assignable(interaction.user, role, interaction.guild, "grant")
        if not check.is_valid:
            await interaction.response.send_message(check.error_message, ephemeral=True)
            return

        try:
            await member.add_roles(role, reason=f"Temporary role ({format_duration(seconds)}) by {interaction.user}")
        except discord.Forbidden:
            await interaction.response.send_message(f"I can't assign {role.mention}. Check that my role is above it.", ephemeral=True)
            return
        except discord.HTTPException as e:
            logger.warning("Temp Role Assign Failed", [
                ("User", f"{member} ({member.id})"),
                ("Role", role.name),
                ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
            ])
            await interaction.response.send_message(f"Failed to assign the role: {e}", ephemeral=True)
            return

        record = self.bot.temp_role_scheduler.grant(interaction.guild.id, member.id, role.id, seconds, moderator_id=interaction.user.id)
        if record is None:
            await interaction.response.send_message(
                f"{role.mention} was given to {member.mention}, but its expiry could not be saved. Remove it manually.",
                ephemeral=True,
            )
            return

        await interaction.response.send_message(
            f"Gave {role.mention} to {member.mention} for {format_duration(seconds)}.",
            ephemeral=True,
        )

    @temprole.command(name="remove", description="End a temporary role early")
    @app_commands.describe(member="Member holding the role", role="The temporary role")
    async def remove(self, interaction: discord.Interaction, member: discord.Member, role: discord.Role) -> None:
        check = validate_role_assignable(interaction.user, role, interaction.guild, "remove")
        if not check.is_valid:
            await interaction.response.send_message(check.error_message, ephemeral=True)
            return

        record = self.bot.temp_role_scheduler.revoke(interaction.guild.id, member.id, role.id)
        if record is None:
            await interaction.response.send_message(f"{member.mention} has no temporary grant of {role.mention}.", ephemeral=True)
            return

        if role in member.roles:
            try:
                await member.remove_roles(role, reason=f"Temporary role removed by {interaction.user}")
            except discord.HTTPException as e:
                await interaction.response.send_message(
                    f"Stopped tracking {role.mention}, but the role could not be removed: {e}",
                    ephemeral=True,
                )
                return

        logger.tree("Temp Role Revoked", [
            ("User", f"{member} ({member.id})"),
            ("Role", role.name),
            ("By", f"{interaction.user} ({interaction.user.id})"),
        ], emoji="✂️")
        await interaction.response.send_message(f"Removed {role.mention} from {member.mention}.", ephemeral=True)

    @temprole.command(name="status", description="Show when a temporary role expires")
    @app_commands.describe(member="Member holding the role", role="The temporary role")
    async def status(self, interaction: discord.Interaction, member: discord.Member, role: discord.Role) -> None:
        scheduler = self.bot.temp_role_scheduler
        record = scheduler.status(interaction.guild.id, member.id, role.id)
        if record is None:
            await interaction.response.send_message(f"{member.mention} has no temporary grant of {role.mention}.", ephemeral=True)
            return

        expires_at = int(record["expires_at"])
        remaining = format_remaining(record["expires_at"], scheduler.store.now())
        granted_by = f"<@{record['moderator_id']}>" if record.get("moderator_id") else "Unknown"
        await interaction.response.send_message(
            f"{role.mention} on {member.mention}\n"
            f"Expires: <t:{expires_at}:F> ({remaining})\n"
            f"Granted by: {granted_by}",
            ephemeral=True,
        )


async def setup(bot: "WardenBot") -> None:
    await bot.add_cog(TempRoleCog(bot))
    logger.tree("Temp Role Cog Loaded", [
        ("Commands", "/temprole grant, /temprole remove, /temprole status"),
    ], emoji="⏳")
