"""
Warden - Member Events
======================

Role backup when a member leaves or is banned. Restoring is manual,
through /restore.
"""

from typing import TYPE_CHECKING, Union

import discord
from discord.ext import commands

if TYPE_CHECKING:
    from warden.bot import WardenBot


class MemberEvents(commands.Cog):
    """Member event handlers."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_member_remove(self, member: discord.Member) -> None:
        if self.bot.role_backup_service:
            await self.bot.role_backup_service.on_member_remove(member)

    @commands.Cog.listener()
    async def on_member_ban(self, guild: discord.Guild, user: Union[discord.User, discord.Member]) -> None:
        if self.bot.role_backup_service:
            await self.bot.role_backup_service.on_member_ban(guild, user)


async def setup(bot: "WardenBot") -> None:
    await bot.add_cog(MemberEvents(bot))
