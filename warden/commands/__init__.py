"""
Warden - Commands Package
=========================

Slash commands, implemented as discord.py Cogs and loaded by the bot
through load_extension().

Available Commands:
    /blacklist, /unblacklist: Swap a member's roles for the blacklist role
    /globalban, /globalunban: Ban or unban a user in every server
    /temprole grant|remove|status: Time-boxed role grants
    /restore: Ownership-only restore of backed-up roles
"""

COMMAND_COGS = [
    "warden.commands.moderation",
    "warden.commands.temprole",
    "warden.commands.restore",
]

__all__ = ["COMMAND_COGS"]
