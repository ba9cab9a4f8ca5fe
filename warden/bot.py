"""
Warden - Main Bot Class
=======================

Discord client that hosts the moderation bookkeeping services.

DESIGN:
    Central orchestrator that holds references to every service so cogs
    and buttons can reach them through the bot.

    SERVICE INITIALIZATION ORDER:
    1. setup_hook (before on_ready):
       - Command and event cog loading
       - Workflow button registration (persistent across restarts)
       - Command tree syncing

    2. on_ready:
       - Workflow service (audit log records)
       - Moderation service
       - Role backup service
       - Temp role scheduler (sweeps immediately, then every interval)
       - Maintenance service (case prune + backup sweep, then daily)
"""

from datetime import datetime

import discord
from discord.ext import commands

from warden.core.config import get_config
from warden.core.database import get_case_ledger, get_role_backups, get_temp_roles
from warden.core.logger import logger


class WardenBot(commands.Bot):
    """Main Discord bot class."""

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self) -> None:
        self.config = get_config()

        intents = discord.Intents.default()
        intents.members = True

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None,
        )

        self.start_time: datetime = datetime.now()

        # Service placeholders
        self.workflow_service = None
        self.moderation = None
        self.role_backup_service = None
        self.temp_role_scheduler = None
        self.maintenance_service = None

        self._ready_initialized: bool = False

        logger.info("Bot Instance Created")

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Load cogs, register persistent buttons and sync commands."""
        from warden.commands import COMMAND_COGS
        from warden.events import EVENT_COGS

        loaded = await self._load_cogs(COMMAND_COGS + EVENT_COGS)

        from warden.services.audit_log import setup_workflow_views
        setup_workflow_views(self)

        try:
            synced = await self.tree.sync()
        except discord.HTTPException as e:
            logger.error("Command Sync Failed", [("Error", str(e))])
            return

        logger.tree("Setup Complete", [
            ("Cogs", f"{loaded}/{len(COMMAND_COGS) + len(EVENT_COGS)}"),
            ("Slash Commands", str(len(synced))),
        ], emoji="✅")

    async def _load_cogs(self, paths) -> int:
        """Load each extension, logging failures. Returns how many loaded."""
        loaded = 0
        for path in paths:
            try:
                await self.load_extension(path)
            except commands.ExtensionError as e:
                logger.error("Cog Load Failed", [("Cog", path), ("Error", str(e))])
                continue
            logger.debug(f"Cog Loaded: {path.rsplit('.', 1)[-1]}")
            loaded += 1
        return loaded

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return

        self._ready_initialized = True

        if not self.user:
            return

        logger.tree("BOT ONLINE", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
        ], emoji="🚀")

        if self.config.error_webhook_url:
            logger.set_webhook(self.config.error_webhook_url)

        await self._init_services()

    # =========================================================================
    # Service Initialization
    # =========================================================================

    async def _init_services(self) -> None:
        """Initialize all services after Discord connection."""
        try:
            from warden.services.audit_log import WorkflowService
            self.workflow_service = WorkflowService(self)
            logger.info("Workflow Service Initialized")

            from warden.services.moderation import ModerationService
            self.moderation = ModerationService(self, self.workflow_service)
            logger.info("Moderation Service Initialized")

            from warden.services.role_backups import RoleBackupService
            self.role_backup_service = RoleBackupService(self)
            logger.info("Role Backup Service Initialized")

            from warden.services.temp_roles import TempRoleScheduler
            self.temp_role_scheduler = TempRoleScheduler(self)
            await self.temp_role_scheduler.start()

            from warden.services.maintenance import MaintenanceService
            self.maintenance_service = MaintenanceService(self)
            self.maintenance_service.start()

            def enabled(value) -> str:
                return "✓ Enabled" if value else "✗ Disabled"

            logger.tree_nested("ALL SERVICES INITIALIZED", [
                ("Stores", [
                    ("Cases", str(get_case_ledger().count_cases())),
                    ("Role Backups", str(len(get_role_backups().list_backups()))),
                    ("Temp Roles", str(len(get_temp_roles().list_grants()))),
                ]),
                ("Log Channels", [
                    ("Global Ban", enabled(self.config.global_ban_log_channel_id)),
                    ("Blacklist", enabled(self.config.blacklist_log_channel_id)),
                    ("Role Backups", enabled(self.config.role_backup_log_channel_id)),
                    ("Temp Roles", enabled(self.config.temp_role_log_channel_id)),
                ]),
            ], emoji="🚀")

        except Exception as e:
            logger.error("Service Initialization Failed", [("Error", str(e))])

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> None:
        """Graceful shutdown with proper cleanup."""
        logger.info("Initiating Graceful Shutdown")

        if self.temp_role_scheduler:
            await self.temp_role_scheduler.stop()

        if self.maintenance_service:
            await self.maintenance_service.stop()

        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
        ], emoji="🛑")

    async def close(self) -> None:
        await self.shutdown()


__all__ = ["WardenBot"]
