"""
Warden - Moderation Bookkeeping Bot
===================================

Case ledger, role backups, temp roles and audit-log review workflows for
a multi-server Discord community.

Package Structure:
- bot.py: Discord client wiring services together
- core/: Configuration, logging, constants and JSON stores
- services/: Schedulers, workflow state machine, moderation actions
- events/: Discord event cogs
- commands/: Slash command cogs
- utils/: Batch execution, expiring sets, durations, error handling
"""

__version__ = "1.0.0"
