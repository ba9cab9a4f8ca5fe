"""
Warden - Events Package
=======================

Discord event listeners, loaded as cogs.
"""

EVENT_COGS = [
    "warden.events.members",
]

__all__ = ["EVENT_COGS"]
