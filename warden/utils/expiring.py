"""
Warden - Expiring Set
=====================

Short-lived membership set keyed by (guild, user).

Usage:
    from warden.utils.expiring import ExpiringSet

    recent = ExpiringSet(window=5.0)
    if recent.add((guild.id, member.id)):
        ...  # first sighting inside the window
"""

import time
from typing import Callable, Dict, Hashable, Optional


class ExpiringSet:
    """
    Set whose members drop out ``window`` seconds after insertion.

    DESIGN:
        Expiry is checked on access instead of with timers, so there are
        no background tasks to cancel and tests can drive a fake clock.
        Re-adding a live key does not extend it.
    """

    def __init__(self, window: float, clock: Optional[Callable[[], float]] = None) -> None:
        self.window = window
        self._clock = clock or time.monotonic
        self._entries: Dict[Hashable, float] = {}

    def _purge(self, now: float) -> None:
        stale = [k for k, added in self._entries.items() if now - added >= self.window]
        for key in stale:
            del self._entries[key]

    def add(self, key: Hashable) -> bool:
        """
        Insert a key.

        Returns:
            True if the key was not already live, False if it was seen
            within the window.
        """
        now = self._clock()
        self._purge(now)
        if key in self._entries:
            return False
        self._entries[key] = now
        return True

    def discard(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def __contains__(self, key: Hashable) -> bool:
        self._purge(self._clock())
        return key in self._entries

    def __len__(self) -> int:
        self._purge(self._clock())
        return len(self._entries)


__all__ = ["ExpiringSet"]
