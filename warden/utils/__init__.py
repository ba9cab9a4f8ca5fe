"""
Warden - Utils Package
======================

Stateless helpers shared by the services.

Available Utilities:
    batch: Bounded-concurrency fan-out with per-target outcomes
    expiring: Time-windowed de-duplication set
    duration: Duration parsing and formatting
    async_utils: Logged best-effort awaits and background tasks
    error_handler: Categorized logging for unexpected exceptions
"""

from .batch import BatchResult, SkipTarget, TargetOutcome, run_batch
from .duration import format_duration, format_remaining, parse_duration
from .expiring import ExpiringSet


__all__ = [
    "BatchResult",
    "SkipTarget",
    "TargetOutcome",
    "run_batch",
    "format_duration",
    "format_remaining",
    "parse_duration",
    "ExpiringSet",
]
