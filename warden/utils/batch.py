"""
Warden - Batch Executor
=======================

Bounded-concurrency fan-out that reports one outcome per target.

DESIGN:
    Global actions touch every guild the bot is in. One guild rejecting
    the call (missing permission, rate limit) must not stop the others,
    so each target runs independently under a semaphore and the caller
    gets aggregate counts instead of the first exception.

    An action signals its outcome by:
    - returning normally            -> succeeded
    - raising SkipTarget            -> skipped (nothing to do there)
    - raising any other Exception   -> failed (logged, batch continues)

Usage:
    result = await run_batch(bot.guilds, unban_in_guild, name="Global Unban")
    result.succeeded_count, result.failed_count, result.skipped_count
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from warden.core.constants import FANOUT_CONCURRENCY, LOG_TRUNCATE_MEDIUM, PROGRESS_UPDATE_EVERY
from warden.core.logger import logger


SUCCEEDED = "succeeded"
FAILED = "failed"
SKIPPED = "skipped"


class SkipTarget(Exception):
    """Raised by a batch action when a target needs no work."""

    pass


@dataclass
class TargetOutcome:
    """Result for a single target."""

    target: Any
    status: str
    detail: str = ""


@dataclass
class BatchResult:
    """Per-target outcomes of one fan-out."""

    outcomes: List[TargetOutcome] = field(default_factory=list)

    def _with(self, status: str) -> List[TargetOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> List[TargetOutcome]:
        return self._with(SUCCEEDED)

    @property
    def failed(self) -> List[TargetOutcome]:
        return self._with(FAILED)

    @property
    def skipped(self) -> List[TargetOutcome]:
        return self._with(SKIPPED)

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def summary(self) -> str:
        return f"{self.succeeded_count} succeeded, {self.failed_count} failed, {self.skipped_count} skipped"


ProgressCallback = Callable[[int, int], Awaitable[None]]


def _target_label(target: Any) -> str:
    name = getattr(target, "name", None)
    target_id = getattr(target, "id", None)
    if name is not None and target_id is not None:
        return f"{name} ({target_id})"
    return str(target)


async def run_batch(
    targets: Iterable[Any],
    action: Callable[[Any], Awaitable[Any]],
    name: str = "Batch",
    concurrency: int = FANOUT_CONCURRENCY,
    on_progress: Optional[ProgressCallback] = None,
    progress_every: int = PROGRESS_UPDATE_EVERY,
) -> BatchResult:
    """
    Run ``action`` once per target with at most ``concurrency`` in flight.

    Args:
        targets: Items to act on (usually guilds).
        action: Coroutine function called with one target.
        name: Label for log lines.
        concurrency: Maximum simultaneous actions.
        on_progress: Optional coroutine called with (done, total) every
            ``progress_every`` completions. It is never called for the
            final completion; the caller sends the final response.
        progress_every: Completions between progress callbacks.

    Returns:
        BatchResult with outcomes in target order.
    """
    items = list(targets)
    total = len(items)
    semaphore = asyncio.Semaphore(max(1, concurrency))
    done = 0

    async def _report() -> None:
        nonlocal done
        done += 1
        if on_progress is None or done >= total or done % progress_every:
            return
        try:
            await on_progress(done, total)
        except Exception as e:
            logger.warning("Batch Progress Update Failed", [
                ("Batch", name),
                ("Error", str(e)[:LOG_TRUNCATE_MEDIUM]),
            ])

    async def _run_one(target: Any) -> TargetOutcome:
        async with semaphore:
            try:
                await action(target)
                outcome = TargetOutcome(target, SUCCEEDED)
            except SkipTarget as e:
                outcome = TargetOutcome(target, SKIPPED, str(e))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Batch Target Failed", [
                    ("Batch", name),
                    ("Target", _target_label(target)),
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:LOG_TRUNCATE_MEDIUM]),
                ])
                outcome = TargetOutcome(target, FAILED, str(e))
        await _report()
        return outcome

    outcomes = await asyncio.gather(*(_run_one(t) for t in items))
    result = BatchResult(list(outcomes))

    logger.tree(f"{name} Complete", [
        ("Targets", str(total)),
        ("Succeeded", str(result.succeeded_count)),
        ("Failed", str(result.failed_count)),
        ("Skipped", str(result.skipped_count)),
    ], emoji="📊")
    return result


__all__ = [
    "SkipTarget",
    "TargetOutcome",
    "BatchResult",
    "run_batch",
    "ProgressCallback",
    "SUCCEEDED",
    "FAILED",
    "SKIPPED",
]
