"""
Tests for warden/utils/batch.py and warden/utils/expiring.py
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import FakeClock
from warden.utils.batch import SkipTarget, run_batch
from warden.utils.expiring import ExpiringSet


# =============================================================================
# run_batch() Tests
# =============================================================================

class TestRunBatch:
    """Tests for run_batch function."""

    @pytest.mark.asyncio
    async def test_outcomes_in_target_order(self):
        async def action(n):
            if n == 2:
                raise SkipTarget("nothing to do")
            if n == 3:
                raise RuntimeError("boom")

        result = await run_batch([1, 2, 3, 4], action, name="Test")

        assert [o.status for o in result.outcomes] == ["succeeded", "skipped", "failed", "succeeded"]
        assert result.succeeded_count == 2
        assert result.skipped[0].detail == "nothing to do"
        assert result.failed[0].detail == "boom"
        assert result.summary() == "2 succeeded, 1 failed, 1 skipped"

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        in_flight = 0
        peak = 0

        async def action(_):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1

        await run_batch(range(20), action, concurrency=3)

        assert peak <= 3

    @pytest.mark.asyncio
    async def test_progress_skips_final_completion(self):
        progress = AsyncMock()

        async def action(_):
            return None

        await run_batch(range(25), action, on_progress=progress, progress_every=10)

        assert [c.args for c in progress.await_args_list] == [(10, 25), (20, 25)]

    @pytest.mark.asyncio
    async def test_progress_failure_does_not_stop_batch(self):
        progress = AsyncMock(side_effect=RuntimeError("edit failed"))

        async def action(_):
            return None

        result = await run_batch(range(5), action, on_progress=progress, progress_every=1)

        assert result.succeeded_count == 5

    @pytest.mark.asyncio
    async def test_empty(self):
        result = await run_batch([], AsyncMock())
        assert result.total == 0


# =============================================================================
# ExpiringSet Tests
# =============================================================================

class TestExpiringSet:
    """Tests for ExpiringSet."""

    def test_first_sighting_only(self):
        clock = FakeClock()
        seen = ExpiringSet(5.0, clock=clock)
        assert seen.add((1, 2))
        assert not seen.add((1, 2))
        assert seen.add((1, 3))

    def test_expires_after_window(self):
        clock = FakeClock()
        seen = ExpiringSet(5.0, clock=clock)
        seen.add("a")
        clock.advance(4)
        assert "a" in seen
        clock.advance(1)
        assert "a" not in seen
        assert seen.add("a")

    def test_readd_does_not_extend(self):
        clock = FakeClock()
        seen = ExpiringSet(5.0, clock=clock)
        seen.add("a")
        clock.advance(3)
        seen.add("a")
        clock.advance(3)
        assert len(seen) == 0

    def test_discard(self):
        seen = ExpiringSet(5.0, clock=FakeClock())
        seen.add("a")
        seen.discard("a")
        seen.discard("missing")
        assert seen.add("a")
