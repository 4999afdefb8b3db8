"""Tests for the tick scheduler."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from snapshot_relay.core.errors import FatalSchedulerError, FetchError
from snapshot_relay.core.event_loop import start_main_loop

__all__ = []


def make_n_shot_tick(stop_event: asyncio.Event, n: int, side_effect=None) -> AsyncMock:
    """Create tick handler that sets stop_event on its N-th call.

    Args:
        stop_event: Event ending the loop.
        n: Number of calls before stopping.
        side_effect: Optional exception raised by every call.

    Returns:
        Mock tick handler.
    """
    calls = 0

    async def tick(scheduled_at: float) -> None:
        nonlocal calls
        calls += 1
        if calls >= n:
            stop_event.set()
        if side_effect is not None:
            raise side_effect

    return AsyncMock(side_effect=tick)


@pytest.mark.asyncio
async def test_event_loop_fires_first_tick_immediately() -> None:
    """First tick should run without waiting a full period."""
    stop = asyncio.Event()
    tick_fn = make_n_shot_tick(stop, 1)

    await asyncio.wait_for(
        start_main_loop(period_in_sec=3600, stop_event=stop, tick_fn=tick_fn),
        timeout=1.0,
    )

    tick_fn.assert_called_once()


@pytest.mark.asyncio
async def test_event_loop_calls_tick_multiple_times() -> None:
    """Loop should call the tick handler once per period."""
    stop = asyncio.Event()
    tick_fn = make_n_shot_tick(stop, 3)

    await start_main_loop(period_in_sec=0, stop_event=stop, tick_fn=tick_fn)

    assert tick_fn.call_count == 3


@pytest.mark.asyncio
async def test_event_loop_passes_scheduled_times_one_period_apart() -> None:
    """Scheduled times should advance by exactly one period."""
    stop = asyncio.Event()
    tick_fn = make_n_shot_tick(stop, 4)

    await start_main_loop(period_in_sec=0.01, stop_event=stop, tick_fn=tick_fn)

    scheduled = [c.args[0] for c in tick_fn.call_args_list]
    gaps = [b - a for a, b in zip(scheduled, scheduled[1:])]
    assert gaps == pytest.approx([0.01] * 3)


@pytest.mark.asyncio
async def test_event_loop_continues_after_tick_errors() -> None:
    """A failing tick must not stop later ticks."""
    stop = asyncio.Event()
    tick_fn = make_n_shot_tick(stop, 3, side_effect=RuntimeError("boom"))

    await start_main_loop(period_in_sec=0, stop_event=stop, tick_fn=tick_fn)

    assert tick_fn.call_count == 3


@pytest.mark.asyncio
async def test_event_loop_continues_after_fetch_error() -> None:
    """A FetchError on tick N should not prevent tick N+1."""
    stop = asyncio.Event()
    tick_fn = make_n_shot_tick(stop, 2, side_effect=FetchError("http://cam", "HTTP status 500", 500))

    await start_main_loop(period_in_sec=0, stop_event=stop, tick_fn=tick_fn)

    assert tick_fn.call_count == 2


@pytest.mark.asyncio
async def test_event_loop_fires_at_least_elapsed_over_period_ticks() -> None:
    """Over an elapsed window the loop fires 1 + floor(elapsed/period) ticks or more."""
    stop = asyncio.Event()
    tick_fn = AsyncMock()
    period = 0.02

    loop_task = asyncio.create_task(
        start_main_loop(period_in_sec=period, stop_event=stop, tick_fn=tick_fn)
    )
    await asyncio.sleep(0.1)
    stop.set()
    await loop_task

    # The tick due exactly at the 0.1s boundary may race the stop.
    assert tick_fn.call_count >= int(0.1 // period)


@pytest.mark.asyncio
async def test_event_loop_does_not_wait_for_slow_ticks() -> None:
    """Ticks should overlap instead of delaying the schedule."""
    stop = asyncio.Event()
    started = 0
    release = asyncio.Event()

    async def slow_tick(scheduled_at: float) -> None:
        nonlocal started
        started += 1
        if started >= 3:
            stop.set()
        await release.wait()

    loop_task = asyncio.create_task(
        start_main_loop(period_in_sec=0, stop_event=stop, tick_fn=slow_tick, shutdown_grace_sec=5)
    )
    await asyncio.sleep(0.05)
    assert started == 3
    release.set()
    await loop_task


@pytest.mark.asyncio
async def test_event_loop_waits_for_in_flight_ticks_on_stop() -> None:
    """In-flight ticks should finish within the grace period."""
    stop = asyncio.Event()
    finished = asyncio.Event()

    async def tick(scheduled_at: float) -> None:
        stop.set()
        await asyncio.sleep(0.02)
        finished.set()

    await start_main_loop(period_in_sec=0, stop_event=stop, tick_fn=tick, shutdown_grace_sec=1)

    assert finished.is_set()


@pytest.mark.asyncio
async def test_event_loop_cancels_ticks_after_grace_period() -> None:
    """Ticks outliving the grace period should be cancelled."""
    stop = asyncio.Event()
    cancelled = False

    async def hung_tick(scheduled_at: float) -> None:
        nonlocal cancelled
        stop.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            cancelled = True
            raise

    await start_main_loop(period_in_sec=0, stop_event=stop, tick_fn=hung_tick, shutdown_grace_sec=0.01)

    assert cancelled is True


@pytest.mark.asyncio
async def test_event_loop_waits_one_period_between_ticks() -> None:
    """Loop should wait on the stop event for about one period."""
    stop = asyncio.Event()
    tick_fn = AsyncMock()
    timeouts: list[float] = []

    async def fake_wait_for(aw, timeout):
        aw.close()
        timeouts.append(timeout)
        stop.set()

    with patch("snapshot_relay.core.event_loop.asyncio.wait_for", side_effect=fake_wait_for):
        await start_main_loop(period_in_sec=5.0, stop_event=stop, tick_fn=tick_fn)

    assert len(timeouts) == 1
    assert 4.0 < timeouts[0] <= 5.0


@pytest.mark.asyncio
async def test_event_loop_raises_fatal_error_when_timer_breaks() -> None:
    """A broken timer wait is the one error that ends the loop."""
    stop = asyncio.Event()
    tick_fn = AsyncMock()

    async def broken_wait_for(aw, timeout):
        aw.close()
        raise OSError("timer primitive failed")

    with (
        patch("snapshot_relay.core.event_loop.asyncio.wait_for", side_effect=broken_wait_for),
        pytest.raises(FatalSchedulerError, match="Tick timer failed"),
    ):
        await start_main_loop(period_in_sec=5.0, stop_event=stop, tick_fn=tick_fn)
