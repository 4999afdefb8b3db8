"""Scheduler loop that fires one snapshot tick per period."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from snapshot_relay.core.errors import FatalSchedulerError

__all__ = ["start_main_loop", "get_now_time", "DEFAULT_SHUTDOWN_GRACE_SEC"]

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_GRACE_SEC = 10.0

TickFn = Callable[[float], Awaitable[object]]


def get_now_time() -> float:
    """Get current monotonic time in seconds.

    Uses event loop's monotonic clock for accurate scheduling
    without wall-clock drift.

    Returns:
        Current time in seconds (monotonic).
    """
    return asyncio.get_running_loop().time()


async def _wait_for_stop(stop_event: asyncio.Event, delay_sec: float) -> None:
    """Sleep until the next tick is due or the stop event is set."""
    if delay_sec <= 0:
        # Still yield so that tick tasks get a chance to run.
        await asyncio.sleep(0)
        return
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=delay_sec)
    except asyncio.TimeoutError:
        pass


async def start_main_loop(
    period_in_sec: float,
    stop_event: asyncio.Event,
    tick_fn: TickFn,
    shutdown_grace_sec: float = DEFAULT_SHUTDOWN_GRACE_SEC,
) -> None:
    """Run the scheduling loop.

    Periodically:
    1. Start one tick as a background task (fire-and-forget).
    2. Advance the ideal tick time by exactly one period.
    3. Wait until that time (monotonic clock) or until stop is requested.
    4. Repeat until stop_event is set, then drain in-flight ticks.

    The first tick fires immediately. Tick times are ``start + n * period``,
    so a late wake-up does not shift later ticks; missed ticks fire back to
    back instead of being skipped.

    Args:
        period_in_sec: Seconds between ticks.
        stop_event: Event that ends the loop once set.
        tick_fn: Async tick handler, called with the tick's ideal start time.
        shutdown_grace_sec: How long in-flight ticks may keep running after
            stop before they are cancelled.

    Raises:
        FatalSchedulerError: If a tick task cannot be created or the timer
            wait fails. Tick handler errors never propagate.

    Notes:
        - The loop never awaits individual ticks: a slow fetch or a slow
          broker acknowledgement does not delay the next tick. Ticks may
          overlap when one takes longer than the period.
    """
    next_tick: float = get_now_time()
    pending: set[asyncio.Task[None]] = set()
    loop = asyncio.get_running_loop()

    async def _run_once(scheduled_at: float) -> None:
        """Run one tick and log any error it leaks."""
        try:
            await tick_fn(scheduled_at)
        except asyncio.CancelledError:
            logger.info("Tick cancelled during shutdown.")
            raise
        except Exception as e:  # noqa: BLE001
            logger.error(f"Unexpected error in tick: {e}", exc_info=True)
        finally:
            task = asyncio.current_task()
            if task is not None:
                pending.discard(task)

    while not stop_event.is_set():
        try:
            task: asyncio.Task[None] = loop.create_task(_run_once(next_tick))
        except RuntimeError as e:
            raise FatalSchedulerError(f"Cannot schedule tick: {e}") from e
        pending.add(task)

        next_tick += period_in_sec
        try:
            await _wait_for_stop(stop_event, next_tick - get_now_time())
        except Exception as e:
            raise FatalSchedulerError(f"Tick timer failed: {e}") from e

    await _drain(pending, shutdown_grace_sec)


async def _drain(pending: set[asyncio.Task[None]], grace_sec: float) -> None:
    """Give in-flight ticks a grace period, then cancel the stragglers."""
    if not pending:
        return

    logger.info(f"Waiting up to {grace_sec}s for {len(pending)} in-flight tick(s)...")
    _, still_running = await asyncio.wait(set(pending), timeout=grace_sec)

    if still_running:
        logger.warning(f"Cancelling {len(still_running)} tick(s) still running after grace period")
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)
