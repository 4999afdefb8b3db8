"""One snapshot tick: fetch, then persist and publish the same payload."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from snapshot_relay.core.errors import FetchError, PersistError, PublishError
from snapshot_relay.core.event_loop import get_now_time
from snapshot_relay.ports.metrics import MetricsPort
from snapshot_relay.ports.settings import SettingsPort
from snapshot_relay.ports.snapshot import SnapshotPayload, TickOutcome

__all__ = ["run_tick", "make_tick_handler"]

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], Awaitable[SnapshotPayload]]
SaveFn = Callable[[bytes, str], Awaitable[object]]
PublishFn = Callable[[bytes, str], Awaitable[object]]


def _check_sink(result: object, expected: type[Exception], what: str) -> str | None:
    """Turn one gathered sink result into an error string (None on success)."""
    if isinstance(result, expected):
        logger.error(f"{what} failed: {result}")
        return str(result)
    if isinstance(result, Exception):
        logger.error(f"Unexpected error during {what.lower()}: {result!r}", exc_info=result)
        return f"{what.lower()}: {result!r}"
    if isinstance(result, BaseException):
        raise result
    return None


async def run_tick(
    settings: SettingsPort,
    scheduled_at_sec: float,
    fetch_fn: FetchFn,
    save_fn: SaveFn,
    publish_fn: PublishFn,
) -> TickOutcome:
    """Run one fetch -> persist/publish cycle.

    Persist and publish are independent sinks of the same payload: they run
    concurrently and one failing never prevents the other. A failed fetch
    skips both sinks. None of the relay errors escape this function.

    Args:
        settings: Runtime settings (url, file path, topic).
        scheduled_at_sec: Monotonic time the tick was due.
        fetch_fn: Fetches the snapshot for a URL.
        save_fn: Writes ``(payload, file_path)``.
        publish_fn: Enqueues ``(payload, topic)``; must not wait for the ack.

    Returns:
        The tick outcome.
    """
    fired_at_sec = get_now_time()

    try:
        snapshot = await fetch_fn(settings.snapshot_url)
    except FetchError as e:
        logger.warning(f"Fetch failed, skipping tick: {e}")
        return TickOutcome(
            scheduled_at_sec=scheduled_at_sec,
            fired_at_sec=fired_at_sec,
            fetched=False,
            errors=(str(e),),
        )

    logger.debug(f"Fetched {len(snapshot.body)} bytes from {snapshot.url}")

    persist_result, publish_result = await asyncio.gather(
        save_fn(snapshot.body, settings.snapshot_file_path),
        publish_fn(snapshot.body, settings.topic),
        return_exceptions=True,
    )

    errors = [
        err
        for err in (
            _check_sink(persist_result, PersistError, "Persist"),
            _check_sink(publish_result, PublishError, "Publish"),
        )
        if err is not None
    ]

    return TickOutcome(
        scheduled_at_sec=scheduled_at_sec,
        fired_at_sec=fired_at_sec,
        fetched=True,
        persisted=not isinstance(persist_result, BaseException),
        published=not isinstance(publish_result, BaseException),
        payload_size=len(snapshot.body),
        errors=tuple(errors),
    )


def make_tick_handler(
    settings: SettingsPort,
    fetch_fn: FetchFn,
    save_fn: SaveFn,
    publish_fn: PublishFn,
    metrics: MetricsPort | None = None,
) -> Callable[[float], Awaitable[TickOutcome]]:
    """Bind the long-lived handles into a tick handler for the scheduler.

    Args:
        settings: Runtime settings.
        fetch_fn: Snapshot fetcher.
        save_fn: Snapshot persister.
        publish_fn: Snapshot publisher.
        metrics: Optional metrics collector, updated after every tick.

    Returns:
        Async callable taking the tick's scheduled time.
    """

    async def _tick(scheduled_at_sec: float) -> TickOutcome:
        outcome = await run_tick(
            settings,
            scheduled_at_sec,
            fetch_fn=fetch_fn,
            save_fn=save_fn,
            publish_fn=publish_fn,
        )
        if outcome.ok:
            logger.info(
                f"Snapshot relayed: {outcome.payload_size} bytes -> "
                f"{settings.snapshot_file_path}, topic={settings.topic}"
            )
        if metrics:
            metrics.update(outcome)
            logger.info(f"Tick metrics: {metrics}")
        return outcome

    return _tick
