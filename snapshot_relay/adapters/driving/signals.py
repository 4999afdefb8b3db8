"""Signal handling for graceful shutdown."""

import asyncio
import logging
import signal

__all__ = ["make_stop_on_sigterm"]

logger = logging.getLogger(__name__)


def make_stop_on_sigterm() -> asyncio.Event:
    """Create a stop event set by SIGTERM or SIGINT.

    The scheduler waits on this event between ticks, so shutdown starts
    right away instead of at the next tick. In-flight ticks and pending
    broker acknowledgements are then drained by the caller.

    Must be called from inside the running event loop.

    Returns:
        Event that becomes set once a termination signal arrives.
    """
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        if stop.is_set():
            logger.warning(f"{sig.name} received again, shutdown already in progress")
            return
        logger.info(f"{sig.name} received, initiating graceful shutdown...")
        stop.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    return stop
