"""In-memory sliding-window metrics for snapshot ticks."""

from __future__ import annotations

import statistics
from collections import deque

from snapshot_relay.ports.metrics import MetricsPort
from snapshot_relay.ports.snapshot import TickOutcome

__all__ = ["TickMetrics"]


def _fail_pct(flags: list[bool | None]) -> float:
    """Percentage of False among the steps that actually ran."""
    ran = [f for f in flags if f is not None]
    if not ran:
        return 0.0
    return (sum(1 for f in ran if not f) / len(ran)) * 100


class TickMetrics(MetricsPort):
    """Fast, lock-free tick metrics for async context.

    Tracks:
    - Average jitter (tick start vs scheduled time).
    - Failure rate per step (fetch, persist, publish enqueue).
    - Size of the last fetched payload.
    - Total ticks seen.

    Not thread-safe; create one instance per event loop.
    """

    def __init__(self, *, window_size: int = 100) -> None:
        """Initialize metrics collector.

        Args:
            window_size: Number of recent ticks to keep for statistics.
        """
        self._window: deque[TickOutcome] = deque(maxlen=window_size)
        self._total_seen: int = 0
        self._last_size: int = 0

    def update(self, outcome: TickOutcome) -> None:
        """Record a finished tick."""
        self._window.append(outcome)
        self._total_seen += 1
        if outcome.fetched:
            self._last_size = outcome.payload_size

    def __str__(self) -> str:
        """Return human-readable one-line summary for logging."""
        if not self._window:
            return "Metrics: waiting for data …"

        ticks = list(self._window)
        avg_jitter = statistics.fmean(
            (t.fired_at_sec - t.scheduled_at_sec) * 1_000.0 for t in ticks
        )
        fetch_fail = _fail_pct([t.fetched for t in ticks])
        persist_fail = _fail_pct([t.persisted for t in ticks])
        publish_fail = _fail_pct([t.published for t in ticks])

        return (
            f"jitter={avg_jitter:5.1f} ms | "
            f"fail fetch={fetch_fail:5.1f}% persist={persist_fail:5.1f}% "
            f"publish={publish_fail:5.1f}% | "
            f"last={self._last_size} B | "
            f"win={len(ticks)}/{self._window.maxlen} | "
            f"total={self._total_seen}"
        )
