"""Snapshot port definitions (DTOs)."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["SnapshotPayload", "TickOutcome"]


@dataclass(slots=True, frozen=True)
class SnapshotPayload:
    """One fetched snapshot.

    Lives for a single tick only; both sinks receive this same instance.

    Attributes:
        url: Source URL the body was fetched from.
        body: Raw response bytes (opaque, usually an image).
        content_type: Content-Type header of the response, if any.
        fetched_at_sec: Monotonic time when the body was fully read.
    """

    url: str
    body: bytes
    content_type: str | None = None
    fetched_at_sec: float = 0.0


@dataclass(slots=True, frozen=True)
class TickOutcome:
    """Result of one tick, used for logging and metrics only.

    ``persisted`` and ``published`` are None when the step never ran
    (fetch failed). ``published`` means enqueued, not acknowledged.

    Attributes:
        scheduled_at_sec: Monotonic time the tick was due.
        fired_at_sec: Monotonic time the tick actually started.
        fetched: True if the snapshot was fetched.
        persisted: True/False for the file write, None if skipped.
        published: True/False for the enqueue, None if skipped.
        payload_size: Bytes fetched (0 if fetch failed).
        errors: Human-readable error descriptions collected in the tick.
    """

    scheduled_at_sec: float
    fired_at_sec: float
    fetched: bool
    persisted: bool | None = None
    published: bool | None = None
    payload_size: int = 0
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        """True when every step of the tick succeeded."""
        return self.fetched and bool(self.persisted) and bool(self.published)
