"""Error taxonomy for the relay.

``FetchError``, ``PersistError`` and ``PublishError`` are per-tick failures:
they are logged at the tick boundary and discarded. ``FatalSchedulerError``
is the only error allowed to end the process.
"""

__all__ = [
    "RelayError",
    "FetchError",
    "PersistError",
    "PublishError",
    "FatalSchedulerError",
]


class RelayError(Exception):
    """Base class for failures contained within a single tick."""


class FetchError(RelayError):
    """Snapshot could not be fetched (network, timeout, non-2xx, body read).

    Attributes:
        url: Source URL.
        reason: Short description of the cause.
        status_code: HTTP status when a response arrived; None otherwise.
    """

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"fetch {url} failed: {reason}")


class PersistError(RelayError):
    """Snapshot could not be written to the local file.

    Attributes:
        path: Destination file path.
        reason: Short description of the cause.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"persist to {path} failed: {reason}")


class PublishError(RelayError):
    """Snapshot could not be enqueued or was not acknowledged by the broker.

    Attributes:
        topic: Destination topic.
        reason: Short description of the cause.
    """

    def __init__(self, topic: str, reason: str) -> None:
        self.topic = topic
        self.reason = reason
        super().__init__(f"publish to {topic} failed: {reason}")


class FatalSchedulerError(Exception):
    """The scheduling primitive itself broke; there is no recovery path."""
