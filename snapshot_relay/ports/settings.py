"""Settings port definition (DTO)."""

from dataclasses import dataclass

__all__ = ["SettingsPort"]


@dataclass(frozen=True)
class SettingsPort:
    """Runtime settings for the relay core.

    Created once at startup and never mutated, so every tick reads the
    same values.

    Attributes:
        brokers: Kafka bootstrap servers, comma separated ``host:port``.
        topic: Destination topic for snapshots.
        snapshot_url: URL the snapshot image is fetched from.
        period_in_sec: Seconds between ticks.
        snapshot_file_path: Local file overwritten with the latest snapshot.
        message_timeout_ms: How long to wait for a broker acknowledgement.
        max_message_bytes: Largest message the producer will send.
        http_timeout_sec: Total timeout for one snapshot fetch.
        shutdown_grace_sec: How long in-flight ticks may run after stop.
        http_health_check_endpoint: Optional URL to probe before starting.
    """

    brokers: str
    topic: str
    snapshot_url: str
    period_in_sec: float
    snapshot_file_path: str = "image.png"
    message_timeout_ms: int = 5000
    max_message_bytes: int = 1_048_576
    http_timeout_sec: float = 10.0
    shutdown_grace_sec: float = 10.0
    http_health_check_endpoint: str | None = None
