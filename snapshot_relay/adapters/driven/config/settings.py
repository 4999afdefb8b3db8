"""Configuration loading from command line flags and environment variables."""

import argparse
import logging
import os
from collections.abc import Sequence

from dotenv import load_dotenv
from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, field_validator

__all__ = ["Settings", "load_settings", "build_arg_parser"]

load_dotenv()

logger = logging.getLogger(__name__)
_http_url_adapter = TypeAdapter(HttpUrl)

DEFAULT_BROKERS = "localhost:9092"


def _validate_http_url(v: str, what: str) -> str:
    try:
        url = _http_url_adapter.validate_python(v)
    except Exception as e:
        raise ValueError(f"Invalid {what}: {e}") from e
    if url.scheme not in ("http", "https"):
        raise ValueError(f"Invalid {what}: only http:// and https:// URLs allowed")
    return v


class Settings(BaseModel):
    """Runtime configuration for the relay service.

    Attributes:
        brokers: Kafka bootstrap servers, comma separated ``host:port``.
        topic: Destination topic.
        snapshot_url: Camera snapshot URL.
        period_in_sec: Interval between ticks in seconds (must be positive).
        snapshot_file_path: Local copy of the latest snapshot.
        message_timeout_ms: Broker acknowledgement timeout.
        max_message_bytes: Largest message the producer may send.
        http_timeout_sec: Total timeout for one fetch.
        shutdown_grace_sec: Time in-flight ticks get after a stop signal.
        http_health_endpoint: Optional endpoint to probe before starting.
    """

    brokers: str = Field(DEFAULT_BROKERS, description="Broker list in kafka format.")
    topic: str = Field(..., min_length=1, description="Destination topic.")
    snapshot_url: str = Field(..., description="Camera snapshot URL.")
    period_in_sec: float = Field(5.0, gt=0, description="Interval between ticks in seconds.")
    snapshot_file_path: str = Field("image.png", min_length=1)
    message_timeout_ms: int = Field(5000, gt=0)
    max_message_bytes: int = Field(1_048_576, gt=0)
    http_timeout_sec: float = Field(10.0, gt=0)
    shutdown_grace_sec: float = Field(10.0, ge=0)
    http_health_endpoint: str | None = Field(
        default=None,
        description=(
            "Optional HTTP endpoint to probe for health. "
            "If not set, no health check is performed."
        ),
    )

    @field_validator("brokers")
    @classmethod
    def validate_brokers(cls, v: str) -> str:
        """Validate a comma separated ``host:port`` list.

        Raises:
            ValueError: If any entry lacks a host or a numeric port.
        """
        entries = [b.strip() for b in v.split(",") if b.strip()]
        if not entries:
            raise ValueError("Broker list is empty")
        for entry in entries:
            host, sep, port = entry.rpartition(":")
            if not sep or not host or not port.isdigit():
                raise ValueError(f"Invalid broker address {entry!r}, expected host:port")
        return ",".join(entries)

    @field_validator("snapshot_url")
    @classmethod
    def validate_snapshot_url(cls, v: str) -> str:
        """Validate that the snapshot URL is an absolute HTTP(S) URL."""
        return _validate_http_url(v, "snapshot URL")

    @field_validator("http_health_endpoint")
    @classmethod
    def validate_http_health_endpoint(cls, v: str | None) -> str | None:
        """Validate the health endpoint, if provided."""
        if v is None:
            return v
        return _validate_http_url(v, "health endpoint")


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the command line parser.

    Flags default to None so that environment variables can fill the gaps.
    """
    parser = argparse.ArgumentParser(
        prog="snapshot-relay",
        description="Simple camera snapshot producer",
        epilog="Every flag falls back to its environment variable (see README).",
    )
    parser.add_argument(
        "-b", "--brokers", help=f"Broker list in kafka format (default: {DEFAULT_BROKERS})"
    )
    parser.add_argument("-t", "--topic", help="Destination topic")
    parser.add_argument("-s", "--snapshot_url", help="Camera snapshot url")
    parser.add_argument("-p", "--period", type=float, help="Seconds between snapshots")
    parser.add_argument("-o", "--output", help="Local file for the latest snapshot")
    return parser


def _env(name: str) -> str | None:
    value = os.getenv(name)
    return value if value else None


def load_settings(argv: Sequence[str] | None = None) -> Settings:
    """Load and validate settings from flags, environment and defaults.

    Required (flag or environment variable):
    - ``--topic`` / KAFKA_TOPIC
    - ``--snapshot_url`` / SNAPSHOT_URL

    Optional:
    - ``--brokers`` / KAFKA_BROKERS
    - ``--period`` / PERIOD_IN_SECONDS
    - ``--output`` / SNAPSHOT_FILE_PATH
    - KAFKA_MESSAGE_TIMEOUT_MS, KAFKA_MAX_MESSAGE_BYTES,
      HTTP_TIMEOUT_SECONDS, SHUTDOWN_GRACE_SECONDS, HEALTH_CHECK_ENDPOINT

    Args:
        argv: Command line arguments; defaults to ``sys.argv[1:]``.

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If a required value is missing.
        ValueError: If configuration is invalid.
    """
    args = build_arg_parser().parse_args(argv)

    values: dict[str, object] = {
        "brokers": args.brokers or _env("KAFKA_BROKERS"),
        "topic": args.topic or _env("KAFKA_TOPIC"),
        "snapshot_url": args.snapshot_url or _env("SNAPSHOT_URL"),
        "period_in_sec": args.period if args.period is not None else _env("PERIOD_IN_SECONDS"),
        "snapshot_file_path": args.output or _env("SNAPSHOT_FILE_PATH"),
        "message_timeout_ms": _env("KAFKA_MESSAGE_TIMEOUT_MS"),
        "max_message_bytes": _env("KAFKA_MAX_MESSAGE_BYTES"),
        "http_timeout_sec": _env("HTTP_TIMEOUT_SECONDS"),
        "shutdown_grace_sec": _env("SHUTDOWN_GRACE_SECONDS"),
        "http_health_endpoint": _env("HEALTH_CHECK_ENDPOINT"),
    }

    for required, source in (
        ("topic", "--topic / KAFKA_TOPIC"),
        ("snapshot_url", "--snapshot_url / SNAPSHOT_URL"),
    ):
        if values[required] is None:
            raise RuntimeError(f"Missing required setting: {source}")

    settings = Settings(**{k: v for k, v in values.items() if v is not None})

    logger.info(
        f"Relay configured: brokers={settings.brokers}, topic={settings.topic}, "
        f"url={settings.snapshot_url}, period={settings.period_in_sec}s, "
        f"file={settings.snapshot_file_path}, "
        f"ack_timeout={settings.message_timeout_ms}ms, "
        f"health_check={settings.http_health_endpoint or '<disabled>'}"
    )

    return settings
