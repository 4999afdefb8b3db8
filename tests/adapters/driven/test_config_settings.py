"""Tests for configuration loading and validation."""

import pytest

from snapshot_relay.adapters.driven.config.settings import Settings, load_settings

__all__ = []

ENV_VARS = (
    "KAFKA_BROKERS",
    "KAFKA_TOPIC",
    "SNAPSHOT_URL",
    "PERIOD_IN_SECONDS",
    "SNAPSHOT_FILE_PATH",
    "KAFKA_MESSAGE_TIMEOUT_MS",
    "KAFKA_MAX_MESSAGE_BYTES",
    "HTTP_TIMEOUT_SECONDS",
    "SHUTDOWN_GRACE_SECONDS",
    "HEALTH_CHECK_ENDPOINT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    """Keep a developer's .env or shell from leaking into the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_settings_defaults() -> None:
    """Only topic and snapshot URL are required."""
    settings = Settings(topic="snapshots", snapshot_url="http://camera.local/snap.png")

    assert settings.brokers == "localhost:9092"
    assert settings.snapshot_file_path == "image.png"
    assert settings.message_timeout_ms == 5000
    assert settings.period_in_sec > 0


@pytest.mark.parametrize("url", ["ftp://camera.local/snap.png", "camera.local/snap.png", "not a url"])
def test_settings_rejects_invalid_snapshot_url(url: str) -> None:
    """Snapshot URL must be an absolute http(s) URL."""
    with pytest.raises(ValueError, match="snapshot URL"):
        Settings(topic="snapshots", snapshot_url=url)


def test_settings_accepts_https_snapshot_url() -> None:
    """https:// is as valid as http://."""
    settings = Settings(topic="snapshots", snapshot_url="https://camera.local/snap.jpg")
    assert settings.snapshot_url == "https://camera.local/snap.jpg"


@pytest.mark.parametrize("brokers", ["", "localhost", "localhost:abc", ":9092"])
def test_settings_rejects_invalid_brokers(brokers: str) -> None:
    """Brokers must be a host:port list."""
    with pytest.raises(ValueError):
        Settings(brokers=brokers, topic="snapshots", snapshot_url="http://camera.local/snap.png")


def test_settings_normalizes_broker_list() -> None:
    """Whitespace around broker entries is dropped."""
    settings = Settings(
        brokers=" kafka-1:9092, kafka-2:9093 ",
        topic="snapshots",
        snapshot_url="http://camera.local/snap.png",
    )
    assert settings.brokers == "kafka-1:9092,kafka-2:9093"


def test_settings_rejects_non_positive_period() -> None:
    """Tick period must be positive."""
    with pytest.raises(ValueError):
        Settings(topic="snapshots", snapshot_url="http://camera.local/snap.png", period_in_sec=0)


def test_load_settings_from_flags() -> None:
    """Command line flags should populate the settings."""
    settings = load_settings(
        [
            "--brokers", "kafka:9092",
            "--topic", "camera-1",
            "--snapshot_url", "http://camera.local/snap.png",
            "--period", "60",
            "--output", "/tmp/latest.png",
        ]
    )

    assert settings.brokers == "kafka:9092"
    assert settings.topic == "camera-1"
    assert settings.period_in_sec == 60
    assert settings.snapshot_file_path == "/tmp/latest.png"


def test_load_settings_from_environment(monkeypatch) -> None:
    """Environment variables fill in missing flags."""
    monkeypatch.setenv("KAFKA_TOPIC", "camera-env")
    monkeypatch.setenv("SNAPSHOT_URL", "http://camera.local/snap.png")
    monkeypatch.setenv("KAFKA_MESSAGE_TIMEOUT_MS", "2500")
    monkeypatch.setenv("HEALTH_CHECK_ENDPOINT", "http://camera.local/health")

    settings = load_settings([])

    assert settings.topic == "camera-env"
    assert settings.brokers == "localhost:9092"
    assert settings.message_timeout_ms == 2500
    assert settings.http_health_endpoint == "http://camera.local/health"


def test_load_settings_flags_override_environment(monkeypatch) -> None:
    """A flag wins over the matching environment variable."""
    monkeypatch.setenv("KAFKA_TOPIC", "camera-env")
    monkeypatch.setenv("SNAPSHOT_URL", "http://camera.local/snap.png")

    settings = load_settings(["-t", "camera-flag"])

    assert settings.topic == "camera-flag"


def test_load_settings_requires_topic(monkeypatch) -> None:
    """Missing topic should raise RuntimeError naming it."""
    monkeypatch.setenv("SNAPSHOT_URL", "http://camera.local/snap.png")

    with pytest.raises(RuntimeError, match="--topic"):
        load_settings([])


def test_load_settings_requires_snapshot_url() -> None:
    """Missing snapshot URL should raise RuntimeError naming it."""
    with pytest.raises(RuntimeError, match="--snapshot_url"):
        load_settings(["--topic", "camera-1"])


def test_load_settings_rejects_invalid_period(monkeypatch) -> None:
    """Invalid numeric environment values should raise ValueError."""
    monkeypatch.setenv("PERIOD_IN_SECONDS", "-5")

    with pytest.raises(ValueError):
        load_settings(["-t", "camera-1", "-s", "http://camera.local/snap.png"])
