"""Application entrypoint."""

import asyncio
import logging
from collections.abc import Sequence

from aiokafka.errors import KafkaError

from snapshot_relay.adapters.driven.config.settings import load_settings
from snapshot_relay.adapters.driven.http.client import HttpClient
from snapshot_relay.adapters.driven.kafka.producer import KafkaPublisher
from snapshot_relay.adapters.driven.logging.logging_config import configure_logs
from snapshot_relay.adapters.driven.metrics.tick_metrics import TickMetrics
from snapshot_relay.adapters.driven.storage.file_store import save_snapshot
from snapshot_relay.adapters.driving.signals import make_stop_on_sigterm
from snapshot_relay.core.errors import FatalSchedulerError
from snapshot_relay.core.event_loop import start_main_loop
from snapshot_relay.core.tick import make_tick_handler
from snapshot_relay.ports.settings import SettingsPort

__all__ = ["main", "run", "EXIT_OK", "EXIT_FATAL", "EXIT_STARTUP_FAILED"]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_STARTUP_FAILED = 2


async def main(argv: Sequence[str] | None = None) -> int:
    """Start the snapshot relay service.

    Startup sequence:
    1. Configure logging.
    2. Load and validate configuration.
    3. Optionally probe the health endpoint.
    4. Start the Kafka producer.
    5. Run the tick loop until SIGTERM/SIGINT.
    6. Drain in-flight ticks, flush the producer, exit.

    Returns:
        Process exit code: 0 on graceful shutdown, 1 if the scheduler
        broke, 2 if startup failed. Per-tick failures never change it.
    """
    configure_logs()
    logger.info("Starting snapshot relay service...")

    try:
        config = load_settings(argv)
    except (RuntimeError, ValueError) as exc:
        logger.error(
            "Configuration error: %s\n"
            "Hint: check --topic/KAFKA_TOPIC, --snapshot_url/SNAPSHOT_URL, "
            "--brokers/KAFKA_BROKERS and PERIOD_IN_SECONDS.",
            exc,
        )
        return EXIT_STARTUP_FAILED

    # Wrap config into port so core depends on interface (hexagonal)
    settings_port = SettingsPort(
        brokers=config.brokers,
        topic=config.topic,
        snapshot_url=config.snapshot_url,
        period_in_sec=config.period_in_sec,
        snapshot_file_path=config.snapshot_file_path,
        message_timeout_ms=config.message_timeout_ms,
        max_message_bytes=config.max_message_bytes,
        http_timeout_sec=config.http_timeout_sec,
        shutdown_grace_sec=config.shutdown_grace_sec,
        http_health_check_endpoint=config.http_health_endpoint,
    )

    http_client = HttpClient(timeout_sec=settings_port.http_timeout_sec)
    publisher = KafkaPublisher(
        settings_port.brokers,
        message_timeout_ms=settings_port.message_timeout_ms,
        max_message_bytes=settings_port.max_message_bytes,
    )

    async with http_client as http:
        if not await optional_endpoint_health_check(settings_port, http):
            return EXIT_STARTUP_FAILED

        try:
            await publisher.start()
        except KafkaError as exc:
            logger.error(f"Producer creation error for brokers {settings_port.brokers}: {exc!r}")
            return EXIT_STARTUP_FAILED

        exit_code = EXIT_OK
        try:
            await start_main_loop(
                period_in_sec=settings_port.period_in_sec,
                stop_event=make_stop_on_sigterm(),
                tick_fn=make_tick_handler(
                    settings_port,
                    fetch_fn=http.fetch,
                    save_fn=save_snapshot,
                    publish_fn=publisher.publish,
                    metrics=TickMetrics(),
                ),
                shutdown_grace_sec=settings_port.shutdown_grace_sec,
            )
        except FatalSchedulerError as e:
            logger.critical(f"Scheduler failure, exiting: {e}", exc_info=True)
            exit_code = EXIT_FATAL
        except Exception as e:
            logger.error(f"Unhandled exception in main loop: {e}", exc_info=True)
            exit_code = EXIT_FATAL
        finally:
            await shutdown_publisher(publisher)

    logger.info("Snapshot relay stopped.")
    return exit_code


async def shutdown_publisher(publisher: KafkaPublisher) -> None:
    """Flush and stop the producer; failures here are logged, not raised.

    Flushing is best-effort: the process is exiting either way.
    """
    try:
        await publisher.stop()
    except KafkaError as e:
        logger.warning(f"Producer flush/stop failed, some snapshots may be lost: {e!r}")


async def optional_endpoint_health_check(settings_port: SettingsPort, http: HttpClient) -> bool:
    """Perform optional health check before starting the relay.

    Only runs if HEALTH_CHECK_ENDPOINT is configured.

    Args:
        settings_port: Runtime settings.
        http: HTTP client for probing.

    Returns:
        True if healthy or check disabled, False if check failed.
    """
    if settings_port.http_health_check_endpoint:
        logger.info(f"Performing health check on {settings_port.http_health_check_endpoint}...")
        if not await http.probe(url=settings_port.http_health_check_endpoint):
            logger.error(
                f"Health check failed for {settings_port.http_health_check_endpoint}, "
                "aborting startup"
            )
            return False

        logger.info("Health check passed, starting relay...")
    return True


def run() -> None:
    """Console script entry point."""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C).")
        exit_code = EXIT_OK
    raise SystemExit(exit_code)


if __name__ == "__main__":
    run()
