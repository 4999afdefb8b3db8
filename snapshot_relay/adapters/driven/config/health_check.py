"""Healthcheck validator for container orchestration."""

import logging
from collections.abc import Sequence

from snapshot_relay.adapters.driven.config.settings import load_settings
from snapshot_relay.adapters.driven.logging.logging_config import configure_logs

__all__ = ["main"]

logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    """Run health check for container orchestration.

    Validates that the relay configuration (flags and environment)
    loads: topic and snapshot URL present, URLs and broker list
    well-formed, numeric settings in range.

    Returns:
        0 if healthy, 1 if unhealthy.
    """
    configure_logs()

    try:
        load_settings(argv)
    except (RuntimeError, ValueError) as exc:
        logger.error(f"Relay healthcheck FAILED: {exc}")
        return 1

    logger.info("Relay healthcheck OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
