"""Console logging setup for the relay."""

import logging
import os

__all__ = ["configure_logs"]

FRAMEWORK_LOGGERS = ("aiohttp", "aiokafka", "asyncio")


def configure_logs(level: str | None = None) -> None:
    """Configure console logging.

    Sets up:
    - Root logger at ``level`` (default: LOG_LEVEL env var, else INFO).
    - Framework loggers (aiohttp, aiokafka, asyncio) at WARNING level.
    - Application loggers (snapshot_relay) at DEBUG level.
    - Format with timestamp, level, module, and line number.

    Calling it again replaces the handler instead of stacking a second one.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
    date_format = "%d/%m/%y %H:%M:%S"

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(log_format, date_format))
    handler.set_name("snapshot_relay")

    root = logging.getLogger()
    root_level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    root.setLevel(getattr(logging, root_level, logging.INFO))
    for existing in [h for h in root.handlers if h.get_name() == "snapshot_relay"]:
        root.removeHandler(existing)
    root.addHandler(handler)

    for name in FRAMEWORK_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("snapshot_relay").setLevel(logging.DEBUG)
