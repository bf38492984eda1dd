"""Logging setup for the HomeXpert backend."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(debug: bool = False) -> None:
    """Configure root logging once. DEBUG when ``debug`` is set, else INFO."""
    global _configured
    level = logging.DEBUG if debug else logging.INFO
    if _configured:
        logging.getLogger().setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a named logger (e.g. ``homexpert.api.hire_requests``)."""
    return logging.getLogger(name)
