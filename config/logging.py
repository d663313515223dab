"""
Logging configuration for the GeoNames Reconciliation Service.
"""

import logging
import sys
from pathlib import Path

from config.settings import settings

LOG_DIR = Path(__file__).parent.parent / "logs"

SERVICE_PACKAGES = ("reconciliation", "gazetteer", "api")


def setup_logging(name: str = "geonames_reconcile") -> logging.Logger:
    """
    Set up logging configuration.

    Handlers are attached to the named logger, so module loggers created with
    ``logging.getLogger(__name__)`` inside the ``reconciliation``, ``gazetteer``
    and ``api`` packages propagate to it when ``name`` is their parent.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    # File handler
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(LOG_DIR / f"{name}.log")
    file_handler.setLevel(logging.DEBUG)

    # Formatter
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)
    file_handler.setFormatter(formatter)

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    return logger


def setup_service_logging() -> list[logging.Logger]:
    """Attach handlers to every package logger used by the service."""
    return [setup_logging(package) for package in SERVICE_PACKAGES]
