"""Logging configuration."""

import logging

from results_engine.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging for the engine and quiet noisy libraries."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )

    # Workbook parsing warnings are not actionable for callers
    logging.getLogger("openpyxl").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured for {settings.APP_NAME} v{settings.APP_VERSION}"
    )
