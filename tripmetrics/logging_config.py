import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from .config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: Optional[str] = None, log_name: str = "pipeline.log") -> None:
    """Send every logger to a rotating file under the configured log_dir and to stderr."""
    settings = get_settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        settings.log_dir / log_name, maxBytes=5_000_000, backupCount=2
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level or settings.log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(stream_handler)


__all__ = ["configure_logging"]
