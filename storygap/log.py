# storygap/log.py

"""Logging configuration for the story gap service."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[int] = None, quiet: bool = False) -> None:
    """Configure root logging for the application.

    Args:
        level: Log level. If None, STORY_GAP_LOG_LEVEL from settings is used.
        quiet: If True, only show warnings and errors
    """
    if level is None:
        from .config import get_settings

        level = getattr(logging, get_settings().log_level, logging.INFO)

    if quiet:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stderr,
    )

    # huggingface_hub talks through httpx/requests
    for noisy in ("httpx", "httpcore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
