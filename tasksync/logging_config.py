"""
Task Sync - Logging Setup
"""

import logging
import os
import sys

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"


def configure_logging(settings):
    """Configure root logging to stdout, plus a log file when LOG_FILE is set."""
    handlers = [logging.StreamHandler(sys.stdout)]

    if settings.LOG_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(settings.LOG_FILE))

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
