"""
Centralized logging configuration.

Modules log through ``logging.getLogger(__name__)``; this only installs
the root handler and level once at startup.
"""

import logging
import sys
from typing import Optional

from careconnect.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel((level or settings.LOG_LEVEL).upper())

    # Keep SQL echo out of application logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
