"""
Logging setup.

Modules log through ``logging.getLogger(__name__)``; this only installs
a root handler and format for scripts and tests that want output.
"""

import logging
from typing import Optional

from medbill_auditor.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for the package.

    Args:
        level: Log level name. Falls back to ``settings.LOG_LEVEL``.
    """
    log_level = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    logging.getLogger("medbill_auditor").setLevel(log_level)
