"""
Sentry Integration Module.

Configures Sentry error tracking for host processes that embed the
auditor. Bill text is never attached to events.
"""

import logging
import os
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from medbill_auditor.core.config import settings

logger = logging.getLogger(__name__)


def init_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    sample_rate: float = 1.0,
    traces_sample_rate: float = 0.0,
) -> bool:
    """
    Initialize Sentry SDK if a DSN is available.

    Args:
        dsn: Sentry DSN. Falls back to settings, then the SENTRY_DSN env var.
        environment: Environment name (production, staging, development).
        sample_rate: Error event sample rate (0.0 to 1.0).
        traces_sample_rate: Performance transaction sample rate.

    Returns:
        bool: True when Sentry was initialized.
    """
    sentry_dsn = dsn or settings.SENTRY_DSN or os.getenv("SENTRY_DSN")

    if not sentry_dsn:
        logger.warning("Sentry DSN not configured. Error tracking disabled.")
        return False

    env = environment or settings.ENVIRONMENT

    logging_integration = LoggingIntegration(
        level=logging.WARNING,  # Breadcrumbs from warnings and above
        event_level=logging.ERROR,  # Send errors as Sentry events
    )

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=env,
        sample_rate=sample_rate,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            SqlalchemyIntegration(),
            logging_integration,
        ],
        send_default_pii=False,  # Bills carry PHI
        before_send=before_send_handler,
        max_breadcrumbs=50,
    )

    logger.info(f"Sentry initialized for environment: {env}")
    return True


def before_send_handler(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Scrub recognized bill text from events before sending.

    Local variables named like raw OCR payloads are replaced so that
    patient data never leaves the process.
    """
    sensitive_vars = {"raw_text", "text", "lines", "raw_ocr_text"}

    for exception in event.get("exception", {}).get("values", []):
        for frame in exception.get("stacktrace", {}).get("frames", []):
            frame_vars = frame.get("vars")
            if not frame_vars:
                continue
            for name in sensitive_vars & set(frame_vars):
                frame_vars[name] = "[Filtered]"

    return event
