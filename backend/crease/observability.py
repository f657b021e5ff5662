"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from crease import __version__
from crease.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire and instrument outbound HTTP, SQL and logging.

    Call once at startup. Without a token observability stays off.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="crease",
            service_version=__version__,
        )

        # Result source calls
        logfire.instrument_httpx()

        # Ledger writes
        from crease.database import get_engine

        logfire.instrument_sqlalchemy(engine=get_engine().sync_engine)

        logging.getLogger().addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
