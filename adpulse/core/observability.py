"""
Logfire observability configuration for AdPulse.

Provides tracing for scrape job processing and ad analysis.

Usage:
    # At startup (e.g., in the CLI entry point)
    from adpulse.core.observability import setup_logfire
    setup_logfire()

    # In services
    from adpulse.core.observability import get_logfire
    logfire = get_logfire()

    with logfire.span("ingest_items", job_id=job_id):
        logfire.info("Inserted {count} ads", count=len(ads))

Environment Variables:
    LOGFIRE_TOKEN: Your Logfire write token (required to send traces)
    LOGFIRE_PROJECT_NAME: Project name in Logfire dashboard
    LOGFIRE_ENVIRONMENT: Environment name (development, staging, production)
"""

import os
import logging
from typing import Optional

import logfire

logger = logging.getLogger(__name__)

_logfire_configured = False


def setup_logfire(
    project_name: Optional[str] = None,
    environment: Optional[str] = None,
    service_name: str = "adpulse"
) -> bool:
    """
    Configure Logfire for observability.

    Args:
        project_name: Logfire project name (or LOGFIRE_PROJECT_NAME env var)
        environment: Environment name (or LOGFIRE_ENVIRONMENT env var)
        service_name: Service name for tracing

    Returns:
        True if Logfire was configured, False if skipped (no token)
    """
    global _logfire_configured

    if _logfire_configured:
        logger.debug("Logfire already configured")
        return True

    token = os.environ.get("LOGFIRE_TOKEN")
    if not token:
        logger.info("LOGFIRE_TOKEN not set, skipping Logfire configuration")
        return False

    project = project_name or os.environ.get("LOGFIRE_PROJECT_NAME", "adpulse")
    env = environment or os.environ.get("LOGFIRE_ENVIRONMENT", "development")

    try:
        logfire.configure(
            token=token,
            service_name=service_name,
            environment=env,
            send_to_logfire=True,
        )
        logfire.instrument_pydantic()

        _logfire_configured = True
        logger.info(f"Logfire configured: project={project}, environment={env}")
        return True

    except Exception as e:
        logger.error(f"Failed to configure Logfire: {e}")
        return False


def get_logfire():
    """
    Get the logfire module if configured, otherwise return a no-op stub.

    Usage:
        lf = get_logfire()
        with lf.span("operation"):
            lf.info("message")
    """
    if _logfire_configured:
        return logfire
    return _LogfireStub()


class _LogfireStub:
    """No-op stub when Logfire is not configured."""

    def span(self, *args, **kwargs):
        return _NoOpContext()

    def info(self, *args, **kwargs):
        pass

    def debug(self, *args, **kwargs):
        pass

    def warning(self, *args, **kwargs):
        pass

    def error(self, *args, **kwargs):
        pass

    def __getattr__(self, name):
        return lambda *args, **kwargs: None


class _NoOpContext:
    """No-op context manager."""

    def __enter__(self):
        return self

    def __exit__(self, *args):
        pass
