"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for monitoring and
tracing of Loopwell operations, including:
- API endpoint tracing
- LLM model calls made by the assistant
- Database operation monitoring
- Content import runs

Every ``log_*`` helper is safe to call when Logfire is disabled or not
configured: failures are reported at debug level and never raised.
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI

logger = logging.getLogger(__name__)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


# Logfire configuration from environment
LOGFIRE_ENABLED = _flag("LOGFIRE_ENABLED", "false")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "loopwell-server")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

# Feature flags
LOGFIRE_TRACE_PYDANTIC_AI = _flag("LOGFIRE_TRACE_PYDANTIC_AI", "true")
LOGFIRE_TRACE_SQLALCHEMY = _flag("LOGFIRE_TRACE_SQLALCHEMY", "true")
LOGFIRE_TRACE_HTTPX = _flag("LOGFIRE_TRACE_HTTPX", "true")
LOGFIRE_TRACE_FASTAPI = _flag("LOGFIRE_TRACE_FASTAPI", "true")

_initialized = False


def is_enabled() -> bool:
    """Whether Logfire has been configured for this process."""
    return _initialized


def initialize_logfire(app: FastAPI | None = None) -> None:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    This function sets up Logfire with automatic instrumentation for:
    - Pydantic AI model calls
    - SQLAlchemy database operations
    - HTTPX HTTP requests (LLM providers, importers)
    - FastAPI endpoints

    Args:
        app: FastAPI application instance for FastAPI instrumentation (optional).

    The initialization is conditional based on LOGFIRE_ENABLED environment variable.
    """
    global _initialized

    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return

    if not LOGFIRE_TOKEN:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return

    try:
        import logfire

        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
        )

        instrumentations = [
            (LOGFIRE_TRACE_PYDANTIC_AI, "Pydantic AI", logfire.instrument_pydantic_ai, {}),
            (LOGFIRE_TRACE_SQLALCHEMY, "SQLAlchemy", logfire.instrument_sqlalchemy, {}),
            (LOGFIRE_TRACE_HTTPX, "HTTPX", logfire.instrument_httpx, {}),
        ]
        if app is not None:
            instrumentations.append((LOGFIRE_TRACE_FASTAPI, "FastAPI", logfire.instrument_fastapi, {"app": app}))

        for enabled, name, instrument, kwargs in instrumentations:
            if not enabled:
                continue
            try:
                instrument(**kwargs)
                logger.info(f"Logfire: {name} instrumentation enabled")
            except Exception as e:
                logger.warning(f"Failed to instrument {name}: {e}")

        _initialized = True
        logger.info(
            f"Logfire monitoring initialized: environment={LOGFIRE_ENVIRONMENT}, service={LOGFIRE_SERVICE_NAME}"
        )

    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)


def log_api_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """
    Log an API request with performance metrics.

    Args:
        method: HTTP method
        path: Request path
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
    """
    if not _initialized:
        return
    try:
        import logfire

        logfire.info(
            "API request completed",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
    except Exception:
        logger.debug(f"Could not log API request to Logfire: {method} {path}")


def log_llm_call(model: str, tokens_used: int, cost_usd: Optional[float] = None) -> None:
    """
    Log an LLM model call with usage metrics.

    Args:
        model: The model identifier
        tokens_used: Total tokens used in the call
        cost_usd: The estimated cost in USD (optional)
    """
    logger.debug(f"LLM call completed: model={model}, tokens={tokens_used}, cost_usd={cost_usd}")
    if not _initialized:
        return
    try:
        import logfire

        logfire.info("LLM call completed", model=model, tokens_used=tokens_used, cost_usd=cost_usd)
    except Exception:
        logger.debug(f"Could not log LLM call to Logfire: model={model}")


def log_import_run(platform: str, workspace_id: str, imported: int, failed: int) -> None:
    """
    Log the outcome of a content import.

    Args:
        platform: Source platform (clickup, slite)
        workspace_id: Target workspace
        imported: Number of imported items
        failed: Number of failed items
    """
    if not _initialized:
        return
    try:
        import logfire

        logfire.info(
            "Content import finished",
            platform=platform,
            workspace_id=workspace_id,
            imported=imported,
            failed=failed,
        )
    except Exception:
        logger.debug(f"Could not log import run to Logfire: platform={platform}")


def log_realtime_event(room: str, event: str, recipients: int) -> None:
    """
    Log a realtime event fan-out.

    Args:
        room: Room name the event was emitted to
        event: Event name
        recipients: Number of connections that received it
    """
    if not _initialized:
        return
    try:
        import logfire

        logfire.debug("Realtime event emitted", room=room, event_name=event, recipients=recipients)
    except Exception:
        logger.debug(f"Could not log realtime event to Logfire: {event}")
