"""Observability configuration using Logfire.

Repositories report through Logfire directly: each operation opens a span
named ``<repository>.<operation>`` and notable outcomes (not found, unique
violations, rollbacks) are logged inside it. Embedding applications call
:func:`configure_logfire` once at startup; the engine provider calls
:func:`instrument_sqlalchemy` when SQL tracing is enabled.
"""

from importlib.metadata import PackageNotFoundError, version

import logfire
from sqlalchemy.ext.asyncio import AsyncEngine

from quill.config import ObservabilitySettings, Settings

SERVICE_NAME = "quill"


def _service_version() -> str:
    try:
        return version(SERVICE_NAME)
    except PackageNotFoundError:
        return "0.0.0"


def should_send_to_logfire(observability: ObservabilitySettings) -> bool:
    """Decide whether telemetry leaves the process.

    An explicit ``send_to_logfire`` wins; otherwise telemetry is sent only
    when a token is configured.
    """
    if observability.send_to_logfire is not None:
        return observability.send_to_logfire
    return bool(observability.logfire_token)


def configure_logfire(settings: Settings) -> None:
    """Configure Logfire for observability.

    Set OBSERVABILITY__LOGFIRE_TOKEN to send to Logfire cloud, and
    OBSERVABILITY__SEND_TO_LOGFIRE to override that choice either way.

    Args:
        settings: Application settings
    """
    observability = settings.observability
    send_to_logfire = should_send_to_logfire(observability)

    logfire.configure(
        service_name=SERVICE_NAME,
        service_version=_service_version(),
        environment=settings.environment,
        send_to_logfire=send_to_logfire,
        token=observability.logfire_token,
        console=logfire.ConsoleOptions(
            colors="auto",
            span_style="show-parents",
            include_timestamps=True,
            verbose=settings.debug,
        ),
    )

    logfire.info(
        "Observability configured",
        environment=settings.environment,
        debug=settings.debug,
        send_to_logfire=send_to_logfire,
        instrument_sql=observability.instrument_sql,
    )


def instrument_sqlalchemy(engine: AsyncEngine) -> None:
    """Trace every statement run through ``engine``.

    Args:
        engine: SQLAlchemy async engine
    """
    logfire.instrument_sqlalchemy(
        engine=engine.sync_engine,
        enable_commenter=True,  # Add SQL comments with span context
    )
    logfire.info("SQLAlchemy instrumented", backend=engine.dialect.name)
