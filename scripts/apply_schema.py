#!/usr/bin/env python3
"""Create the database schema with Logfire error tracking."""

import asyncio
import sys

import logfire

from quill.config import Settings
from quill.persistence.database import apply_schema, create_engine
from quill.util.logging import setup_logging
from quill.util.observability import configure_logfire


async def _apply(settings: Settings) -> None:
    engine = create_engine(settings)
    try:
        await apply_schema(engine)
    finally:
        await engine.dispose()


def main() -> int:
    """Apply the schema and log any errors to Logfire."""
    settings = Settings()

    setup_logging(settings)
    configure_logfire(settings)

    try:
        logfire.info("Applying database schema")
        asyncio.run(_apply(settings))
        logfire.info("Database schema is up to date")
        return 0

    except Exception as e:
        logfire.error(
            "Applying database schema failed",
            error=str(e),
            error_type=type(e).__name__,
            _exc_info=sys.exc_info(),
        )
        # Re-raise so the deploy step fails instead of starting on a broken schema
        raise


if __name__ == "__main__":
    sys.exit(main())
