from __future__ import annotations

import structlog
from fastapi import FastAPI

from crashround import __version__
from crashround.api import router as api_router
from crashround.core.config.settings import settings
from crashround.core.logging.setup import configure_logging

log = structlog.get_logger()


def create_app() -> FastAPI:
    """
    Application factory: logging, routers, startup/shutdown hooks.
    """
    configure_logging(level=settings.log_level, json_logs=settings.json_logs)

    app = FastAPI(
        title="crashround",
        version=__version__,
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        log.info(
            "app.startup",
            environment=settings.env,
            sessions_dir=str(settings.sessions_dir),
        )

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        log.info("app.shutdown")

    app.include_router(api_router, prefix="/api")

    return app


# ASGI entrypoint
app = create_app()
