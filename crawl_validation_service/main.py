"""Entry points for running the FastAPI application."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router as api_router
from .config import Settings, get_settings
from .logging_utils import configure_logging
from .monitoring.metrics import metrics_router
from .services import Services, build_services

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_file, settings.log_level)

    app = FastAPI(title="Crawl Validation Service", version="0.1.0")
    app.state.services = services or build_services(settings)
    app.include_router(api_router, prefix="/api")

    if settings.enable_metrics:
        app.include_router(metrics_router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"]
    )

    @app.on_event("startup")
    async def _on_startup() -> None:
        logger.info("Starting Crawl Validation Service", extra={"environment": settings.environment})
        await app.state.services.startup()

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        await app.state.services.shutdown()

    return app


app = create_app()

__all__ = ["create_app", "app"]
