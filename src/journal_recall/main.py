"""Journal Recall FastAPI application."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import logfire
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from journal_recall.api.dependencies import AppServices, build_services
from journal_recall.api.endpoints import chat, health, journals
from journal_recall.core.config import Settings, settings
from journal_recall.core.handlers import GlobalErrorHandler
from journal_recall.core.logging import get_logger, setup_logging
from journal_recall.infrastructure.neo4j import create_neo4j_driver, ensure_schema

logger = get_logger(__name__)


def _lifespan(app_settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        # Services injected up front (tests) are used as they are
        if getattr(app.state, "services", None) is not None:
            yield
            return

        logger.info("Starting Journal Recall")
        driver = await create_neo4j_driver(app_settings)
        http_client = httpx.AsyncClient()
        try:
            await ensure_schema(driver)
            app.state.services = build_services(app_settings, driver, http_client)
            logger.info("Journal Recall started")
            yield
        finally:
            logger.info("Shutting down Journal Recall")
            await http_client.aclose()
            await driver.close()
            app.state.services = None
            logger.info("Journal Recall shutdown complete")

    return lifespan


def create_app(app_settings: Settings | None = None, services: AppServices | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_settings: Settings to use instead of the environment
        services: Pre-built services; when given no driver or HTTP client is created
    """
    app_settings = app_settings or settings
    app = FastAPI(
        title="Journal Recall API",
        description="Journal indexing, hybrid retrieval and journal-grounded chat",
        version="0.1.0",
        lifespan=_lifespan(app_settings),
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    GlobalErrorHandler().register(app)

    app.include_router(journals.router, prefix="/api/v1/journals", tags=["journals"])
    app.include_router(chat.router, prefix="/api/v1/chat", tags=["chat"])
    app.include_router(health.router)
    # Generated illustrations, referenced by entries as /images/{entry_id}.png
    app.mount("/images", StaticFiles(directory=app_settings.images_dir, check_dir=False), name="images")
    return app


def main() -> None:
    """Development server entry point."""
    logfire.configure(
        service_name="journal-recall",
        token=os.getenv("LOGFIRE_TOKEN"),
        send_to_logfire="if-token-present",
    )
    setup_logging(level=logging.DEBUG if settings.debug else logging.INFO)
    app = create_app()
    logfire.instrument_fastapi(app)
    logger.info("Starting Journal Recall development server")
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="debug" if settings.debug else "info")


if __name__ == "__main__":
    main()
