"""
Develop Server - FastAPI Application

Main entry point for the development server.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI

from devserver.config import Settings, get_settings
from devserver.core.develop_machine import DevelopMachine
from devserver.core.pages import PageRegistry
from devserver.execution import init_render_pool, shutdown_render_pool
from devserver.routers import DevelopHTMLMiddleware, DevelopHTMLRoute, health_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    settings: Settings = app.state.settings
    logger.info("Starting develop server...")

    if settings.pages_manifest:
        manifest = Path(settings.project_directory) / settings.pages_manifest
        app.state.pages.load_manifest(manifest)

    init_render_pool(
        num_workers=settings.render_workers,
        isolation=settings.render_isolation,
    )

    logger.info(f"Develop server started in {settings.environment} mode ({settings.project_directory})")

    yield

    # Shutdown
    logger.info("Shutting down develop server...")
    app.state.develop_html.close()
    shutdown_render_pool()
    logger.info("Develop server shutdown complete")


def create_app(
    settings: Settings | None = None,
    machine: DevelopMachine | None = None,
    pages: PageRegistry | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings to use (defaults to the environment)
        machine: Develop machine shared with the build orchestration
        pages: Page registry shared with the build orchestration

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    machine = machine or DevelopMachine()
    pages = pages if pages is not None else PageRegistry()

    app = FastAPI(
        title="Develop Server",
        description="Development server with isolated server-side rendering",
        version="0.1.0",
        docs_url="/__devserver/docs" if settings.is_development else None,
        debug=settings.debug,
        redoc_url=None,
        openapi_url="/__devserver/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Store shared objects on app.state
    app.state.settings = settings
    app.state.machine = machine
    app.state.pages = pages
    app.state.develop_html = DevelopHTMLRoute(machine=machine, pages=pages, settings=settings)

    app.add_middleware(DevelopHTMLMiddleware)

    # Register routers
    app.include_router(health_router)

    return app


def main() -> None:
    """Run the develop server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
