"""
Health Check Router

Provides endpoints for monitoring the development server and for restarting
the render workers.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel

from devserver.execution import get_render_pool

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/__devserver", tags=["devserver"])


class HealthCheck(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    environment: str
    machine_state: str
    pool_generation: int
    render_isolation: str
    pages: int


class RestartResponse(BaseModel):
    """Render worker restart response model."""
    status: str
    pool_generation: int


@router.get("/health", response_model=HealthCheck)
async def health_check(request: Request) -> HealthCheck:
    """
    Basic health check endpoint.

    Returns:
        Server status with develop machine and render pool details
    """
    settings = request.app.state.settings
    pool = get_render_pool()
    return HealthCheck(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        environment=settings.environment,
        machine_state=request.app.state.machine.state,
        pool_generation=pool.generation,
        render_isolation=pool.isolation,
        pages=len(request.app.state.pages),
    )


@router.post("/restart-worker", response_model=RestartResponse)
async def restart_worker() -> RestartResponse:
    """
    Replace the render worker pool.

    The only recovery path for a crashed or hung render worker. Jobs already
    running on the old pool are allowed to finish.
    """
    handle = get_render_pool().restart()
    logger.info(f"Render workers restarted (generation {handle.generation})")
    return RestartResponse(status="restarted", pool_generation=handle.generation)
