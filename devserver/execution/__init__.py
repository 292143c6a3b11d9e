"""
Isolated page rendering for the development server.

This module provides:
- Render worker pool management (process or thread isolation)
- Warm-up on start and gapless restart
- The render dispatcher used by the develop HTML route

Architecture:
    Server (main process, event loop)
    └── RenderPool
        └── PoolHandle (current generation)
            └── Render worker(s)

Each render worker:
- Exports the forwarded environment variables
- Loads the renderer entry module from disk
- Renders the requested paths
- Raises RenderError with a source-mappable stack on failure
"""

from .pool import (
    PoolHandle,
    RenderPool,
    get_render_pool,
    init_render_pool,
    restart_render_pool,
    shutdown_render_pool,
)
from .render import render_dev_html
from .worker import RenderJob, render_html

__all__ = [
    "PoolHandle",
    "RenderJob",
    "RenderPool",
    "get_render_pool",
    "init_render_pool",
    "render_dev_html",
    "render_html",
    "restart_render_pool",
    "shutdown_render_pool",
]
