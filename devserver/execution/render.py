"""
Render dispatch for the develop HTML route.

Keeps the HTTP layer unaware of the pool internals: build a single-path job,
hand it to whichever pool is current, return the rendered page.
"""

from typing import Iterable

from .pool import get_render_pool
from .worker import RenderJob


async def render_dev_html(
    path: str,
    html_renderer_path: str,
    directory: str,
    env_vars: Iterable[tuple[str, str]] = (),
) -> str:
    """
    Render one page in the render worker pool.

    Args:
        path: Page path to render (e.g. "/about")
        html_renderer_path: Renderer entry module
        directory: Project working directory
        env_vars: Ordered (key, value) pairs exported in the worker

    Returns:
        The rendered HTML

    Raises:
        Exception: the worker's failure, unchanged
    """
    job = RenderJob(
        paths=(path,),
        renderer_path=html_renderer_path,
        directory=directory,
        env_vars=tuple(env_vars),
    )
    results = await get_render_pool().submit(job)
    return results[0]
