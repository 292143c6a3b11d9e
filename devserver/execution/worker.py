"""
Render worker entry point for isolated page rendering.

This module runs inside a render worker (a spawned process, or a thread when
process isolation is disabled) and:
1. Exports the forwarded environment variables
2. Loads the renderer entry module fresh from disk
3. Calls its ``render_page(path)`` for each requested path
4. Returns the rendered strings, or raises RenderError

The worker imports minimal dependencies to keep startup cheap.
"""

from __future__ import annotations

import importlib.util
import itertools
import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Iterator

from devserver.errors import RenderError

logger = logging.getLogger(__name__)

# Name of the callable every renderer entry module must expose
RENDER_FUNCTION = "render_page"

_module_ids = itertools.count()


@dataclass(frozen=True)
class RenderJob:
    """A unit of render work. Immutable once submitted."""
    paths: tuple[str, ...] = ()
    renderer_path: str = ""
    directory: str = ""
    env_vars: tuple[tuple[str, str], ...] = ()
    warming: bool = False

    @classmethod
    def warming_job(cls) -> "RenderJob":
        """Job used to pay the worker's startup cost before real requests."""
        return cls(warming=True)


@contextmanager
def _job_environment(job: RenderJob) -> Iterator[None]:
    """
    Export the job's environment variables and make the renderer's own imports
    resolvable, restoring the previous values afterwards.

    Thread workers share the server's process, so nothing may outlive the job.
    """
    previous_env = {key: os.environ.get(key) for key, _ in job.env_vars}
    added_paths = []
    renderer_dir = str(Path(job.renderer_path).parent) if job.renderer_path else ""
    for directory in (job.directory, renderer_dir):
        if directory and directory not in sys.path:
            sys.path.insert(0, directory)
            added_paths.append(directory)
    for key, value in job.env_vars:
        os.environ[key] = value

    try:
        yield
    finally:
        for key, value in previous_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        for directory in added_paths:
            if directory in sys.path:
                sys.path.remove(directory)


def _load_renderer(renderer_path: str) -> ModuleType:
    """
    Load the renderer entry module from disk.

    The module is loaded under a fresh name on every call and is not cached
    in ``sys.modules``, so a rebuilt renderer is always picked up.
    """
    path = Path(renderer_path)
    module_name = f"_devserver_renderer_{next(_module_ids)}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load renderer entry: {renderer_path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _render_paths(job: RenderJob) -> list[str]:
    module = _load_renderer(job.renderer_path)
    render = getattr(module, RENDER_FUNCTION, None)
    if not callable(render):
        raise AttributeError(
            f"Renderer entry {job.renderer_path} does not define {RENDER_FUNCTION}(path)"
        )

    results: list[str] = []
    for path in job.paths:
        html = render(path)
        if not isinstance(html, str):
            raise TypeError(
                f"{RENDER_FUNCTION}({path!r}) returned {type(html).__name__}, expected str"
            )
        results.append(html)
    return results


def render_html(job: RenderJob) -> list[str]:
    """
    Render every path of ``job``.

    Called in the worker. Must stay a top-level function so it can be pickled
    for spawned worker processes.

    Returns:
        One rendered string per requested path, in order. Warming jobs
        return an empty list.

    Raises:
        RenderError: wrapping whatever the renderer raised
    """
    if job.warming:
        logger.debug(f"Render worker warmed up (pid {os.getpid()})")
        return []

    try:
        with _job_environment(job):
            return _render_paths(job)
    except Exception as e:
        logger.debug(f"Render failed for {list(job.paths)}: {e}")
        raise RenderError.from_exception(e) from None
