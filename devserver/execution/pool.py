"""
Worker pool for isolated page rendering.

Manages the executor that runs render jobs away from the server's event loop.
Provides:
- A fire-and-forget warming job on start so the first request is fast
- Restart without a dispatch gap (new pool is live before the old one drains)
- Error propagation from the worker to the caller, without retries
"""

from __future__ import annotations

import asyncio
import logging
import multiprocessing
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Literal

from devserver.errors import RenderPoolNotStartedError

from .worker import RenderJob, render_html

logger = logging.getLogger(__name__)

# Global pool instance
_pool: "RenderPool | None" = None

RenderFunction = Callable[[RenderJob], list[str]]


@dataclass(frozen=True)
class PoolHandle:
    """Handle to one generation of render workers."""
    executor: Executor
    generation: int
    warming: Future


class RenderPool:
    """
    Supervisor of the render worker pool.

    The current handle is only ever replaced, never mutated, and every
    submission reads it exactly once.

    Usage:
        pool = RenderPool(num_workers=1)
        pool.start()
        html = await pool.submit(RenderJob(paths=("/about",), ...))
    """

    def __init__(
        self,
        num_workers: int = 1,
        isolation: Literal["process", "thread"] = "process",
        render_fn: RenderFunction = render_html,
    ):
        self.num_workers = num_workers
        self.isolation = isolation
        self._render_fn = render_fn
        self._handle: PoolHandle | None = None
        self._generation = 0

    @property
    def handle(self) -> PoolHandle | None:
        return self._handle

    @property
    def generation(self) -> int:
        return self._handle.generation if self._handle else 0

    def _create_executor(self, generation: int) -> Executor:
        if self.isolation == "thread":
            return ThreadPoolExecutor(
                max_workers=self.num_workers,
                thread_name_prefix=f"render-worker-{generation}",
            )
        ctx = multiprocessing.get_context("spawn")
        return ProcessPoolExecutor(max_workers=self.num_workers, mp_context=ctx)

    def _start_handle(self) -> PoolHandle:
        self._generation += 1
        generation = self._generation
        executor = self._create_executor(generation)

        # Executors start workers lazily; submit a job we never wait on so the
        # worker boots now instead of on the first request.
        warming = executor.submit(self._render_fn, RenderJob.warming_job())
        warming.add_done_callback(
            lambda fut: self._on_warmed(generation, fut)
        )

        logger.info(
            f"Started render pool generation {generation} "
            f"({self.num_workers} {self.isolation} worker(s))"
        )
        return PoolHandle(executor=executor, generation=generation, warming=warming)

    @staticmethod
    def _on_warmed(generation: int, fut: Future) -> None:
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            logger.warning(f"Warming render pool generation {generation} failed: {exc}")
        else:
            logger.debug(f"Render pool generation {generation} is warm")

    def start(self) -> PoolHandle:
        """Create the worker pool. Returns without waiting for the warm-up."""
        if self._handle is not None:
            return self._handle
        self._handle = self._start_handle()
        return self._handle

    def restart(self) -> PoolHandle:
        """
        Replace the worker pool.

        The new pool is created before the swap, so there is no window without
        a live pool. The old pool finishes the jobs it already accepted and
        then shuts down in the background.
        """
        new_handle = self._start_handle()
        old_handle, self._handle = self._handle, new_handle

        if old_handle is not None:
            logger.info(f"Retiring render pool generation {old_handle.generation}")
            old_handle.executor.shutdown(wait=False)

        return new_handle

    async def submit(self, job: RenderJob) -> list[str]:
        """
        Render ``job`` on the current pool.

        Raises:
            RenderPoolNotStartedError: if start() was never called
            Exception: whatever the worker raised, unchanged
        """
        handle = self._handle
        if handle is None:
            raise RenderPoolNotStartedError("Render pool has not been started")

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(handle.executor, self._render_fn, job)

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the pool and terminate all workers."""
        handle, self._handle = self._handle, None
        if handle is not None:
            logger.info(f"Shutting down render pool generation {handle.generation}")
            handle.executor.shutdown(wait=wait)


def init_render_pool(
    num_workers: int | None = None,
    isolation: Literal["process", "thread"] | None = None,
) -> RenderPool:
    """Create and start the global render pool, replacing any previous one."""
    global _pool
    if _pool is not None:
        _pool.shutdown(wait=False)

    from devserver.config import get_settings
    settings = get_settings()
    _pool = RenderPool(
        num_workers=num_workers or settings.render_workers,
        isolation=isolation or settings.render_isolation,
    )
    _pool.start()
    return _pool


def get_render_pool() -> RenderPool:
    """Get the global render pool, creating and starting it if needed."""
    global _pool
    if _pool is None:
        return init_render_pool()
    return _pool


def restart_render_pool() -> PoolHandle:
    """Restart the global render pool."""
    return get_render_pool().restart()


def shutdown_render_pool(wait: bool = True) -> None:
    """Shutdown the global render pool."""
    global _pool
    if _pool:
        _pool.shutdown(wait=wait)
        _pool = None
