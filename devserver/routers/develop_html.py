"""
Develop HTML Route

Server-side renders registered pages on request during development.

A page request is held until the develop machine has acknowledged it and is
back in its ``waiting`` state, so a render never observes a half-finished
rebuild. The render itself runs in the render worker pool; failures come back
as an HTML error page pointing at the failing source line.
"""

from __future__ import annotations

import asyncio
import html
import logging
import os
import uuid
from typing import Awaitable, Callable, Iterable

from fastapi import Request
from fastapi.responses import HTMLResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from devserver.config import Settings
from devserver.core.activity import phantom_activity
from devserver.core.develop_machine import (
    DEVELOP_HTML_REQUEST_RECEIVED,
    SEND_DEVELOP_HTML_RESPONSES,
    WAITING,
    DevelopMachine,
    MachineEvent,
)
from devserver.core.diagnostics import Diagnostic, ErrorTranslator
from devserver.core.pages import PageRegistry
from devserver.execution import render_dev_html

logger = logging.getLogger(__name__)

Renderer = Callable[[str, str, str, Iterable[tuple[str, str]]], Awaitable[str]]


def render_error_page(url_path: str, error: Diagnostic, background: str) -> str:
    """HTML page shown when a page fails to server-side render."""
    return f"""<title>Develop SSR Error</title><h1>Error</h1>
        <h2>The page didn't SSR correctly</h2>
        <ul>
          <li><strong>URL path:</strong> <code>{html.escape(url_path)}</code></li>
          <li><strong>File path:</strong> <code>{html.escape(error.filename)}</code></li>
        </ul>
        <h3>error message</h3>
        <p><code>{html.escape(error.message)}</code></p>
        <pre style="background:#{background};padding:8px;">{error.code_frame}</pre>"""


class DevelopHTMLRoute:
    """
    Gate between page requests, the develop machine and the render pool.

    Each request waits on its own acknowledgment future, keyed by request id,
    so concurrent requests never overwrite each other.
    """

    def __init__(
        self,
        machine: DevelopMachine,
        pages: PageRegistry,
        settings: Settings,
        renderer: Renderer = render_dev_html,
    ):
        self.machine = machine
        self.pages = pages
        self.settings = settings
        self._renderer = renderer
        self._translator = ErrorTranslator(settings.project_directory, settings.code_frame)
        self._pending: dict[str, asyncio.Future] = {}
        self._subscription = machine.subscribe(self.receive)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def receive(self, event: MachineEvent) -> None:
        """
        Handle an event from the develop machine.

        An acknowledgment with a request id releases that request; one without
        releases every pending request.
        """
        if event.type != SEND_DEVELOP_HTML_RESPONSES:
            return

        if event.request_id is not None:
            futures = [self._pending.get(event.request_id)]
        else:
            futures = list(self._pending.values())

        for future in futures:
            if future is not None and not future.done():
                future.set_result(None)

    def forwarded_env(self) -> list[tuple[str, str]]:
        return [(key, os.environ.get(key, "")) for key in self.settings.forwarded_env]

    async def _wait_for_acknowledgment(self) -> None:
        request_id = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            self.machine.send(DEVELOP_HTML_REQUEST_RECEIVED, request_id=request_id)
            logger.debug(f"Waiting for develop machine to acknowledge {request_id}")
            await future
        finally:
            self._pending.pop(request_id, None)

    async def handle(self, path: str) -> Response | None:
        """
        Render ``path`` if it is a registered page.

        Returns:
            The response to send, or None when the path is not a page
        """
        page = self.pages.get(path)
        if page is None:
            return None

        # Sleep until any work the server is doing has finished.
        await self._wait_for_acknowledgment()
        await self.machine.wait_for_state(WAITING)

        with phantom_activity("building HTML for path", path=path, page=page):
            try:
                page_html = await self._renderer(
                    path,
                    self.settings.renderer_path,
                    self.settings.project_directory,
                    self.forwarded_env(),
                )
                return HTMLResponse(page_html, status_code=200)
            except Exception as e:
                logger.warning(f"SSR failed for {path}: {e}")
                error = self._translator.translate(e)
                error_page = render_error_page(path, error, self.settings.code_frame.palette.background)
                return HTMLResponse(error_page, status_code=500)

    def close(self) -> None:
        self.machine.unsubscribe(self._subscription)


class DevelopHTMLMiddleware(BaseHTTPMiddleware):
    """Serves registered pages through the DevelopHTMLRoute on ``app.state``."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        route: DevelopHTMLRoute | None = getattr(request.app.state, "develop_html", None)
        if route is None or request.method != "GET":
            return await call_next(request)

        response = await route.handle(request.url.path)
        if response is None:
            return await call_next(request)
        return response
