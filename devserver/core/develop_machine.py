"""
Develop State Machine

Observable build state for the development server. Only one state matters to
the HTML route: ``waiting`` means no rebuild is running and renders are safe.

Provides:
- Event delivery to subscribers (the develop HTML route listens here)
- A state-change subscription to await a given state without polling
- Acknowledgment of develop HTML requests
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

WAITING = "waiting"

# Sent by the HTML route when a page request arrives
DEVELOP_HTML_REQUEST_RECEIVED = "DEVELOP_HTML_REQUEST_RECEIVED"
# Sent back to the HTML route once the request has been seen
SEND_DEVELOP_HTML_RESPONSES = "SEND_DEVELOP_HTML_RESPONSES"


@dataclass(frozen=True)
class MachineEvent:
    type: str
    request_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[MachineEvent], None]


class DevelopMachine:
    """
    Minimal develop state machine.

    The transition table is owned by the build orchestration; this class only
    records the current state and notifies whoever waits on it.
    """

    def __init__(self, initial_state: str = WAITING):
        self._state = initial_state
        self._listeners: dict[int, Listener] = {}
        self._next_id = 1
        self._state_waiters: list[tuple[str, asyncio.Future]] = []

    @property
    def state(self) -> str:
        return self._state

    def subscribe(self, listener: Listener) -> int:
        """Register a listener for events emitted by the machine."""
        sub_id = self._next_id
        self._next_id += 1
        self._listeners[sub_id] = listener
        return sub_id

    def unsubscribe(self, sub_id: int) -> None:
        self._listeners.pop(sub_id, None)

    def emit(self, event: MachineEvent) -> None:
        """Deliver ``event`` to every subscriber."""
        for listener in list(self._listeners.values()):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Develop machine listener failed on {event.type}: {e}")

    def transition(self, state: str) -> None:
        """Move to ``state`` and wake everyone waiting for it."""
        if state == self._state:
            return
        logger.debug(f"Develop machine: {self._state} -> {state}")
        self._state = state

        still_waiting = []
        for target, future in self._state_waiters:
            if future.done():
                continue
            if target == state:
                future.set_result(None)
            else:
                still_waiting.append((target, future))
        self._state_waiters = still_waiting

    async def wait_for_state(self, state: str) -> None:
        """
        Return once the machine is in ``state``.

        A waiter resumes on a later loop iteration than the transition that
        woke it, so the state is checked again after every wake-up.
        """
        loop = asyncio.get_running_loop()
        while self._state != state:
            future = loop.create_future()
            self._state_waiters.append((state, future))
            await future

    def send(self, event_type: str, **payload: Any) -> None:
        """
        Receive an event from a collaborator.

        A develop HTML request is acknowledged on the next loop iteration with
        a SEND_DEVELOP_HTML_RESPONSES event for the same request id.
        """
        if event_type != DEVELOP_HTML_REQUEST_RECEIVED:
            logger.debug(f"Develop machine ignored event {event_type}")
            return

        ack = MachineEvent(
            type=SEND_DEVELOP_HTML_RESPONSES,
            request_id=payload.get("request_id"),
        )
        asyncio.get_running_loop().call_soon(self.emit, ack)
