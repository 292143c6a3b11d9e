"""
Activity reporting.

A phantom activity is a named, timed span that is only logged, not shown in a
progress UI.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

logger = logging.getLogger(__name__)


@dataclass
class Activity:
    text: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    metadata: dict[str, Any] = field(default_factory=dict)
    started_at: float = field(default_factory=time.monotonic)
    ended_at: float | None = None

    @property
    def duration_ms(self) -> int:
        end = self.ended_at if self.ended_at is not None else time.monotonic()
        return int((end - self.started_at) * 1000)


@contextmanager
def phantom_activity(text: str, **metadata: Any) -> Iterator[Activity]:
    """Log the start and end of ``text``; the end is logged even on error."""
    activity = Activity(text=text, metadata=metadata)
    logger.debug(f"Activity {activity.id} started: {text} {metadata or ''}".rstrip())
    try:
        yield activity
    finally:
        activity.ended_at = time.monotonic()
        logger.info(f"{text} ({activity.duration_ms}ms)")
