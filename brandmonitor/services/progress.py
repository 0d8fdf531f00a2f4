"""Progress events emitted by a measurement run, and the sinks that receive them.

A run always emits ``start`` first and ``complete`` last. In between, each
prompt x provider task emits ``progress`` followed by one of ``success``,
``skipped`` or ``error``.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    START = "start"
    PROGRESS = "progress"
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ProgressEvent:
    type: EventType
    payload: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type.value, **self.payload}

    def to_sse(self) -> str:
        return f"data: {json.dumps(self.to_dict(), default=str, ensure_ascii=False)}\n\n"


ProgressSink = Callable[[ProgressEvent], Union[Awaitable[None], None]]


async def emit(sink: ProgressSink | None, event: ProgressEvent) -> None:
    """Deliver *event* to *sink*. Sink failures are logged and ignored."""
    if sink is None:
        return
    try:
        outcome = sink(event)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as e:
        logger.warning("Progress sink failed on %s event: %s", event.type.value, e)


class CancellationToken:
    """Checked by the orchestrator between tasks."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class QueueProgressSink:
    """Buffers events in an asyncio.Queue for an SSE response to drain."""

    def __init__(self):
        self.queue: asyncio.Queue[ProgressEvent] = asyncio.Queue()

    def __call__(self, event: ProgressEvent) -> None:
        self.queue.put_nowait(event)

    async def stream(self) -> AsyncIterator[str]:
        """Yield SSE frames until the ``complete`` event has been sent."""
        while True:
            event = await self.queue.get()
            yield event.to_sse()
            if event.type == EventType.COMPLETE:
                return


class CollectingSink:
    """Keeps every event in memory (Celery tasks, tests)."""

    def __init__(self):
        self.events: list[ProgressEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[ProgressEvent]:
        return [e for e in self.events if e.type == event_type]
