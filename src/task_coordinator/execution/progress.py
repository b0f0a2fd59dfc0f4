"""Per-call progress reporting.

A :class:`ProgressChannel` is created by the caller of one coordination call
and passed down to the dispatcher. Events can be observed through a
synchronous listener, by iterating the channel asynchronously, or by reading
:attr:`ProgressChannel.events` after the call returns. Each step emits at
most two events and emission stops once the channel is closed, so the buffer
for one call never holds more than twice its step count plus the end marker.
"""

import asyncio
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Literal, Optional

from pydantic import Field

from task_coordinator.models.base import ModelBase
from task_coordinator.models.enums import Action, Agent
from task_coordinator.observability.logging import get_logger

logger = get_logger(__name__)

ProgressStage = Literal["started", "completed", "failed", "skipped"]


class ProgressEvent(ModelBase):
    """One step transition of a coordination call.

    Attributes:
        stage: What happened.
        agent: Capability provider involved.
        action: Action involved.
        step: Step number within the run.
        message: Human-readable note.
        timestamp: When it happened.
    """

    stage: ProgressStage = Field(..., description="What happened.")
    agent: Agent = Field(..., description="Capability provider involved.")
    action: Action = Field(..., description="Action involved.")
    step: int = Field(default=1, ge=1, description="Step number.")
    message: str = Field(default="", description="Human-readable note.")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When it happened.",
    )


ProgressListener = Callable[[ProgressEvent], None]


class ProgressChannel:
    """Typed stream of progress events for a single coordination call."""

    def __init__(self, listener: Optional[ProgressListener] = None) -> None:
        self._listener = listener
        self._events: list[ProgressEvent] = []
        self._queue: asyncio.Queue[Optional[ProgressEvent]] = asyncio.Queue()
        self._closed = False

    @property
    def events(self) -> list[ProgressEvent]:
        return list(self._events)

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(
        self,
        stage: ProgressStage,
        *,
        agent: Agent,
        action: Action,
        step: int = 1,
        message: str = "",
    ) -> ProgressEvent:
        event = ProgressEvent(
            stage=stage, agent=agent, action=action, step=step, message=message
        )
        if self._closed:
            return event
        self._events.append(event)
        self._queue.put_nowait(event)
        if self._listener is not None:
            try:
                self._listener(event)
            except Exception:
                logger.exception(
                    "Progress listener failed",
                    extra={
                        "extra_fields": {"stage": stage, "agent": agent.value}
                    },
                )
        return event

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event
