"""Typed progress events and the single channel that carries them.

Stages publish ``ProgressEvent`` values through one ``ProgressChannel`` per
run. Emitting never blocks: events are queued and a single consumer task
fans them out to the registered sinks in emission order, so the events of
any one node arrive strictly ordered.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from .utils import console


class NodeStatus(str, Enum):
    """Lifecycle of a workflow node or artifact."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    SUCCESS = "success"
    ERROR = "error"


class ProgressEvent(BaseModel):
    """One status change of a workflow node."""

    model_config = ConfigDict(frozen=True)

    node_id: str = Field(..., description="Stage or artifact node, e.g. 'GenerateUI' or 'UI-Header'")
    status: NodeStatus
    message: Optional[str] = None
    parent_id: Optional[str] = Field(default=None, description="Enclosing node, if nested")


@runtime_checkable
class ProgressSink(Protocol):
    """Receives progress events. Must not block."""

    def notify(self, event: ProgressEvent) -> None: ...


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


_STATUS_STYLES: dict[NodeStatus, str] = {
    NodeStatus.PENDING: "dim",
    NodeStatus.IN_PROGRESS: "cyan",
    NodeStatus.SUCCESS: "green",
    NodeStatus.ERROR: "red",
}


class RichProgressSink:
    """Renders events on the console, indenting nested nodes."""

    def __init__(self, show_pending: bool = False) -> None:
        self.show_pending = show_pending

    def notify(self, event: ProgressEvent) -> None:
        if event.status is NodeStatus.PENDING and not self.show_pending:
            return
        style = _STATUS_STYLES[event.status]
        indent = "    " if event.parent_id else "  "
        suffix = f" -- {event.message}" if event.message else ""
        console.print(f"{indent}[{style}]{event.status.value:<11}[/{style}] {event.node_id}{suffix}")


class ProgressLog:
    """Records every event; consumers may collapse by node id."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def notify(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def for_node(self, node_id: str) -> list[ProgressEvent]:
        return [e for e in self.events if e.node_id == node_id]

    def latest(self) -> dict[str, ProgressEvent]:
        """Return the most recent event per node id, in first-seen order."""
        collapsed: dict[str, ProgressEvent] = {}
        for event in self.events:
            collapsed[event.node_id] = event
        return collapsed

    def statuses(self, node_id: str) -> list[NodeStatus]:
        return [e.status for e in self.for_node(node_id)]


# ---------------------------------------------------------------------------
# Channel
# ---------------------------------------------------------------------------


class ProgressChannel:
    """Single append-only event stream with one draining consumer.

    Usage::

        channel = ProgressChannel([RichProgressSink()])
        channel.start()
        channel.emit(ProgressEvent(node_id="ProcessIdea", status=NodeStatus.SUCCESS))
        await channel.aclose()
    """

    _CLOSE = object()

    def __init__(self, sinks: list[ProgressSink] | None = None) -> None:
        self.sinks: list[ProgressSink] = list(sinks or [])
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._consumer: asyncio.Task[None] | None = None

    def add_sink(self, sink: ProgressSink) -> None:
        self.sinks.append(sink)

    def start(self) -> None:
        """Start the consumer task on the running loop (idempotent)."""
        if self._consumer is None:
            self._consumer = asyncio.get_running_loop().create_task(self._drain())

    def emit(self, event: ProgressEvent) -> None:
        """Queue *event* for delivery. Never blocks."""
        self._queue.put_nowait(event)

    async def aclose(self) -> None:
        """Deliver everything queued so far, then stop the consumer."""
        if self._consumer is None:
            self.start()
        self._queue.put_nowait(self._CLOSE)
        assert self._consumer is not None
        await self._consumer
        self._consumer = None

    async def _drain(self) -> None:
        while True:
            item = await self._queue.get()
            if item is self._CLOSE:
                return
            assert isinstance(item, ProgressEvent)
            for sink in list(self.sinks):
                try:
                    sink.notify(item)
                except Exception as exc:  # noqa: BLE001
                    console.print(
                        f"[yellow]Progress sink {type(sink).__name__} failed and was "
                        f"detached: {exc}[/yellow]"
                    )
                    self.sinks.remove(sink)
