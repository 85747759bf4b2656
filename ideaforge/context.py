"""Per-run execution context.

A ``RunContext`` is created by ``WorkflowEngine.run`` for exactly one run and
passed explicitly to every stage. It carries the run id, the cancellation
token every provider call must observe, and the progress channel. Nothing
here is stored in module-level state, so concurrent runs never share
cancellation or progress.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable
from typing import TypeVar

from .events import NodeStatus, ProgressChannel, ProgressEvent
from .providers.base import ChatMessage, CompletionOptions, TextGenerationProvider

T = TypeVar("T")


class RunCancelled(Exception):
    """Raised when the run's cancellation token fires."""

    def __init__(self, reason: str = "Run cancelled") -> None:
        self.reason = reason
        super().__init__(reason)


class CancellationToken:
    """Cooperative cancellation shared by every task of a single run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Run cancelled") -> None:
        """Fire the token. Idempotent; the first reason wins."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelled(self.reason)

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await *awaitable* unless the token fires first.

        The awaitable runs as its own task and is raced against the token.
        When the token wins, the in-flight task is cancelled and
        ``RunCancelled`` is raised.
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise RunCancelled(self.reason)
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            raise

        if task in done:
            waiter.cancel()
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise RunCancelled(self.reason)


class RunContext:
    """Everything one workflow run threads through its stages.

    Attributes:
        run_id: Identifier of the run; becomes the project id on persist.
        token: Cancellation token observed by every provider call.
        progress: The run's single progress channel.
    """

    def __init__(
        self,
        progress: ProgressChannel,
        token: CancellationToken | None = None,
        run_id: str | None = None,
    ) -> None:
        self.run_id = run_id or uuid.uuid4().hex
        self.token = token or CancellationToken()
        self.progress = progress

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Shorthand for ``self.token.guard(awaitable)``."""
        return await self.token.guard(awaitable)

    async def complete(
        self,
        provider: TextGenerationProvider,
        messages: list[ChatMessage],
        options: CompletionOptions,
    ) -> str:
        """Call *provider* under this run's cancellation token."""
        return await self.token.guard(provider.complete(messages, options))

    def emit(
        self,
        node_id: str,
        status: NodeStatus,
        message: str | None = None,
        parent_id: str | None = None,
    ) -> None:
        """Publish a progress event for *node_id* (never blocks)."""
        self.progress.emit(
            ProgressEvent(
                node_id=node_id, status=status, message=message, parent_id=parent_id
            )
        )
