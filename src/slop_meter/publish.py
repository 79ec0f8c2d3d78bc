"""Best-effort delivery of analysis records to listeners."""

import asyncio
import inspect
from typing import Any, Callable, Optional, Protocol

from .logging import get_logger
from .models import RepoAnalysis

logger = get_logger("publish")


class PublicationSink(Protocol):
    def publish(self, analysis: RepoAnalysis) -> Any:
        """Receive a record. May return an awaitable."""
        ...


class CallbackSink:
    """Adapt a plain function or coroutine function into a sink."""

    def __init__(self, callback: Callable[[RepoAnalysis], Any]):
        self.callback = callback

    def publish(self, analysis: RepoAnalysis) -> Any:
        return self.callback(analysis)


class Broadcaster:
    """Fan a record out to every subscribed listener. No listeners is fine."""

    def __init__(self) -> None:
        self._listeners: list[PublicationSink] = []

    def subscribe(self, listener: PublicationSink) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: PublicationSink) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def publish(self, analysis: RepoAnalysis) -> None:
        for listener in list(self._listeners):
            await deliver(listener, analysis)


class FinalResultWaiter:
    """Resolve once a final record for one repository arrives.

    Records for other repositories are ignored, which is how a consumer
    discards a stale run that finishes late.
    """

    def __init__(self, repo_id: str):
        self.repo_id = repo_id
        self._future: Optional[asyncio.Future] = None

    def _ensure_future(self) -> asyncio.Future:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    def publish(self, analysis: RepoAnalysis) -> None:
        future = self._ensure_future()
        if analysis.repo_id != self.repo_id or not analysis.is_final:
            return
        if not future.done():
            future.set_result(analysis)

    async def wait(self) -> RepoAnalysis:
        return await self._ensure_future()


async def deliver(sink: Optional[PublicationSink], analysis: RepoAnalysis) -> None:
    """Deliver to one sink, swallowing delivery failures."""
    if sink is None:
        return
    try:
        result = sink.publish(analysis)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.debug("Delivery of %s (%s) failed: %s", analysis.repo_id, analysis.stage.value, e)
