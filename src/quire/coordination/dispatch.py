"""Fire-and-forget invocation of collaborators."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

__all__ = ["Dispatcher", "classify"]

LOGGER = logging.getLogger(__name__)


def classify(classifier: Callable[[str], bool], path: str) -> bool:
    """Ask the classifier about ``path``; empty paths and failures count as unmanaged."""

    if not path:
        return False
    try:
        return bool(classifier(path))
    except Exception:
        LOGGER.warning("Classifier failed for %s; treating it as unmanaged", path, exc_info=True)
        return False


class Dispatcher:
    """Calls collaborators without waiting on them and contains their failures.

    A synchronous raise is logged. An awaitable result is scheduled on the
    loop and kept referenced until it finishes; its failure is logged from the
    done-callback. Nothing propagates back to the caller.
    """

    def __init__(self, loop: Any | None = None) -> None:
        self._loop = loop
        self._tasks: set[asyncio.Future[Any]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def dispatch(self, label: str, func: Callable[..., Any], *args: Any) -> None:
        try:
            result = func(*args)
        except Exception:
            LOGGER.exception("Collaborator call %s failed", label)
            return
        if not inspect.isawaitable(result):
            return
        try:
            task = asyncio.ensure_future(result, loop=self._resolve_loop())
        except RuntimeError:
            LOGGER.warning("Collaborator call %s returned an awaitable but no event loop is running", label)
            if inspect.iscoroutine(result):
                result.close()
            return
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._finished(label, done))

    async def drain(self) -> None:
        """Wait for every collaborator task dispatched so far."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _finished(self, label: str, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            LOGGER.debug("Collaborator call %s was cancelled", label)
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Collaborator call %s failed: %s", label, exc, exc_info=exc)

    def _resolve_loop(self) -> Any:
        if self._loop is None or not isinstance(self._loop, asyncio.AbstractEventLoop):
            return asyncio.get_running_loop()
        return self._loop
