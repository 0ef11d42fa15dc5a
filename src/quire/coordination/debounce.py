"""Trailing-edge debounce owning a single cancellable timer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from .types import DocumentIdentity

__all__ = ["DebounceScheduler", "PendingTimer", "TimerLoop"]

LOGGER = logging.getLogger(__name__)


class TimerLoop(Protocol):
    """Subset of :class:`asyncio.AbstractEventLoop` the scheduler relies on."""

    def time(self) -> float:  # pragma: no cover - protocol stub
        ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Any:  # pragma: no cover
        ...


@dataclass(slots=True)
class PendingTimer:
    """The one outstanding deferred action of a scheduler."""

    fire_at: float
    target: DocumentIdentity | None
    handle: Any


class DebounceScheduler:
    """Coalesces bursts of ``schedule`` calls into one trailing action.

    Every ``schedule`` cancels the previous timer before arming a new one, so
    at most one action is outstanding and the action that eventually runs is
    the one passed by the last call, timed from that call.
    """

    def __init__(self, loop: TimerLoop | None = None, *, name: str = "debounce") -> None:
        self._loop = loop
        self._name = name
        self._pending: PendingTimer | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def pending(self) -> bool:
        return self._pending is not None

    @property
    def pending_timer(self) -> PendingTimer | None:
        return self._pending

    def schedule(
        self,
        interval_ms: int | float,
        action: Callable[[], Any],
        *,
        target: DocumentIdentity | None = None,
    ) -> PendingTimer | None:
        """Replace any pending action with ``action``; ``None`` when no loop can host the timer."""

        self.cancel_pending()
        try:
            loop = self._resolve_loop()
        except RuntimeError:
            LOGGER.warning(
                "%s: deferred action for %s skipped: gate=no-loop",
                self._name,
                target or "<no target>",
            )
            return None
        delay = max(0.0, float(interval_ms)) / 1000.0
        timer = PendingTimer(fire_at=loop.time() + delay, target=target, handle=None)
        timer.handle = loop.call_later(delay, self._fire, timer, action)
        self._pending = timer
        LOGGER.debug("%s: armed for %s in %.0f ms", self._name, target or "<no target>", delay * 1000.0)
        return timer

    def cancel_pending(self) -> None:
        timer = self._pending
        if timer is None:
            return
        self._pending = None
        timer.handle.cancel()
        LOGGER.debug("%s: cancelled pending action for %s", self._name, timer.target or "<no target>")

    def _fire(self, timer: PendingTimer, action: Callable[[], Any]) -> None:
        if self._pending is not timer:
            return
        self._pending = None
        try:
            action()
        except Exception:
            LOGGER.exception("%s: deferred action failed", self._name)

    def _resolve_loop(self) -> TimerLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop
