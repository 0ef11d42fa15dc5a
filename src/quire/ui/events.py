"""Lifecycle events delivered by the host editor, and the bus that carries them.

Hosts either call :class:`~quire.coordination.coordinator.EventCoordinator`
handlers directly or publish these events on an :class:`EventBus` the
coordinator is attached to.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..coordination.types import ActiveEditor

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all lifecycle events."""

    pass


# High-frequency event types that should not log each publish
_QUIET_EVENT_TYPES: set[type] = set()


@dataclass(slots=True)
class DocumentOpened(Event):
    """Emitted when the host opens a document.

    Attributes:
        path: Filesystem path of the opened document.
    """

    path: str


@dataclass(slots=True)
class DocumentSaved(Event):
    """Emitted after the host wrote a document to disk.

    Attributes:
        path: Filesystem path the document was saved to.
    """

    path: str


@dataclass(slots=True)
class DocumentEdited(Event):
    """Emitted on every change to a document's text.

    Attributes:
        path: Filesystem path of the edited document.
    """

    path: str


_QUIET_EVENT_TYPES.add(DocumentEdited)


@dataclass(slots=True)
class ActiveEditorChanged(Event):
    """Emitted when focus moves to another editor, or away from all editors.

    Attributes:
        editor: The newly focused editor, or ``None`` when none is focused.
    """

    editor: ActiveEditor | None = None


class EventBus(Generic[E]):
    """Synchronous publish/subscribe dispatcher.

    Bound methods are held through :class:`WeakMethod` so a subscriber that
    goes away is dropped automatically. A handler that raises is logged and
    the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[type, list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove one registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for i, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(i)
                logger.debug("Unsubscribed %s from %s", _handler_name(handler), event_type.__name__)
                return

    def publish(self, event: E) -> None:
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        is_quiet = event_type in _QUIET_EVENT_TYPES

        if not handlers:
            if not is_quiet:
                logger.debug("No handlers for event type %s", event_type.__name__)
            return

        if not is_quiet:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead:
            if handler_ref in handlers:
                handlers.remove(handler_ref)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: Any, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> "_HandlerRef":
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref
        return self._ref()

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        cls_name = type(handler.__self__).__name__
        return f"{cls_name}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "DocumentOpened",
    "DocumentSaved",
    "DocumentEdited",
    "ActiveEditorChanged",
]
