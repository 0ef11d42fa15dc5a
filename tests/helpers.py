"""Shared test helpers and stub collaborators.

Import from here instead of duplicating these classes in individual test files::

    from tests.helpers import ManualLoop, RecordingLinter
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from quire.coordination.coordinator import EventCoordinator
from quire.coordination.types import DocumentIdentity
from quire.services.settings import InMemoryConfiguration


class _ManualHandle:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.when = when
        self._callback = callback
        self._args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def run(self) -> None:
        self._callback(*self._args)


class ManualLoop:
    """Deterministic stand-in for the loop's ``time``/``call_later`` pair.

    Time only moves when a test calls :meth:`advance` (seconds) or
    :meth:`advance_ms`; due callbacks run in deadline order.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._handles: list[_ManualHandle] = []

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> _ManualHandle:
        handle = _ManualHandle(self._now + max(0.0, delay), callback, args)
        self._handles.append(handle)
        return handle

    @property
    def live_timers(self) -> int:
        return sum(1 for handle in self._handles if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        deadline = self._now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.when <= deadline + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self._now = max(self._now, handle.when)
            handle.run()
        self._now = deadline

    def advance_ms(self, milliseconds: float) -> None:
        self.advance(milliseconds / 1000.0)


def tex_classifier(path: str) -> bool:
    return path.endswith(".tex")


class RecordingLinter:
    def __init__(self, clock: ManualLoop | None = None) -> None:
        self._clock = clock
        self.calls: list[tuple[str, DocumentIdentity | None, float | None]] = []

    def lint_root(self) -> None:
        self.calls.append(("root", None, self._now()))

    def lint_active(self, document: DocumentIdentity) -> None:
        self.calls.append(("active", document, self._now()))

    def _now(self) -> float | None:
        return self._clock.time() if self._clock is not None else None


class RecordingBuilder:
    def __init__(self, suppressed: bool = False) -> None:
        self.suppressed = suppressed
        self.builds: list[DocumentIdentity] = []
        self.suppression_checks = 0

    def build(self, document: DocumentIdentity) -> None:
        self.builds.append(document)

    def is_build_suppressed(self) -> bool:
        self.suppression_checks += 1
        return self.suppressed


class RecordingResolver:
    def __init__(self) -> None:
        self.calls: list[DocumentIdentity | None] = []

    def find_root(self, document: DocumentIdentity | None = None) -> None:
        self.calls.append(document)


class RecordingStatus:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def show(self) -> None:
        self.calls.append("show")

    def hide(self) -> None:
        self.calls.append("hide")


class ScriptedNotifier:
    def __init__(self, choice: str | None = None) -> None:
        self.choice = choice
        self.warnings: list[tuple[str, str | None]] = []

    def warn(self, message: str, action_label: str | None = None) -> str | None:
        self.warnings.append((message, action_label))
        return self.choice


@dataclass
class CoordinatorRig:
    """A coordinator wired to recording collaborators and a manual clock."""

    loop: ManualLoop
    config: InMemoryConfiguration
    linter: RecordingLinter
    builder: RecordingBuilder
    resolver: RecordingResolver
    status: RecordingStatus
    notifier: ScriptedNotifier
    coordinator: EventCoordinator
    opened_settings: list[Any] = field(default_factory=list)
