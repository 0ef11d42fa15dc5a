"""The event coordinator: turns host lifecycle events into scheduled actions."""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Iterable

from ..ui.events import (
    ActiveEditorChanged,
    DocumentEdited,
    DocumentOpened,
    DocumentSaved,
    EventBus,
)
from .build_policy import BuildDispatchPolicy
from .config_gate import ConfigurationGate
from .debounce import DebounceScheduler, TimerLoop
from .deprecations import DEPRECATED_KEYS, DeprecatedConfigWarner, DeprecatedKey, DeprecationNotice
from .dispatch import Dispatcher, classify
from .lint_policy import LintDispatchPolicy, LintTrigger
from .root_trigger import RootResolutionTrigger
from .types import (
    ActiveEditor,
    Builder,
    Classifier,
    ConfigurationSource,
    DocumentIdentity,
    Linter,
    Notifier,
    Resolver,
    StatusIndicator,
    VisibilityState,
)
from .visibility import VisibilityStateMachine

__all__ = ["EventCoordinator"]

LOGGER = logging.getLogger(__name__)

PathLike = str | os.PathLike[str] | None


class EventCoordinator:
    """Context object built once at start-up and handed to the host's event sources.

    Each handler fans an event out to the policies that care about it. The
    coordinator never waits on a collaborator and never lets a collaborator
    failure escape. After :meth:`dispose` every handler is a no-op.
    """

    def __init__(
        self,
        *,
        resolver: Resolver,
        linter: Linter,
        builder: Builder,
        classifier: Classifier,
        config: ConfigurationSource,
        status: StatusIndicator,
        notifier: Notifier,
        loop: TimerLoop | None = None,
        settings_opener: Callable[[], Any] | None = None,
        deprecated_keys: Iterable[DeprecatedKey] = DEPRECATED_KEYS,
    ) -> None:
        self._classifier = classifier
        self._gate = ConfigurationGate(config)
        self._dispatcher = Dispatcher(loop)
        self._scheduler = DebounceScheduler(loop, name="lint-debounce")
        self._settings_opener = settings_opener
        self._lint = LintDispatchPolicy(
            linter=linter,
            classifier=classifier,
            gate=self._gate,
            scheduler=self._scheduler,
            dispatcher=self._dispatcher,
            active_document=lambda: self._active,
        )
        self._build = BuildDispatchPolicy(
            builder=builder,
            classifier=classifier,
            gate=self._gate,
            dispatcher=self._dispatcher,
        )
        self._roots = RootResolutionTrigger(
            resolver=resolver,
            classifier=classifier,
            dispatcher=self._dispatcher,
        )
        self._visibility = VisibilityStateMachine(indicator=status, classifier=classifier)
        self._warner = DeprecatedConfigWarner(gate=self._gate, notifier=notifier, table=deprecated_keys)
        self._active: DocumentIdentity | None = None
        self._bus: EventBus[Any] | None = None
        self._started = False
        self._disposed = False
        LOGGER.info("Quire coordinator initialized.")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def gate(self) -> ConfigurationGate:
        return self._gate

    @property
    def scheduler(self) -> DebounceScheduler:
        return self._scheduler

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def visibility(self) -> VisibilityState:
        return self._visibility.state

    @property
    def active_document(self) -> DocumentIdentity | None:
        return self._active

    @property
    def warned_keys(self) -> frozenset[str]:
        return self._warner.warned_keys

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Resolve the root, lint the project if enabled, and check deprecated options."""

        if self._started or self._disposed:
            return
        self._started = True
        self._roots.on_startup()
        self._lint.lint_root_if_enabled()
        self._check_deprecated_config()

    def attach(self, bus: EventBus[Any]) -> None:
        if self._bus is bus:
            return
        self.detach()
        bus.subscribe(DocumentSaved, self._on_saved)
        bus.subscribe(DocumentOpened, self._on_opened)
        bus.subscribe(DocumentEdited, self._on_edited)
        bus.subscribe(ActiveEditorChanged, self._on_active_editor_changed)
        self._bus = bus

    def detach(self) -> None:
        bus = self._bus
        if bus is None:
            return
        bus.unsubscribe(DocumentSaved, self._on_saved)
        bus.unsubscribe(DocumentOpened, self._on_opened)
        bus.unsubscribe(DocumentEdited, self._on_edited)
        bus.unsubscribe(ActiveEditorChanged, self._on_active_editor_changed)
        self._bus = None

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._scheduler.cancel_pending()
        self.detach()
        LOGGER.debug("Coordinator disposed (%d collaborator task(s) still running)", self._dispatcher.in_flight)

    # ------------------------------------------------------------------
    # Lifecycle event handlers
    # ------------------------------------------------------------------
    def handle_document_saved(self, path: PathLike) -> None:
        if self._ignored("DocumentSaved"):
            return
        document = DocumentIdentity.from_path(path)
        self._lint.handle(LintTrigger.SAVED, document)
        self._build.handle_saved(document)

    def handle_document_opened(self, path: PathLike) -> None:
        if self._ignored("DocumentOpened"):
            return
        document = DocumentIdentity.from_path(path)
        if not classify(self._classifier, document.path):
            LOGGER.debug("Open of %s ignored: gate=classifier", document or "<untitled>")
            return
        self._check_deprecated_config()
        self._roots.on_opened(document)

    def handle_document_edited(self, path: PathLike) -> None:
        if self._ignored("DocumentEdited"):
            return
        self._lint.handle(LintTrigger.EDITED, DocumentIdentity.from_path(path))

    def handle_active_editor_changed(self, editor: ActiveEditor | None) -> None:
        if self._ignored("ActiveEditorChanged"):
            return
        self._active = (editor.document or None) if editor is not None else None
        self._visibility.update(editor)
        self._roots.on_active_editor_changed(editor)
        if editor is not None:
            self._lint.handle(LintTrigger.ACTIVE_CHANGED, editor.document)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _on_saved(self, event: DocumentSaved) -> None:
        self.handle_document_saved(event.path)

    def _on_opened(self, event: DocumentOpened) -> None:
        self.handle_document_opened(event.path)

    def _on_edited(self, event: DocumentEdited) -> None:
        self.handle_document_edited(event.path)

    def _on_active_editor_changed(self, event: ActiveEditorChanged) -> None:
        self.handle_active_editor_changed(event.editor)

    def _check_deprecated_config(self) -> list[DeprecationNotice]:
        notices = self._warner.check()
        opener = self._settings_opener
        for notice in notices:
            if notice.open_settings and opener is not None:
                self._dispatcher.dispatch("settings_opener", opener)
        return notices

    def _ignored(self, event_name: str) -> bool:
        if self._disposed:
            LOGGER.debug("%s ignored: coordinator disposed", event_name)
            return True
        return False
