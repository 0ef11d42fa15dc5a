"""Decides when and how lifecycle events reach the linter."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from .config_gate import ConfigurationGate
from .debounce import DebounceScheduler
from .dispatch import Dispatcher, classify
from .types import Classifier, DocumentIdentity, Linter

__all__ = ["ActiveDocumentProvider", "LintDispatchPolicy", "LintTrigger"]

LOGGER = logging.getLogger(__name__)

ActiveDocumentProvider = Callable[[], "DocumentIdentity | None"]


class LintTrigger(str, Enum):
    SAVED = "saved"
    ACTIVE_CHANGED = "active_changed"
    EDITED = "edited"


def _no_active_document() -> DocumentIdentity | None:
    return None


class LintDispatchPolicy:
    """Saves and focus switches lint immediately; edits go through the debouncer.

    A deferred lint always targets the focused document, not the one that was
    edited. ``active_document`` is asked when the edit arrives and again when
    the timer fires, so a focus change during the quiet period retargets it.
    """

    def __init__(
        self,
        *,
        linter: Linter,
        classifier: Classifier,
        gate: ConfigurationGate,
        scheduler: DebounceScheduler,
        dispatcher: Dispatcher,
        active_document: ActiveDocumentProvider = _no_active_document,
    ) -> None:
        self._linter = linter
        self._classifier = classifier
        self._gate = gate
        self._scheduler = scheduler
        self._dispatcher = dispatcher
        self._active_document = active_document

    def handle(self, trigger: LintTrigger, document: DocumentIdentity) -> bool:
        """Apply the lint rule for ``trigger``; return True when lint was dispatched or armed."""

        if not classify(self._classifier, document.path):
            LOGGER.debug("Lint skipped for %s (%s): gate=classifier", document or "<untitled>", trigger.value)
            return False
        if not self._gate.linter_enabled():
            LOGGER.debug("Lint skipped for %s (%s): gate=config:linter", document, trigger.value)
            return False

        if trigger is LintTrigger.SAVED:
            self._dispatcher.dispatch("linter.lint_root", self._linter.lint_root)
            return True
        if trigger is LintTrigger.ACTIVE_CHANGED:
            self._dispatcher.dispatch("linter.lint_active", self._linter.lint_active, document)
            return True

        active = self._managed_active_document()
        if active is None:
            LOGGER.debug("Deferred lint for edit of %s not armed: gate=no-active-document", document)
            return False
        timer = self._scheduler.schedule(self._gate.linter_interval_ms(), self._lint_active_now, target=active)
        return timer is not None

    def lint_root_if_enabled(self) -> bool:
        """Start-up lint of the whole project, gated only by configuration."""

        if not self._gate.linter_enabled():
            LOGGER.debug("Start-up lint skipped: gate=config:linter")
            return False
        self._dispatcher.dispatch("linter.lint_root", self._linter.lint_root)
        return True

    def _lint_active_now(self) -> None:
        active = self._managed_active_document()
        if active is None:
            LOGGER.debug("Deferred lint dropped: gate=no-active-document")
            return
        self._dispatcher.dispatch("linter.lint_active", self._linter.lint_active, active)

    def _managed_active_document(self) -> DocumentIdentity | None:
        try:
            active = self._active_document()
        except Exception:
            LOGGER.warning("Active document lookup failed", exc_info=True)
            return None
        if active is None or not classify(self._classifier, active.path):
            return None
        return active
