"""Root-document resolution on open and focus change."""

from __future__ import annotations

import logging

from .dispatch import Dispatcher, classify
from .types import ActiveEditor, Classifier, DocumentIdentity, Resolver

__all__ = ["RootResolutionTrigger"]

LOGGER = logging.getLogger(__name__)


class RootResolutionTrigger:
    """Calls the resolver on every qualifying event.

    No staleness check or de-duplication happens here; the resolver is
    expected to be a cheap no-op when the root has not changed.
    """

    def __init__(self, *, resolver: Resolver, classifier: Classifier, dispatcher: Dispatcher) -> None:
        self._resolver = resolver
        self._classifier = classifier
        self._dispatcher = dispatcher

    def on_opened(self, document: DocumentIdentity) -> bool:
        if not classify(self._classifier, document.path):
            LOGGER.debug("Root resolution skipped for %s: gate=classifier", document or "<untitled>")
            return False
        self._resolve(document)
        return True

    def on_active_editor_changed(self, editor: ActiveEditor | None) -> bool:
        if editor is None:
            return False
        self._resolve(editor.document or None)
        return True

    def on_startup(self) -> None:
        self._resolve(None)

    def _resolve(self, document: DocumentIdentity | None) -> None:
        self._dispatcher.dispatch("resolver.find_root", self._resolver.find_root, document)
