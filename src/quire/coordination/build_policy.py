"""Save-triggered build dispatch."""

from __future__ import annotations

import logging

from .config_gate import ConfigurationGate
from .dispatch import Dispatcher, classify
from .types import Builder, Classifier, DocumentIdentity

__all__ = ["BuildDispatchPolicy"]

LOGGER = logging.getLogger(__name__)


class BuildDispatchPolicy:
    """Builds after a save unless configuration or the builder's own flag says not to.

    The suppression flag belongs to the builder. It is read at decision time
    and never written here.
    """

    def __init__(
        self,
        *,
        builder: Builder,
        classifier: Classifier,
        gate: ConfigurationGate,
        dispatcher: Dispatcher,
    ) -> None:
        self._builder = builder
        self._classifier = classifier
        self._gate = gate
        self._dispatcher = dispatcher

    def handle_saved(self, document: DocumentIdentity) -> bool:
        if not classify(self._classifier, document.path):
            LOGGER.debug("Build skipped for %s: gate=classifier", document or "<untitled>")
            return False
        if not self._gate.build_after_save():
            LOGGER.debug("Build skipped for %s: gate=config:build_after_save", document)
            return False
        if self._build_suppressed():
            LOGGER.debug("Build skipped for %s: gate=suppressed", document)
            return False
        self._dispatcher.dispatch("builder.build", self._builder.build, document)
        return True

    def _build_suppressed(self) -> bool:
        try:
            return bool(self._builder.is_build_suppressed())
        except Exception:
            LOGGER.warning("Builder suppression check failed; skipping build", exc_info=True)
            return True
