"""Status indicator visibility derived from the focused editor."""

from __future__ import annotations

import logging

from .dispatch import classify
from .types import ActiveEditor, Classifier, StatusIndicator, VisibilityState

__all__ = ["VisibilityStateMachine", "derive_visibility"]

LOGGER = logging.getLogger(__name__)


def derive_visibility(editor: ActiveEditor | None, classifier: Classifier) -> VisibilityState:
    if editor is None:
        return VisibilityState.HIDDEN
    document = editor.document
    if not document:
        return VisibilityState.HIDDEN
    if not classify(classifier, document.path):
        return VisibilityState.HIDDEN
    return VisibilityState.SHOWN


class VisibilityStateMachine:
    """Recomputes Shown/Hidden from scratch on each focus change and applies it."""

    def __init__(self, *, indicator: StatusIndicator, classifier: Classifier) -> None:
        self._indicator = indicator
        self._classifier = classifier
        self._state = VisibilityState.HIDDEN

    @property
    def state(self) -> VisibilityState:
        return self._state

    def update(self, editor: ActiveEditor | None) -> VisibilityState:
        state = derive_visibility(editor, self._classifier)
        try:
            if state is VisibilityState.SHOWN:
                self._indicator.show()
            else:
                self._indicator.hide()
        except Exception:
            LOGGER.warning("Status indicator failed to apply %s", state.value, exc_info=True)
        self._state = state
        return state
