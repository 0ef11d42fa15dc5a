"""PySide6-backed status indicator and notifier with headless fallbacks."""

from __future__ import annotations

import logging
from typing import Any

try:  # pragma: no cover - Qt imports are optional during tests
    from PySide6.QtWidgets import QApplication, QMessageBox

    _QT_AVAILABLE = True
except Exception:  # pragma: no cover - PySide6 not available
    QApplication = None  # type: ignore[assignment]
    QMessageBox = None  # type: ignore[assignment]
    _QT_AVAILABLE = False

__all__ = ["QtStatusIndicator", "QtNotifier"]

LOGGER = logging.getLogger(__name__)


class QtStatusIndicator:
    """Toggles a status-bar widget; tracks visibility even without a widget."""

    def __init__(self, widget: Any | None = None) -> None:
        self._widget = widget
        self.visible = False

    def install(self, widget: Any | None) -> None:
        self._widget = widget
        self._apply()

    def show(self) -> None:
        self.visible = True
        self._apply()

    def hide(self) -> None:
        self.visible = False
        self._apply()

    def _apply(self) -> None:
        widget = self._widget
        if widget is None:
            return
        try:
            widget.setVisible(self.visible)
        except Exception:  # pragma: no cover - Qt defensive guard
            LOGGER.debug("Status widget rejected visibility change", exc_info=True)


class QtNotifier:
    """Blocking warning box that returns the label of the button the user clicked.

    Without a running ``QApplication`` the warning is only logged and no
    choice is returned.
    """

    def __init__(self, parent: Any | None = None, *, title: str = "Quire") -> None:
        self._parent = parent
        self._title = title

    def warn(self, message: str, action_label: str | None = None) -> str | None:
        if not _QT_AVAILABLE or QApplication is None or QApplication.instance() is None:
            LOGGER.warning("%s", message)
            return None
        box = QMessageBox(self._parent)
        box.setIcon(QMessageBox.Icon.Warning)
        box.setWindowTitle(self._title)
        box.setText(message)
        action_button = None
        if action_label:
            action_button = box.addButton(action_label, QMessageBox.ButtonRole.ActionRole)
        box.addButton(QMessageBox.StandardButton.Close)
        box.exec()
        if action_button is not None and box.clickedButton() is action_button:
            return action_label
        return None
