"""One-shot warnings about renamed configuration keys."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from ..services.settings import CONFIG_NAMESPACE
from .config_gate import ConfigurationGate
from .types import Notifier

__all__ = [
    "DEPRECATED_KEYS",
    "OPEN_SETTINGS_ACTION",
    "DeprecatedConfigWarner",
    "DeprecatedKey",
    "DeprecationNotice",
]

LOGGER = logging.getLogger(__name__)

OPEN_SETTINGS_ACTION = "Open Settings Editor"


@dataclass(frozen=True, slots=True)
class DeprecatedKey:
    old_key: str
    new_key: str

    @property
    def message(self) -> str:
        return (
            f'Config "{CONFIG_NAMESPACE}.{self.old_key}" has been deprecated. '
            f'Please use the new "{CONFIG_NAMESPACE}.{self.new_key}" config item.'
        )


@dataclass(frozen=True, slots=True)
class DeprecationNotice:
    """Outcome of one warning: which key, and what the user picked (if anything)."""

    key: DeprecatedKey
    choice: str | None

    @property
    def open_settings(self) -> bool:
        return self.choice == OPEN_SETTINGS_ACTION


DEPRECATED_KEYS: tuple[DeprecatedKey, ...] = (
    DeprecatedKey("linter_command_active_file", "linter_arguments_active"),
    DeprecatedKey("linter_command_root_file", "linter_arguments_root"),
)


class DeprecatedConfigWarner:
    """Warns once per key per process lifetime.

    A key joins ``warned_keys`` as soon as its warning is shown, whatever the
    user does with it, and is never warned about again.
    """

    def __init__(
        self,
        *,
        gate: ConfigurationGate,
        notifier: Notifier,
        table: Iterable[DeprecatedKey] = DEPRECATED_KEYS,
    ) -> None:
        self._gate = gate
        self._notifier = notifier
        self._table = tuple(table)
        self._warned: set[str] = set()

    @property
    def warned_keys(self) -> frozenset[str]:
        return frozenset(self._warned)

    def check(self) -> list[DeprecationNotice]:
        notices: list[DeprecationNotice] = []
        for entry in self._table:
            if entry.old_key in self._warned:
                continue
            if not self._gate.is_set(entry.old_key):
                continue
            self._warned.add(entry.old_key)
            LOGGER.info("Deprecated option %s is set; %s replaces it", entry.old_key, entry.new_key)
            try:
                choice = self._notifier.warn(entry.message, OPEN_SETTINGS_ACTION)
            except Exception:
                LOGGER.warning("Notifier failed to show deprecation warning for %s", entry.old_key, exc_info=True)
                choice = None
            notices.append(DeprecationNotice(key=entry, choice=choice))
        return notices
