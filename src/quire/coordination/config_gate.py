"""Fresh, uncached accessors for the options the coordinator decides on."""

from __future__ import annotations

import logging
from typing import Any

from .types import ConfigurationSource

__all__ = ["ConfigurationGate", "DEFAULT_LINTER_INTERVAL_MS"]

LOGGER = logging.getLogger(__name__)

DEFAULT_LINTER_ENABLED = False
DEFAULT_LINTER_INTERVAL_MS = 300
DEFAULT_BUILD_AFTER_SAVE = True
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class ConfigurationGate:
    """Reads recognized options from the source on every call."""

    def __init__(self, source: ConfigurationSource) -> None:
        self._source = source

    @property
    def source(self) -> ConfigurationSource:
        return self._source

    def linter_enabled(self) -> bool:
        return self._read_bool("linter", DEFAULT_LINTER_ENABLED)

    def linter_interval_ms(self) -> int:
        raw = self._read("linter_interval", DEFAULT_LINTER_INTERVAL_MS)
        if isinstance(raw, bool):
            LOGGER.warning("Option linter_interval=%r is not an integer; using %s", raw, DEFAULT_LINTER_INTERVAL_MS)
            return DEFAULT_LINTER_INTERVAL_MS
        try:
            value = int(raw)
        except (TypeError, ValueError):
            LOGGER.warning("Option linter_interval=%r is not an integer; using %s", raw, DEFAULT_LINTER_INTERVAL_MS)
            return DEFAULT_LINTER_INTERVAL_MS
        return max(0, value)

    def build_after_save(self) -> bool:
        return self._read_bool("build_after_save", DEFAULT_BUILD_AFTER_SAVE)

    def is_set(self, key: str) -> bool:
        try:
            return bool(self._source.has(key))
        except Exception:
            LOGGER.warning("Configuration lookup for %s failed", key, exc_info=True)
            return False

    def _read(self, key: str, default: Any) -> Any:
        try:
            value = self._source.get(key, default)
        except Exception:
            LOGGER.warning("Configuration read for %s failed; using default %r", key, default, exc_info=True)
            return default
        return default if value is None else value

    def _read_bool(self, key: str, default: bool) -> bool:
        value = self._read(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            LOGGER.warning("Option %s=%r is not a boolean; using %s", key, value, default)
            return default
        if isinstance(value, int):
            return value != 0
        LOGGER.warning("Option %s=%r is not a boolean; using %s", key, value, default)
        return default
