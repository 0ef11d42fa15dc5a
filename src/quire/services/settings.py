"""Settings dataclasses, persistence helpers and live configuration sources."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping

__all__ = [
    "CONFIG_NAMESPACE",
    "Settings",
    "SettingsStore",
    "SettingsFileSource",
    "InMemoryConfiguration",
    "active_env_overrides",
]

LOGGER = logging.getLogger(__name__)
CONFIG_NAMESPACE = "quire"
_SETTINGS_DIR = Path.home() / ".quire"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "QUIRE_LINTER_COMMAND": "linter_command",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "QUIRE_LINTER": "linter",
    "QUIRE_BUILD_AFTER_SAVE": "build_after_save",
    "QUIRE_DEBUG_LOGGING": "debug_logging",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "QUIRE_LINTER_INTERVAL": "linter_interval",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


def _default_lint_arguments() -> list[str]:
    return ["-wall", "-n22", "-n30", "-e16", "-q"]


@dataclass(slots=True)
class Settings:
    """User-configurable options recognized by the coordinator and its adapters."""

    linter: bool = False
    linter_interval: int = 300
    build_after_save: bool = True
    linter_command: str = "chktex"
    linter_arguments_active: list[str] = field(default_factory=_default_lint_arguments)
    linter_arguments_root: list[str] = field(default_factory=_default_lint_arguments)
    build_command: list[str] = field(
        default_factory=lambda: ["latexmk", "-pdf", "-interaction=nonstopmode"]
    )
    managed_extensions: list[str] = field(default_factory=lambda: [".tex"])
    debug_logging: bool = False


def _field_defaults() -> Dict[str, Any]:
    return asdict(Settings())


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self.read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            unknown = sorted(set(payload) - set(data) - {"version"})
            if unknown:
                LOGGER.debug("Settings file %s carries unrecognized keys: %s", self._path, unknown)

        if overrides:
            settings = _apply_overrides(settings, overrides, source="CLI")
        env = environment_overrides()
        if env:
            settings = _apply_overrides(settings, env, source="environment")
        return settings

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload: Dict[str, Any] = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def read_payload(self) -> Dict[str, Any]:
        """Return the raw JSON mapping on disk, keys stripped of the namespace."""

        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            raw = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(raw, Mapping):
            LOGGER.warning("Settings file %s does not hold a JSON object", self._path)
            return {}
        return {normalize_key(key): value for key, value in raw.items()}


class SettingsFileSource:
    """Configuration source that re-reads the settings file on every lookup.

    Nothing is cached: an edit to the file or to a ``QUIRE_*`` environment
    variable is visible to the very next call. Keys present in the file but
    unknown to :class:`Settings` (for example deprecated ones) are still
    reported by :meth:`has`.
    """

    def __init__(
        self,
        store: SettingsStore | None = None,
        *,
        overrides: Mapping[str, Any] | None = None,
    ) -> None:
        self._store = store or SettingsStore()
        self._overrides = dict(overrides or {})

    @property
    def store(self) -> SettingsStore:
        return self._store

    def get(self, key: str, default: Any = None) -> Any:
        values = self._current_values()
        name = normalize_key(key)
        if name in values:
            return values[name]
        if default is not None:
            return default
        return _field_defaults().get(name)

    def has(self, key: str) -> bool:
        return normalize_key(key) in self._current_values()

    def _current_values(self) -> Dict[str, Any]:
        values = self._store.read_payload()
        values.pop("version", None)
        values.update(self._overrides)
        values.update(environment_overrides())
        return values


class InMemoryConfiguration:
    """Mutable dict-backed configuration source for embedding hosts and tests."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: MutableMapping[str, Any] = {
            normalize_key(key): value for key, value in (values or {}).items()
        }

    def get(self, key: str, default: Any = None) -> Any:
        name = normalize_key(key)
        if name in self._values:
            return self._values[name]
        if default is not None:
            return default
        return _field_defaults().get(name)

    def has(self, key: str) -> bool:
        return normalize_key(key) in self._values

    def set(self, key: str, value: Any) -> None:
        self._values[normalize_key(key)] = value

    def unset(self, key: str) -> None:
        self._values.pop(normalize_key(key), None)


def normalize_key(key: str) -> str:
    """Strip the ``quire.`` namespace so both spellings address one option."""

    name = str(key).strip()
    prefix = f"{CONFIG_NAMESPACE}."
    if name.startswith(prefix):
        return name[len(prefix):]
    return name


def environment_overrides() -> Dict[str, Any]:
    """Return option values supplied through ``QUIRE_*`` environment variables."""

    overrides: Dict[str, Any] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None:
            overrides[field_name] = value
    for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None:
            overrides[field_name] = value.strip().lower() in _TRUE_VALUES
    for env_name, field_name in _INT_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None:
            continue
        try:
            overrides[field_name] = int(value, 10)
        except ValueError:
            LOGGER.warning(
                "Environment override %s=%s is not a valid integer",
                env_name,
                value,
            )
    return overrides


def active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("QUIRE_"))


def _apply_overrides(
    settings: Settings,
    overrides: Mapping[str, Any],
    *,
    source: str = "runtime",
) -> Settings:
    allowed = {item.name for item in fields(Settings)}
    filtered: Dict[str, Any] = {}
    for key, value in overrides.items():
        name = normalize_key(key)
        if name not in allowed or value is None:
            continue
        filtered[name] = value
    if filtered:
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
        settings = replace(settings, **filtered)
    return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}
