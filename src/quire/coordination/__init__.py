"""Event-coordination core: lifecycle events in, gated collaborator calls out."""

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
from .config_gate import ConfigurationGate
from .debounce import DebounceScheduler, PendingTimer
from .deprecations import DEPRECATED_KEYS, OPEN_SETTINGS_ACTION, DeprecatedConfigWarner, DeprecatedKey
from .coordinator import EventCoordinator

__all__ = [
    "ActiveEditor",
    "Builder",
    "Classifier",
    "ConfigurationGate",
    "ConfigurationSource",
    "DEPRECATED_KEYS",
    "DebounceScheduler",
    "DeprecatedConfigWarner",
    "DeprecatedKey",
    "DocumentIdentity",
    "EventCoordinator",
    "Linter",
    "Notifier",
    "OPEN_SETTINGS_ACTION",
    "PendingTimer",
    "Resolver",
    "StatusIndicator",
    "VisibilityState",
]
