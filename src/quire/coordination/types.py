"""Value objects and collaborator contracts shared by the coordination core."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "DocumentIdentity",
    "ActiveEditor",
    "VisibilityState",
    "Resolver",
    "Linter",
    "Builder",
    "Classifier",
    "ConfigurationSource",
    "StatusIndicator",
    "Notifier",
]


@dataclass(frozen=True, slots=True)
class DocumentIdentity:
    """Opaque handle for a document: its absolute, normalized file path and nothing else."""

    path: str

    @classmethod
    def from_path(cls, path: str | os.PathLike[str] | None) -> "DocumentIdentity":
        raw = os.fspath(path) if path is not None else ""
        if not raw:
            return cls("")
        return cls(os.path.abspath(os.path.expanduser(raw)))

    def __bool__(self) -> bool:
        return bool(self.path)

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True, slots=True)
class ActiveEditor:
    """Snapshot of the focused editor delivered with ActiveEditorChanged."""

    path: str = ""

    @property
    def document(self) -> DocumentIdentity:
        return DocumentIdentity.from_path(self.path)


class VisibilityState(str, Enum):
    SHOWN = "shown"
    HIDDEN = "hidden"


@runtime_checkable
class Resolver(Protocol):
    """Determines the project's root document."""

    def find_root(self, document: DocumentIdentity | None = None) -> Any:  # pragma: no cover - protocol stub
        ...


@runtime_checkable
class Linter(Protocol):
    """Long-running lint analysis; results are never consumed by the coordinator."""

    def lint_root(self) -> Any:  # pragma: no cover - protocol stub
        ...

    def lint_active(self, document: DocumentIdentity) -> Any:  # pragma: no cover - protocol stub
        ...


@runtime_checkable
class Builder(Protocol):
    """Build collaborator; owns the build-suppressed flag."""

    def build(self, document: DocumentIdentity) -> Any:  # pragma: no cover - protocol stub
        ...

    def is_build_suppressed(self) -> bool:  # pragma: no cover - protocol stub
        ...


class Classifier(Protocol):
    """Answers whether a path is a managed document type."""

    def __call__(self, path: str) -> bool:  # pragma: no cover - protocol stub
        ...


@runtime_checkable
class ConfigurationSource(Protocol):
    """Read-only, always-fresh key/value store for recognized options."""

    def get(self, key: str, default: Any = None) -> Any:  # pragma: no cover - protocol stub
        ...

    def has(self, key: str) -> bool:  # pragma: no cover - protocol stub
        ...


@runtime_checkable
class StatusIndicator(Protocol):
    def show(self) -> None:  # pragma: no cover - protocol stub
        ...

    def hide(self) -> None:  # pragma: no cover - protocol stub
        ...


@runtime_checkable
class Notifier(Protocol):
    """Shows a dismissable warning and returns the chosen action label, if any."""

    def warn(self, message: str, action_label: str | None = None) -> str | None:  # pragma: no cover - protocol stub
        ...
