"""Bundled collaborator implementations for running the coordinator headless.

Hosts with their own resolver, linter or builder plug those in instead; these
defaults shell out to the configured TeX tools and keep no document model.
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterator, Sequence

from ..coordination.dispatch import classify
from ..coordination.types import Classifier, ConfigurationSource, DocumentIdentity

__all__ = [
    "ActiveRootResolver",
    "CommandBuilder",
    "CommandLinter",
    "CommandResult",
    "ExtensionClassifier",
    "LoggingNotifier",
    "LoggingStatusIndicator",
    "run_command",
]

LOGGER = logging.getLogger(__name__)

_MISSING_EXECUTABLE = 127


@dataclass(slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


CommandRunner = Callable[[Sequence[str], str | None], Awaitable[CommandResult]]
RootProvider = Callable[[], DocumentIdentity | None]


async def run_command(argv: Sequence[str], cwd: str | None = None) -> CommandResult:
    """Run ``argv`` as a subprocess and collect its output."""

    args = tuple(str(part) for part in argv)
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        LOGGER.warning("Executable %s not found", args[0] if args else "<empty>")
        return CommandResult(argv=args, returncode=_MISSING_EXECUTABLE)
    stdout, stderr = await process.communicate()
    return CommandResult(
        argv=args,
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


class ExtensionClassifier:
    """Managed iff the file suffix is listed in ``managed_extensions``."""

    def __init__(self, config: ConfigurationSource) -> None:
        self._config = config

    def __call__(self, path: str) -> bool:
        if not path:
            return False
        suffix = Path(path).suffix.lower()
        if not suffix:
            return False
        raw = self._config.get("managed_extensions") or ()
        if isinstance(raw, str):
            raw = [raw]
        extensions = {str(item).lower() if str(item).startswith(".") else f".{str(item).lower()}" for item in raw}
        return suffix in extensions


class ActiveRootResolver:
    """Treats the most recent managed document as the project root."""

    def __init__(self, classifier: Classifier) -> None:
        self._classifier = classifier
        self._root: DocumentIdentity | None = None

    @property
    def root(self) -> DocumentIdentity | None:
        return self._root

    def find_root(self, document: DocumentIdentity | None = None) -> DocumentIdentity | None:
        if document is None or not classify(self._classifier, document.path):
            return self._root
        if document != self._root:
            LOGGER.info("Root document set to %s", document)
            self._root = document
        return self._root


class CommandLinter:
    """Runs the configured lint command on the root or the active document."""

    def __init__(
        self,
        config: ConfigurationSource,
        *,
        root_provider: RootProvider,
        runner: CommandRunner | None = None,
    ) -> None:
        self._config = config
        self._root_provider = root_provider
        self._runner = runner or run_command

    async def lint_root(self) -> CommandResult | None:
        root = self._root_provider()
        if root is None or not root:
            LOGGER.debug("No root document known; skipping root lint")
            return None
        return await self._lint(root, "linter_arguments_root")

    async def lint_active(self, document: DocumentIdentity) -> CommandResult | None:
        if not document:
            return None
        return await self._lint(document, "linter_arguments_active")

    async def _lint(self, document: DocumentIdentity, arguments_key: str) -> CommandResult:
        command = str(self._config.get("linter_command") or "chktex")
        arguments = [str(item) for item in (self._config.get(arguments_key) or [])]
        argv = [command, *arguments, os.path.basename(document.path)]
        result = await self._runner(argv, os.path.dirname(document.path) or None)
        lines = [line for line in result.stdout.splitlines() if line.strip()]
        LOGGER.info("Lint of %s finished (exit=%s, %d message(s))", document, result.returncode, len(lines))
        for line in lines:
            LOGGER.debug("lint: %s", line)
        return result


class CommandBuilder:
    """Runs the configured build command and owns the build-suppressed flag.

    The flag is raised for the duration of a build so that a save performed by
    the toolchain itself does not trigger another build. Hosts doing their own
    internal saves can hold :meth:`suppress_build_after_save` around them.
    """

    def __init__(
        self,
        config: ConfigurationSource,
        *,
        root_provider: RootProvider,
        runner: CommandRunner | None = None,
    ) -> None:
        self._config = config
        self._root_provider = root_provider
        self._runner = runner or run_command
        self._suppression_depth = 0
        self._last_result: CommandResult | None = None

    @property
    def last_result(self) -> CommandResult | None:
        return self._last_result

    def is_build_suppressed(self) -> bool:
        return self._suppression_depth > 0

    @contextmanager
    def suppress_build_after_save(self) -> Iterator[None]:
        self._suppression_depth += 1
        try:
            yield
        finally:
            self._suppression_depth = max(0, self._suppression_depth - 1)

    async def build(self, document: DocumentIdentity) -> CommandResult | None:
        target = self._root_provider() or document
        if not target:
            LOGGER.debug("Nothing to build")
            return None
        command = [str(item) for item in (self._config.get("build_command") or [])]
        if not command:
            LOGGER.warning("Option build_command is empty; skipping build of %s", target)
            return None
        argv = [*command, os.path.basename(target.path)]
        with self.suppress_build_after_save():
            LOGGER.info("Building %s", target)
            result = await self._runner(argv, os.path.dirname(target.path) or None)
        self._last_result = result
        if result.ok:
            LOGGER.info("Build of %s succeeded", target)
        else:
            LOGGER.warning("Build of %s failed (exit=%s)", target, result.returncode)
        return result


class LoggingStatusIndicator:
    """Headless status indicator; remembers and logs its visibility."""

    def __init__(self) -> None:
        self.visible = False

    def show(self) -> None:
        if not self.visible:
            LOGGER.debug("Status indicator shown")
        self.visible = True

    def hide(self) -> None:
        if self.visible:
            LOGGER.debug("Status indicator hidden")
        self.visible = False


class LoggingNotifier:
    """Headless notifier: logs warnings and answers with a fixed choice."""

    def __init__(self, choice: str | None = None) -> None:
        self._choice = choice
        self.messages: list[tuple[str, str | None]] = []

    def warn(self, message: str, action_label: str | None = None) -> str | None:
        self.messages.append((message, action_label))
        LOGGER.warning("%s", message)
        return self._choice
