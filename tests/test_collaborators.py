"""Tests for the bundled headless collaborators."""

from __future__ import annotations

import asyncio
import os
from typing import Sequence

import pytest

from quire.coordination.types import DocumentIdentity
from quire.services.collaborators import (
    ActiveRootResolver,
    CommandBuilder,
    CommandLinter,
    CommandResult,
    ExtensionClassifier,
    LoggingNotifier,
    LoggingStatusIndicator,
    run_command,
)
from quire.services.settings import InMemoryConfiguration

MAIN = DocumentIdentity.from_path(os.path.join("thesis", "main.tex"))
CHAPTER = DocumentIdentity.from_path(os.path.join("thesis", "chapters", "one.tex"))
THESIS_DIR = os.path.dirname(MAIN.path)


class _FakeRunner:
    def __init__(self, returncode: int = 0, stdout: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.calls: list[tuple[list[str], str | None]] = []
        self.on_run = None

    async def __call__(self, argv: Sequence[str], cwd: str | None) -> CommandResult:
        self.calls.append((list(argv), cwd))
        if self.on_run is not None:
            self.on_run()
        return CommandResult(argv=tuple(argv), returncode=self.returncode, stdout=self.stdout)


class TestExtensionClassifier:
    def test_matches_configured_suffixes(self) -> None:
        classifier = ExtensionClassifier(InMemoryConfiguration({"managed_extensions": [".tex", "ltx"]}))

        assert classifier("main.tex")
        assert classifier("MAIN.TEX")
        assert classifier("doc.ltx")
        assert not classifier("refs.bib")
        assert not classifier("Makefile")
        assert not classifier("")

    def test_reads_extensions_on_each_call(self) -> None:
        config = InMemoryConfiguration()
        classifier = ExtensionClassifier(config)

        assert classifier("main.tex")
        assert not classifier("notes.md")
        config.set("managed_extensions", ".md")
        assert classifier("notes.md")
        assert not classifier("main.tex")


class TestActiveRootResolver:
    def test_remembers_last_managed_document(self) -> None:
        resolver = ActiveRootResolver(lambda path: path.endswith(".tex"))

        assert resolver.find_root(None) is None
        assert resolver.find_root(MAIN) == MAIN
        assert resolver.find_root(DocumentIdentity.from_path("notes.txt")) == MAIN
        assert resolver.find_root(None) == MAIN
        assert resolver.find_root(CHAPTER) == CHAPTER
        assert resolver.root == CHAPTER


class TestCommandLinter:
    def test_lint_active_runs_command_in_document_directory(self) -> None:
        runner = _FakeRunner(stdout="Warning 1 in main.tex line 3\n\n")
        config = InMemoryConfiguration({"linter_command": "chktex", "linter_arguments_active": ["-q"]})
        linter = CommandLinter(config, root_provider=lambda: None, runner=runner)

        result = asyncio.run(linter.lint_active(MAIN))

        assert runner.calls == [(["chktex", "-q", "main.tex"], THESIS_DIR)]
        assert result is not None and result.ok

    def test_lint_root_uses_root_provider(self) -> None:
        runner = _FakeRunner()
        config = InMemoryConfiguration({"linter_arguments_root": ["-wall"]})
        linter = CommandLinter(config, root_provider=lambda: MAIN, runner=runner)

        asyncio.run(linter.lint_root())

        assert runner.calls == [(["chktex", "-wall", "main.tex"], THESIS_DIR)]

    def test_lint_root_without_root_is_skipped(self) -> None:
        runner = _FakeRunner()
        linter = CommandLinter(InMemoryConfiguration(), root_provider=lambda: None, runner=runner)

        assert asyncio.run(linter.lint_root()) is None
        assert runner.calls == []


class TestCommandBuilder:
    def test_build_targets_root_and_suppresses_while_running(self) -> None:
        runner = _FakeRunner()
        config = InMemoryConfiguration({"build_command": ["latexmk", "-pdf"]})
        builder = CommandBuilder(config, root_provider=lambda: MAIN, runner=runner)
        observed: list[bool] = []
        runner.on_run = lambda: observed.append(builder.is_build_suppressed())

        result = asyncio.run(builder.build(CHAPTER))

        assert runner.calls == [(["latexmk", "-pdf", "main.tex"], THESIS_DIR)]
        assert observed == [True]
        assert builder.is_build_suppressed() is False
        assert builder.last_result is result

    def test_build_falls_back_to_saved_document(self) -> None:
        runner = _FakeRunner(returncode=12)
        builder = CommandBuilder(InMemoryConfiguration(), root_provider=lambda: None, runner=runner)

        result = asyncio.run(builder.build(CHAPTER))

        assert runner.calls[0][0][-1] == "one.tex"
        assert result is not None and not result.ok

    def test_empty_build_command_skips(self) -> None:
        runner = _FakeRunner()
        builder = CommandBuilder(
            InMemoryConfiguration({"build_command": []}), root_provider=lambda: MAIN, runner=runner
        )

        assert asyncio.run(builder.build(MAIN)) is None
        assert runner.calls == []

    def test_suppression_context_nests(self) -> None:
        builder = CommandBuilder(InMemoryConfiguration(), root_provider=lambda: None, runner=_FakeRunner())

        with builder.suppress_build_after_save():
            with builder.suppress_build_after_save():
                assert builder.is_build_suppressed()
            assert builder.is_build_suppressed()
        assert not builder.is_build_suppressed()


def test_run_command_reports_missing_executable() -> None:
    result = asyncio.run(run_command(["quire-test-no-such-binary-xyz", "--version"]))

    assert result.returncode == 127
    assert not result.ok


class TestHeadlessAdapters:
    def test_status_indicator_tracks_visibility(self) -> None:
        status = LoggingStatusIndicator()

        status.show()
        assert status.visible
        status.hide()
        assert not status.visible

    def test_notifier_records_and_answers(self, caplog: pytest.LogCaptureFixture) -> None:
        notifier = LoggingNotifier(choice="Open Settings Editor")

        with caplog.at_level("WARNING"):
            answer = notifier.warn("old option", "Open Settings Editor")

        assert answer == "Open Settings Editor"
        assert notifier.messages == [("old option", "Open Settings Editor")]
        assert "old option" in caplog.text
