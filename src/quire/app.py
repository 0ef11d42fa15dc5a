"""Bootstrap helpers and the ``quire`` console entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .coordination.coordinator import EventCoordinator
from .coordination.types import ActiveEditor, ConfigurationSource, Notifier, StatusIndicator
from .services.collaborators import (
    ActiveRootResolver,
    CommandBuilder,
    CommandLinter,
    CommandRunner,
    ExtensionClassifier,
    LoggingNotifier,
    LoggingStatusIndicator,
)
from .services.settings import Settings, SettingsFileSource, SettingsStore, active_env_overrides
from .ui.events import ActiveEditorChanged, DocumentEdited, DocumentOpened, DocumentSaved, Event, EventBus
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)
_QUIET_PERIOD_SLACK_MS = 50
_EVENT_NAMES = ("opened", "saved", "edited", "focus")


class ReplayScriptError(ValueError):
    """Raised when an event script cannot be parsed."""


@dataclass(slots=True)
class QuireRuntime:
    """Everything :func:`build_runtime` wires together."""

    coordinator: EventCoordinator
    bus: EventBus[Event]
    resolver: ActiveRootResolver
    linter: CommandLinter
    builder: CommandBuilder
    status: StatusIndicator
    notifier: Notifier
    config: ConfigurationSource


@dataclass(slots=True)
class ReplayStep:
    at_ms: int
    event: Event


def configure_logging(debug: bool = False, *, force: bool = False, trace_gates: bool = False) -> None:
    """Configure structured logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    path = logging_utils.setup_logging(level, force=force, trace_gates=trace_gates)
    _LOGGER.debug(
        "Logging configured (level=%s, trace_gates=%s, file=%s)",
        logging.getLevelName(level),
        trace_gates,
        path,
    )


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except Exception as exc:  # pragma: no cover - defensive path
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_runtime(
    config: ConfigurationSource,
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    status: StatusIndicator | None = None,
    notifier: Notifier | None = None,
    runner: CommandRunner | None = None,
    settings_hint: str | None = None,
) -> QuireRuntime:
    """Wire the coordinator to the bundled collaborators and a fresh event bus."""

    classifier = ExtensionClassifier(config)
    resolver = ActiveRootResolver(classifier)
    linter = CommandLinter(config, root_provider=lambda: resolver.root, runner=runner)
    builder = CommandBuilder(config, root_provider=lambda: resolver.root, runner=runner)
    active_status = status or LoggingStatusIndicator()
    active_notifier = notifier or LoggingNotifier()

    def _open_settings() -> None:
        _LOGGER.info("Edit %s to update deprecated options.", settings_hint or "the settings file")

    coordinator = EventCoordinator(
        resolver=resolver,
        linter=linter,
        builder=builder,
        classifier=classifier,
        config=config,
        status=active_status,
        notifier=active_notifier,
        loop=loop,
        settings_opener=_open_settings,
    )
    bus: EventBus[Event] = EventBus()
    coordinator.attach(bus)
    return QuireRuntime(
        coordinator=coordinator,
        bus=bus,
        resolver=resolver,
        linter=linter,
        builder=builder,
        status=active_status,
        notifier=active_notifier,
        config=config,
    )


def parse_replay_script(lines: Iterable[str]) -> list[ReplayStep]:
    """Parse JSON-lines event records into time-ordered replay steps.

    Each non-blank line is an object ``{"at_ms": int, "event": str, "path": str | null}``
    where ``event`` is one of ``opened``, ``saved``, ``edited`` or ``focus``.
    A ``focus`` record with a null or missing path means no editor is focused.
    """

    steps: list[ReplayStep] = []
    for lineno, raw in enumerate(lines, start=1):
        text = raw.strip()
        if not text or text.startswith("#"):
            continue
        try:
            record = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ReplayScriptError(f"line {lineno}: invalid JSON ({exc.msg})") from exc
        if not isinstance(record, Mapping):
            raise ReplayScriptError(f"line {lineno}: expected a JSON object")
        name = str(record.get("event") or "").strip().lower()
        if name not in _EVENT_NAMES:
            raise ReplayScriptError(f"line {lineno}: unknown event {name!r} (expected one of {', '.join(_EVENT_NAMES)})")
        at_ms = record.get("at_ms", 0)
        if isinstance(at_ms, bool) or not isinstance(at_ms, int) or at_ms < 0:
            raise ReplayScriptError(f"line {lineno}: at_ms must be a non-negative integer")
        path = record.get("path")
        if path is not None and not isinstance(path, str):
            raise ReplayScriptError(f"line {lineno}: path must be a string or null")
        steps.append(ReplayStep(at_ms=at_ms, event=_build_event(name, path, lineno)))
    steps.sort(key=lambda step: step.at_ms)
    return steps


async def replay(runtime: QuireRuntime, steps: Sequence[ReplayStep]) -> None:
    """Publish ``steps`` on the runtime's bus at their offsets, then shut down cleanly."""

    loop = asyncio.get_running_loop()
    started = loop.time()
    runtime.coordinator.start()
    for step in steps:
        delay = started + step.at_ms / 1000.0 - loop.time()
        if delay > 0:
            await asyncio.sleep(delay)
        _LOGGER.debug("Replaying %s at %d ms", type(step.event).__name__, step.at_ms)
        runtime.bus.publish(step.event)
    quiet_ms = runtime.coordinator.gate.linter_interval_ms() + _QUIET_PERIOD_SLACK_MS
    if runtime.coordinator.scheduler.pending:
        await asyncio.sleep(quiet_ms / 1000.0)
    await runtime.coordinator.dispatcher.drain()
    runtime.coordinator.dispose()


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `quire` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    debug = args.debug or _env_flag("QUIRE_DEBUG", default=False)
    trace_gates = args.trace_gates or _env_flag("QUIRE_TRACE_GATES", default=False)
    configure_logging(debug, trace_gates=trace_gates)

    settings_path = args.settings_path or os.environ.get("QUIRE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)
    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return
    if args.replay is None:
        parser.error("nothing to do: pass --replay SCRIPT or --dump-settings")

    if settings.debug_logging and not debug:
        configure_logging(True, force=True, trace_gates=trace_gates)

    try:
        with open(args.replay, encoding="utf-8") as handle:
            steps = parse_replay_script(handle)
    except OSError as exc:
        print(f"Cannot read event script: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    except ReplayScriptError as exc:
        print(f"Invalid event script {args.replay}: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    config = SettingsFileSource(settings_store, overrides=cli_overrides)

    async def _run() -> None:
        runtime = build_runtime(
            config,
            loop=asyncio.get_running_loop(),
            settings_hint=str(settings_store.path),
        )
        await replay(runtime, steps)

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")


def _build_event(name: str, path: str | None, lineno: int) -> Event:
    if name == "focus":
        return ActiveEditorChanged(editor=None if path is None else ActiveEditor(path))
    if path is None:
        raise ReplayScriptError(f"line {lineno}: {name} events need a path")
    if name == "opened":
        return DocumentOpened(path)
    if name == "saved":
        return DocumentSaved(path)
    return DocumentEdited(path)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quire",
        description="Drive the Quire event coordinator from a recorded event script.",
    )
    parser.add_argument(
        "--replay",
        metavar="SCRIPT",
        help="Replay a JSON-lines event script through the coordinator.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.quire/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--trace-gates",
        action="store_true",
        help="Log every skipped lint, build or resolve together with the gate that skipped it.",
    )
    return parser


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is list:
        try:
            value = json.loads(normalized or "[]")
        except json.JSONDecodeError as exc:
            raise ValueError("List overrides must be valid JSON arrays") from exc
        if not isinstance(value, list):
            raise ValueError("List overrides must be valid JSON arrays")
        return value
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": active_env_overrides(),
    }
    output = {"settings": asdict(settings), "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")
