"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from quire.coordination.coordinator import EventCoordinator
from quire.services.settings import InMemoryConfiguration
from tests.helpers import (
    CoordinatorRig,
    ManualLoop,
    RecordingBuilder,
    RecordingLinter,
    RecordingResolver,
    RecordingStatus,
    ScriptedNotifier,
    tex_classifier,
)


@pytest.fixture
def manual_loop() -> ManualLoop:
    return ManualLoop()


@pytest.fixture
def rig(manual_loop: ManualLoop) -> CoordinatorRig:
    config = InMemoryConfiguration({"linter": True, "linter_interval": 300, "build_after_save": True})
    linter = RecordingLinter(manual_loop)
    builder = RecordingBuilder()
    resolver = RecordingResolver()
    status = RecordingStatus()
    notifier = ScriptedNotifier()
    opened: list[Any] = []
    coordinator = EventCoordinator(
        resolver=resolver,
        linter=linter,
        builder=builder,
        classifier=tex_classifier,
        config=config,
        status=status,
        notifier=notifier,
        loop=manual_loop,
        settings_opener=lambda: opened.append("settings"),
    )
    return CoordinatorRig(
        loop=manual_loop,
        config=config,
        linter=linter,
        builder=builder,
        resolver=resolver,
        status=status,
        notifier=notifier,
        coordinator=coordinator,
        opened_settings=opened,
    )
