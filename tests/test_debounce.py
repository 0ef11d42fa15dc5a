"""Tests for :mod:`quire.coordination.debounce`."""

from __future__ import annotations

import asyncio

import pytest

from quire.coordination.debounce import DebounceScheduler
from quire.coordination.types import DocumentIdentity
from tests.helpers import ManualLoop


def test_burst_fires_once_with_last_action(manual_loop: ManualLoop) -> None:
    scheduler = DebounceScheduler(manual_loop)
    fired: list[tuple[str, float]] = []

    for offset_ms, label in ((0, "first"), (100, "second"), (250, "third")):
        manual_loop.advance_ms(offset_ms - manual_loop.time() * 1000.0)
        scheduler.schedule(300, lambda label=label: fired.append((label, manual_loop.time())))

    manual_loop.advance_ms(299)
    assert fired == []

    manual_loop.advance_ms(10)
    assert [label for label, _ in fired] == ["third"]
    assert fired[0][1] == pytest.approx(0.55)

    manual_loop.advance_ms(1_000)
    assert len(fired) == 1


def test_spaced_calls_each_fire(manual_loop: ManualLoop) -> None:
    scheduler = DebounceScheduler(manual_loop)
    fired: list[int] = []

    scheduler.schedule(100, lambda: fired.append(1))
    manual_loop.advance_ms(150)
    scheduler.schedule(100, lambda: fired.append(2))
    manual_loop.advance_ms(150)

    assert fired == [1, 2]


def test_schedule_cancels_previous_timer(manual_loop: ManualLoop) -> None:
    scheduler = DebounceScheduler(manual_loop)

    scheduler.schedule(300, lambda: None)
    scheduler.schedule(300, lambda: None)
    scheduler.schedule(300, lambda: None)

    assert manual_loop.live_timers == 1
    assert scheduler.pending


def test_pending_timer_records_target_and_fire_time(manual_loop: ManualLoop) -> None:
    scheduler = DebounceScheduler(manual_loop)
    target = DocumentIdentity.from_path("chapters/intro.tex")
    manual_loop.advance_ms(40)

    timer = scheduler.schedule(200, lambda: None, target=target)

    assert scheduler.pending_timer is timer
    assert timer.target == target
    assert timer.fire_at == pytest.approx(0.24)


def test_cancel_pending_without_timer_is_noop(manual_loop: ManualLoop) -> None:
    scheduler = DebounceScheduler(manual_loop)

    scheduler.cancel_pending()
    scheduler.cancel_pending()

    assert not scheduler.pending
    manual_loop.advance_ms(1_000)


def test_cancel_pending_prevents_firing(manual_loop: ManualLoop) -> None:
    scheduler = DebounceScheduler(manual_loop)
    fired: list[str] = []

    scheduler.schedule(100, lambda: fired.append("x"))
    scheduler.cancel_pending()
    scheduler.cancel_pending()
    manual_loop.advance_ms(500)

    assert fired == []
    assert scheduler.pending_timer is None


def test_action_may_reschedule_itself(manual_loop: ManualLoop) -> None:
    scheduler = DebounceScheduler(manual_loop)
    fired: list[float] = []

    def _action() -> None:
        fired.append(manual_loop.time())
        if len(fired) < 2:
            scheduler.schedule(100, _action)

    scheduler.schedule(100, _action)
    manual_loop.advance_ms(500)

    assert fired == [pytest.approx(0.1), pytest.approx(0.2)]
    assert not scheduler.pending


def test_failing_action_is_contained(manual_loop: ManualLoop, caplog: pytest.LogCaptureFixture) -> None:
    scheduler = DebounceScheduler(manual_loop, name="lint-debounce")

    def _boom() -> None:
        raise RuntimeError("lint exploded")

    scheduler.schedule(10, _boom)
    with caplog.at_level("ERROR"):
        manual_loop.advance_ms(20)

    assert "lint-debounce: deferred action failed" in caplog.text
    assert not scheduler.pending


def test_negative_interval_clamps_to_zero(manual_loop: ManualLoop) -> None:
    scheduler = DebounceScheduler(manual_loop)
    fired: list[float] = []

    scheduler.schedule(-50, lambda: fired.append(manual_loop.time()))
    manual_loop.advance(0)

    assert fired == [0.0]


def test_scheduler_uses_running_asyncio_loop() -> None:
    async def _run() -> list[str]:
        scheduler = DebounceScheduler()
        fired: list[str] = []
        scheduler.schedule(5, lambda: fired.append("early"))
        scheduler.schedule(5, lambda: fired.append("late"))
        await asyncio.sleep(0.05)
        return fired

    assert asyncio.run(_run()) == ["late"]


def test_schedule_without_any_loop_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    scheduler = DebounceScheduler(name="lint-debounce")

    with caplog.at_level("WARNING"):
        timer = scheduler.schedule(100, lambda: None)

    assert timer is None
    assert not scheduler.pending
    assert "lint-debounce: deferred action for <no target> skipped: gate=no-loop" in caplog.text
