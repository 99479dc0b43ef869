"""Tests for the auto-scroll policy (producer/ui/scroll.py)."""
from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from producer.ui.scroll import AutoScrollPolicy


class FakeSurface:
    """Scroll surface that reports programmatic moves back like a real widget."""

    def __init__(self, maximum: int = 1000, value: int = 1000) -> None:
        self.maximum = maximum
        self.value = value
        self.policy: AutoScrollPolicy | None = None

    def scroll_value(self) -> int:
        return self.value

    def scroll_maximum(self) -> int:
        return self.maximum

    def set_scroll_value(self, value: int) -> None:
        self.value = value
        if self.policy is not None:
            self.policy.on_scrolled(value)

    def user_scroll(self, value: int) -> None:
        self.set_scroll_value(value)


class ManualTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    def __init__(self) -> None:
        self.pending: list[ManualTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.pending.append(timer)
        return timer

    def run_all(self) -> None:
        pending, self.pending = self.pending, []
        for timer in pending:
            if not timer.cancelled:
                timer.callback()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def policy(surface: FakeSurface, scheduler: ManualScheduler) -> AutoScrollPolicy:
    p = AutoScrollPolicy(surface, threshold_px=50, latch_seconds=0.1, schedule=scheduler)
    surface.policy = p
    return p


def test_user_scroll_up_disables(surface: FakeSurface, policy: AutoScrollPolicy) -> None:
    surface.user_scroll(990)
    assert not policy.auto_scroll_enabled


def test_returning_near_bottom_reenables(surface: FakeSurface, policy: AutoScrollPolicy) -> None:
    surface.user_scroll(500)
    assert not policy.auto_scroll_enabled
    surface.user_scroll(960)
    assert policy.auto_scroll_enabled


def test_scrolling_down_far_from_bottom_stays_disabled(surface: FakeSurface, policy: AutoScrollPolicy) -> None:
    surface.user_scroll(100)
    surface.user_scroll(400)
    assert not policy.auto_scroll_enabled


def test_content_growth_follows_when_enabled(
    surface: FakeSurface, policy: AutoScrollPolicy, scheduler: ManualScheduler
) -> None:
    surface.maximum = 1400
    policy.on_content_changed()
    assert surface.value == 1400
    assert policy.is_programmatic_scroll
    assert scheduler.pending[0].delay == 0.1
    scheduler.run_all()
    assert not policy.is_programmatic_scroll


def test_content_growth_ignored_when_disabled(surface: FakeSurface, policy: AutoScrollPolicy) -> None:
    surface.user_scroll(200)
    surface.maximum = 1400
    policy.on_content_changed()
    assert surface.value == 200


def test_programmatic_scroll_does_not_toggle(
    surface: FakeSurface, policy: AutoScrollPolicy, scheduler: ManualScheduler
) -> None:
    policy.scroll_to_bottom()
    # A widget may report an intermediate (lower) value while the latch is held.
    policy.on_scrolled(10)
    assert policy.auto_scroll_enabled
    scheduler.run_all()
    policy.on_scrolled(5)
    assert not policy.auto_scroll_enabled


def test_rapid_scrolls_keep_latch_until_last_delay(
    surface: FakeSurface, policy: AutoScrollPolicy, scheduler: ManualScheduler
) -> None:
    policy.scroll_to_bottom()
    surface.maximum = 1200
    policy.on_content_changed()

    assert [t.cancelled for t in scheduler.pending] == [True, False]
    assert policy.is_programmatic_scroll
    scheduler.run_all()
    assert not policy.is_programmatic_scroll


@pytest.mark.anyio
async def test_latch_restarts_on_event_loop(surface: FakeSurface) -> None:
    policy = AutoScrollPolicy(surface, threshold_px=50, latch_seconds=0.2)
    surface.policy = policy

    policy.scroll_to_bottom()
    await asyncio.sleep(0.1)
    policy.scroll_to_bottom()
    await asyncio.sleep(0.15)
    # Past the first deadline, inside the second.
    assert policy.is_programmatic_scroll
    await asyncio.sleep(0.2)
    assert not policy.is_programmatic_scroll
