"""Auto-scroll policy for the chat view.

The view follows new output only while the user is at (or near) the
bottom.  Scrolling up by hand stops following; scrolling back near the
bottom resumes it.  Scrolls issued by the policy itself are latched so
they never toggle the flag; the latch is released after a short delay.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Optional, Protocol

from producer.config import settings

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]
"""``schedule(delay_seconds, callback)`` returning a cancellable handle (e.g. ``loop.call_later``)."""


class ScrollSurface(Protocol):
    """The scrollable widget the policy drives."""

    def scroll_value(self) -> int:
        ...

    def scroll_maximum(self) -> int:
        ...

    def set_scroll_value(self, value: int) -> None:
        ...


def _loop_call_later(delay: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class AutoScrollPolicy:
    def __init__(
        self,
        surface: ScrollSurface,
        *,
        threshold_px: Optional[int] = None,
        latch_seconds: Optional[float] = None,
        schedule: Optional[Scheduler] = None,
    ) -> None:
        self.surface = surface
        self.threshold_px = settings.auto_scroll_threshold_px if threshold_px is None else threshold_px
        self.latch_seconds = settings.scroll_latch_seconds if latch_seconds is None else latch_seconds
        self._schedule = schedule or _loop_call_later

        self.auto_scroll_enabled: bool = True
        self.is_programmatic_scroll: bool = False
        self._last_value: int = surface.scroll_value()
        self._latch_timer: Optional[TimerHandle] = None

    def _near_bottom(self, value: int) -> bool:
        return self.surface.scroll_maximum() - value <= self.threshold_px

    def on_scrolled(self, value: int) -> None:
        """Feed every scroll-position change of the surface here."""
        previous, self._last_value = self._last_value, value
        if self.is_programmatic_scroll:
            return
        if value < previous:
            if self.auto_scroll_enabled:
                logger.debug("Auto-scroll off (user scrolled up)")
            self.auto_scroll_enabled = False
        elif self._near_bottom(value):
            self.auto_scroll_enabled = True

    def on_content_changed(self) -> None:
        """Call after content was appended or grew."""
        if self.auto_scroll_enabled:
            self.scroll_to_bottom()

    def scroll_to_bottom(self) -> None:
        self.is_programmatic_scroll = True
        self.surface.set_scroll_value(self.surface.scroll_maximum())
        # Single-shot: a new scroll restarts the release delay.
        if self._latch_timer is not None:
            self._latch_timer.cancel()
        self._latch_timer = self._schedule(self.latch_seconds, self._release_latch)

    def _release_latch(self) -> None:
        self._latch_timer = None
        self.is_programmatic_scroll = False
