"""
OverlayCoordinator: sole owner of overlay windows.

Lifecycle (all on the Tk main thread):
  present_blocking()  → tears down any previous blocking overlay, opens one
                        window per display, schedules auto-dismiss
  dismiss()           → cancels the pending auto-dismiss, closes windows,
                        emits OverlayDismissed
  present_transient() → same for the self-dismissing mini overlay

Every presented overlay gets a fresh generation number. Delayed callbacks
carry the generation they were scheduled for, so a timer that fires after
its overlay was replaced is ignored instead of closing the newer one.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from .gate import SuppressionSignal, may_fire
from .reminders import FireDecision, ReminderKind

log = logging.getLogger(__name__)


class DismissReason(str, Enum):
    TIMEOUT = "timeout"
    CLICK = "click"
    HOTKEY = "hotkey"
    REPLACED = "replaced"
    MANUAL = "manual"


@dataclass(frozen=True)
class OverlayDismissed:
    generation: int
    kind: ReminderKind
    reason: DismissReason


@dataclass
class ActiveOverlay:
    generation: int
    decision: FireDecision
    windows: list = field(default_factory=list)
    timer: Any = None


class Presenter:
    """Window backend interface. See lucid.windows.TkPresenter."""

    def open_blocking(self, decision: FireDecision, generation: int,
                      on_dismiss: Callable[[int, DismissReason], None]) -> list:
        raise NotImplementedError

    def open_transient(self, decision: FireDecision, generation: int) -> list:
        raise NotImplementedError

    def close(self, windows: list) -> None:
        raise NotImplementedError


class OverlayCoordinator:

    def __init__(self, loop, presenter: Presenter,
                 signal_provider: Callable[[], SuppressionSignal],
                 sound: Optional[Callable[[], None]] = None,
                 click_to_dismiss: Callable[[], bool] = lambda: True):
        self._loop = loop
        self._presenter = presenter
        self._signal = signal_provider
        self._sound = sound
        self._click_to_dismiss = click_to_dismiss
        self._generations = itertools.count(1)
        self._blocking: Optional[ActiveOverlay] = None
        self._transient: Optional[ActiveOverlay] = None
        self._listeners: list[Callable[[OverlayDismissed], None]] = []

    # ─── State ───────────────────────────────────────────────

    @property
    def overlay_active(self) -> bool:
        """True for the whole lifetime of a blocking overlay."""
        return self._blocking is not None

    @property
    def transient_active(self) -> bool:
        return self._transient is not None

    @property
    def current(self) -> Optional[ActiveOverlay]:
        return self._blocking

    def subscribe(self, callback: Callable[[OverlayDismissed], None]) -> None:
        self._listeners.append(callback)

    # ─── Presenting ──────────────────────────────────────────

    def _allowed(self, is_preview: bool) -> bool:
        try:
            signal = self._signal()
        except Exception as e:
            log.warning("Suppression signal unavailable: %s", e)
            signal = SuppressionSignal()
        return may_fire(signal, is_preview)

    def present_blocking(self, decision: FireDecision,
                         is_preview: bool = False) -> Optional[int]:
        """Show a blocking overlay on every display. Returns its generation or None."""
        if not self._allowed(is_preview):
            log.debug("Suppressed %s overlay", decision.kind.value)
            return None
        if not is_preview:
            self._play_sound()

        if self._blocking is not None:
            self._teardown_blocking(DismissReason.REPLACED)

        gen = next(self._generations)
        active = ActiveOverlay(gen, decision)
        self._blocking = active
        try:
            active.windows = self._presenter.open_blocking(decision, gen, self._on_window_dismiss)
        except Exception:
            log.exception("Failed to open %s overlay", decision.kind.value)
            self._blocking = None
            return None

        if decision.auto_dismiss and decision.dismiss_after > 0:
            active.timer = self._loop.after(int(decision.dismiss_after * 1000),
                                            lambda: self.dismiss(gen, DismissReason.TIMEOUT))
        log.info("Showing %s overlay (gen %d, %d window(s))",
                 decision.kind.value, gen, len(active.windows))
        return gen

    def present_transient(self, decision: FireDecision,
                          is_preview: bool = False) -> Optional[int]:
        """Show the mini overlay. Does not set overlay_active."""
        if not self._allowed(is_preview):
            log.debug("Suppressed %s mini overlay", decision.kind.value)
            return None
        if not is_preview:
            self._play_sound()

        if self._transient is not None:
            self._teardown_transient()

        gen = next(self._generations)
        active = ActiveOverlay(gen, decision)
        self._transient = active
        try:
            active.windows = self._presenter.open_transient(decision, gen)
        except Exception:
            log.exception("Failed to open mini overlay")
            self._transient = None
            return None
        active.timer = self._loop.after(int(decision.dismiss_after * 1000),
                                        lambda: self._expire_transient(gen))
        return gen

    # ─── Dismissing ──────────────────────────────────────────

    def _on_window_dismiss(self, generation: int, reason: DismissReason) -> None:
        """Callback handed to the presenter for click and hotkey dismissal."""
        if reason is DismissReason.CLICK and not self._click_to_dismiss():
            return
        self.dismiss(generation, reason)

    def dismiss(self, generation: Optional[int] = None,
                reason: DismissReason = DismissReason.MANUAL) -> bool:
        """
        Close the blocking overlay. With a generation, only if it is still
        the current one. Returns False for stale or missing overlays.
        """
        active = self._blocking
        if active is None:
            return False
        if generation is not None and generation != active.generation:
            log.debug("Ignoring stale dismiss for gen %d (current %d)",
                      generation, active.generation)
            return False
        self._teardown_blocking(reason)
        return True

    def dismiss_all(self, reason: DismissReason = DismissReason.MANUAL) -> None:
        self.dismiss(None, reason)
        if self._transient is not None:
            self._teardown_transient()

    def _teardown_blocking(self, reason: DismissReason) -> None:
        active, self._blocking = self._blocking, None
        self._cancel(active)
        self._close(active)
        log.info("Dismissed %s overlay (gen %d, %s)",
                 active.decision.kind.value, active.generation, reason.value)
        event = OverlayDismissed(active.generation, active.decision.kind, reason)
        for callback in list(self._listeners):
            try:
                callback(event)
            except Exception:
                log.exception("Overlay dismiss listener failed")

    def _expire_transient(self, generation: int) -> None:
        if self._transient is not None and self._transient.generation == generation:
            self._teardown_transient()

    def _teardown_transient(self) -> None:
        active, self._transient = self._transient, None
        self._cancel(active)
        self._close(active)

    def _cancel(self, active: ActiveOverlay) -> None:
        if active.timer is not None:
            try:
                self._loop.after_cancel(active.timer)
            except Exception:
                pass  # already fired
            active.timer = None

    def _close(self, active: ActiveOverlay) -> None:
        try:
            self._presenter.close(active.windows)
        except Exception as e:
            log.warning("Closing overlay windows failed: %s", e)
        active.windows = []

    def _play_sound(self) -> None:
        if self._sound is None:
            return
        try:
            self._sound()
        except Exception as e:
            log.warning("Sound playback failed: %s", e)
