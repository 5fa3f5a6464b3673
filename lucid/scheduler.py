"""
Scheduler: the one-second tick loop.

Every tick:
  1. take one ConfigSnapshot (used by every machine for the whole tick)
  2. evaluate the suppression gate once
  3. drive each reminder machine, isolated from the others' failures
  4. hand fire decisions to the overlay coordinator or the notifier

Runs on the loop's own thread via loop.after(); nothing here blocks.
"""
from __future__ import annotations

import datetime
import logging
from typing import Callable, Optional

from .gate import SuppressionSignal, may_fire
from .overlay import OverlayCoordinator
from .reminders import (BedtimeReminder, ClockOutReminder, FireDecision,
                        IntervalReminder, ReminderKind, format_countdown)

log = logging.getLogger(__name__)

TICK_MS = 1000
PERSISTENT_CHECK_MS = 2000


class Scheduler:

    def __init__(self, loop, store, signals: Callable[..., SuppressionSignal],
                 coordinator: OverlayCoordinator,
                 notifier: Optional[Callable[[str, str], None]] = None,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        """
        loop: anything with after(ms, cb) / after_cancel(handle), e.g. tk.Tk
        store: ConfigStore (or anything with snapshot())
        signals: cfg -> SuppressionSignal
        notifier: (title, body) -> None, best-effort system notification
        """
        self._loop = loop
        self._store = store
        self._signals = signals
        self.coordinator = coordinator
        self._notifier = notifier
        self._clock = clock

        cfg = store.snapshot()
        self.eye_strain = IntervalReminder(ReminderKind.EYE_STRAIN, cfg)
        self.mini_overlay = IntervalReminder(ReminderKind.MINI_OVERLAY, cfg)
        self.bedtime = BedtimeReminder()
        self.clock_out = ClockOutReminder()

        self._tick_id = None
        self._persist_id = None
        self._running = False

    # ─── Loop control ────────────────────────────────────────

    def start(self) -> None:
        self._running = True
        self._tick_id = self._loop.after(TICK_MS, self._tick)
        self._persist_id = self._loop.after(PERSISTENT_CHECK_MS, self._persist_tick)

    def stop(self) -> None:
        self._running = False
        for handle in (self._tick_id, self._persist_id):
            if handle is not None:
                try:
                    self._loop.after_cancel(handle)
                except Exception:
                    pass
        self._tick_id = self._persist_id = None

    def _tick(self) -> None:
        try:
            self.tick()
        except Exception:
            log.exception("Tick failed")
        finally:
            if self._running:
                self._tick_id = self._loop.after(TICK_MS, self._tick)

    def _persist_tick(self) -> None:
        try:
            self.persistent_check()
        except Exception:
            log.exception("Persistent bedtime check failed")
        finally:
            if self._running:
                self._persist_id = self._loop.after(PERSISTENT_CHECK_MS, self._persist_tick)

    # ─── Evaluation ──────────────────────────────────────────

    def tick(self, now: Optional[datetime.datetime] = None) -> list[FireDecision]:
        """Run one evaluation cycle. Returns the decisions that fired."""
        now = now or self._clock()
        cfg = self._store.snapshot()
        gate_open = may_fire(self._signals(cfg))
        paused = self.coordinator.overlay_active

        fired: list[FireDecision] = []

        def run(label, step):
            try:
                result = step()
            except Exception:
                log.exception("%s reminder failed this tick", label)
                return
            if result is None:
                return
            fired.extend(result if isinstance(result, list) else [result])

        run("Eye strain", lambda: self.eye_strain.tick(cfg, paused))
        run("Mini overlay", lambda: self.mini_overlay.tick(cfg, paused))
        # Bedtime tracks the range while suppressed and owes the entry fire
        # until the gate opens
        run("Bedtime", lambda: self.bedtime.tick(cfg, now, gate_open))
        if gate_open:
            run("Clock out", lambda: self.clock_out.tick(cfg, now))

        for decision in fired:
            try:
                self.dispatch(decision)
            except Exception:
                log.exception("Dispatching %s failed", decision.kind.value)
        return fired

    def persistent_check(self, now: Optional[datetime.datetime] = None) -> Optional[int]:
        """Re-show bedtime if in range and no blocking overlay is up."""
        now = now or self._clock()
        cfg = self._store.snapshot()
        if not may_fire(self._signals(cfg)):
            return None
        decision = self.bedtime.persistent_check(cfg, now, self.coordinator.overlay_active)
        if decision is None:
            return None
        return self.coordinator.present_blocking(decision)

    def dispatch(self, decision: FireDecision, is_preview: bool = False) -> Optional[int]:
        """Route a decision to the right presentation channel."""
        log.info("Firing %s (%s)", decision.kind.value, decision.event)
        if decision.transient:
            return self.coordinator.present_transient(decision, is_preview)
        if decision.uses_overlay:
            return self.coordinator.present_blocking(decision, is_preview)
        self._notify(decision.title, decision.message)
        return None

    def _notify(self, title: str, body: str) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier(title, body)
        except Exception as e:
            log.warning("Notification delivery failed: %s", e)

    # ─── User actions ────────────────────────────────────────

    def reset_timers(self) -> None:
        """Restart every interval countdown at its full configured period."""
        cfg = self._store.snapshot()
        self.eye_strain.reset(cfg)
        self.mini_overlay.reset(cfg)
        log.info("Timers reset")

    def preview(self, kind: ReminderKind) -> Optional[int]:
        """Show a kind's content now, bypassing suppression."""
        cfg = self._store.snapshot()
        if kind is ReminderKind.EYE_STRAIN:
            decision = self.eye_strain.decision(cfg)
        elif kind is ReminderKind.MINI_OVERLAY:
            decision = self.mini_overlay.decision(cfg)
        elif kind is ReminderKind.BEDTIME:
            decision = self.bedtime.decision(cfg)
        else:
            decision = self.clock_out.decision(cfg, self._clock())
        return self.dispatch(decision, is_preview=True)

    # ─── Display ─────────────────────────────────────────────

    def countdowns(self, now: Optional[datetime.datetime] = None) -> dict[ReminderKind, str]:
        """
        Live countdown text for each enabled kind. Bedtime counts down to the
        window opening ("00:00" while inside), clock out to the next active day.
        """
        now = now or self._clock()
        cfg = self._store.snapshot()
        out = {}
        for reminder in (self.eye_strain, self.mini_overlay):
            if reminder.enabled(cfg):
                out[reminder.kind] = reminder.countdown_text()
        if cfg.bedtime_enabled:
            secs = self.bedtime.seconds_until(cfg, now)
            if secs is not None:
                out[ReminderKind.BEDTIME] = format_countdown(secs)
        if cfg.clock_out_enabled:
            secs = self.clock_out.seconds_until(cfg, now)
            if secs is not None:
                out[ReminderKind.CLOCK_OUT] = format_countdown(secs)
        return out

    def status_text(self) -> str:
        labels = {ReminderKind.EYE_STRAIN: "Eyes", ReminderKind.MINI_OVERLAY: "Mini",
                  ReminderKind.BEDTIME: "Bed", ReminderKind.CLOCK_OUT: "Out"}
        parts = [f"{labels[k]} {v}" for k, v in self.countdowns().items()]
        return "Lucid: " + "  ".join(parts) if parts else "Lucid"
