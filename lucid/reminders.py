"""
Reminder state machines: pure logic, no I/O.

Each machine is driven by the scheduler once per tick and returns fire
decisions. Time is injected (`now`) so the machines can be tested
deterministically.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .timerange import TimeOfDay, contains


class ReminderKind(str, Enum):
    EYE_STRAIN = "eye_strain"
    BEDTIME = "bedtime"
    CLOCK_OUT = "clock_out"
    MINI_OVERLAY = "mini_overlay"


@dataclass(frozen=True)
class FireDecision:
    """Everything presentation needs to render one reminder."""
    kind: ReminderKind
    title: str
    message: str
    dismiss_after: float = 0
    dismissable: bool = True
    uses_overlay: bool = True
    auto_dismiss: bool = True
    event: str = "main"
    # Transient overlay extras
    icon: str = ""
    animation_duration: float = 0
    hold_duration: float = 0
    vertical_offset: int = 0
    background: str = ""
    foreground: str = ""

    @property
    def transient(self) -> bool:
        return self.kind is ReminderKind.MINI_OVERLAY


def format_countdown(seconds: int) -> str:
    """MM:SS under an hour, HH:MM above."""
    seconds = max(0, int(seconds))
    if seconds >= 3600:
        return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}"
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def _seconds_until(at: TimeOfDay, now: datetime.datetime) -> int:
    """Seconds from `now` to the next occurrence of `at` (today or tomorrow)."""
    now_s = now.hour * 3600 + now.minute * 60 + now.second
    delta = at.minutes * 60 - now_s
    return delta if delta > 0 else delta + 24 * 3600


# ─── Interval reminders (eye strain, mini overlay) ───────────

@dataclass
class Countdown:
    remaining: int
    period: int

    def step(self) -> bool:
        """Decrement by one second. True when the countdown hits zero."""
        self.remaining = max(0, self.remaining - 1)
        return self.remaining == 0

    def reset(self, period: Optional[int] = None) -> None:
        if period is not None:
            self.period = max(1, int(period))
        self.remaining = self.period

    def display(self) -> str:
        return format_countdown(self.remaining)


class IntervalReminder:
    """Countdown-driven reminder. Pauses while a blocking overlay is up."""

    def __init__(self, kind: ReminderKind, cfg=None):
        if kind not in (ReminderKind.EYE_STRAIN, ReminderKind.MINI_OVERLAY):
            raise ValueError(f"{kind} is not an interval reminder")
        self.kind = kind
        period = self.period(cfg) if cfg is not None else 1
        self.countdown = Countdown(period, period)

    def enabled(self, cfg) -> bool:
        if self.kind is ReminderKind.EYE_STRAIN:
            return cfg.eye_strain_enabled
        return cfg.mini_overlay_enabled

    def period(self, cfg) -> int:
        if self.kind is ReminderKind.EYE_STRAIN:
            return cfg.eye_strain_period
        return cfg.mini_overlay_period

    def tick(self, cfg, paused: bool = False) -> Optional[FireDecision]:
        if not self.enabled(cfg) or paused:
            return None
        # A shortened interval takes effect without waiting out the old one
        if self.countdown.remaining > self.period(cfg):
            self.countdown.reset(self.period(cfg))
        if not self.countdown.step():
            return None
        self.countdown.reset(self.period(cfg))
        return self.decision(cfg)

    def reset(self, cfg) -> None:
        self.countdown.reset(self.period(cfg))

    def countdown_text(self) -> str:
        return self.countdown.display()

    def decision(self, cfg) -> FireDecision:
        if self.kind is ReminderKind.EYE_STRAIN:
            return FireDecision(
                kind=self.kind,
                title=cfg.eye_strain_title,
                message=cfg.eye_strain_message,
                dismiss_after=cfg.eye_strain_dismiss_after,
                dismissable=cfg.click_to_dismiss,
            )
        return FireDecision(
            kind=self.kind,
            title=cfg.mini_overlay_text,
            message="",
            dismiss_after=transient_lifetime(cfg.mini_overlay_duration,
                                             cfg.mini_overlay_hold_duration),
            dismissable=False,
            icon=cfg.mini_overlay_icon,
            animation_duration=cfg.mini_overlay_duration,
            hold_duration=cfg.mini_overlay_hold_duration,
            vertical_offset=cfg.mini_overlay_vertical_offset,
            background=cfg.mini_overlay_background,
            foreground=cfg.mini_overlay_foreground,
        )


def transient_lifetime(animation_duration: float, hold_duration: float) -> float:
    """
    Seconds a mini overlay stays on screen.

    The animation runs in phases scaled against a 3.15 s baseline:
    expand (0.75), hold, collapse (0.3), shrink (0.3), fly away (0.35).
    """
    scale = animation_duration / 3.15
    return 1.7 * scale + hold_duration


# ─── Bedtime ─────────────────────────────────────────────────

class BedtimeReminder:
    """
    Range-based reminder with two modes:

      once: fire on the transition into the range, then stay quiet
            until the range is left and re-entered
      repeat: fire on entry, then every `bedtime_repeat_interval` minutes
    """

    def __init__(self):
        self.last_entry_fire: Optional[datetime.datetime] = None
        self.last_repeat_fire: Optional[datetime.datetime] = None
        self.was_in_range = False
        # Entered the range but the fire is still owed (gate was closed)
        self.pending_entry = False

    def in_range(self, cfg, now: datetime.datetime) -> Optional[bool]:
        """Range membership, or None when the configured range is malformed."""
        rng = cfg.bedtime_range
        if rng is None:
            return None
        return contains(rng, TimeOfDay.from_datetime(now))

    def tick(self, cfg, now: datetime.datetime,
             gate_open: bool = True) -> Optional[FireDecision]:
        """
        Track range membership every tick; only the fire itself waits for
        `gate_open`, so leaving the range while suppressed still re-arms entry.
        """
        if not cfg.bedtime_enabled:
            self.was_in_range = False
            self.last_repeat_fire = None
            self.pending_entry = False
            return None
        inside = self.in_range(cfg, now)
        if inside is None:
            return None

        if not inside:
            self.was_in_range = False
            self.last_repeat_fire = None
            self.pending_entry = False
            return None
        if not self.was_in_range:
            self.pending_entry = True
        self.was_in_range = True

        if not gate_open:
            return None
        if cfg.bedtime_repeat_reminders:
            due = (self.last_repeat_fire is None
                   or (now - self.last_repeat_fire).total_seconds() >= cfg.bedtime_repeat_period)
        else:
            due = self.pending_entry
        if not due:
            return None

        if self.pending_entry:
            self.last_entry_fire = now
            self.pending_entry = False
        self.last_repeat_fire = now
        return self.decision(cfg)

    def seconds_until(self, cfg, now: datetime.datetime) -> Optional[int]:
        """Seconds until the window next opens; 0 while inside it."""
        rng = cfg.bedtime_range
        if rng is None:
            return None
        if contains(rng, TimeOfDay.from_datetime(now)):
            return 0
        return _seconds_until(rng.start, now)

    def persistent_check(self, cfg, now: datetime.datetime,
                         overlay_active: bool) -> Optional[FireDecision]:
        """Re-assert the bedtime overlay whenever in range and nothing is showing."""
        if not (cfg.bedtime_enabled and cfg.bedtime_persistent) or overlay_active:
            return None
        if self.in_range(cfg, now):
            return self.decision(cfg)
        return None

    def decision(self, cfg) -> FireDecision:
        return FireDecision(
            kind=ReminderKind.BEDTIME,
            title=cfg.bedtime_title,
            message=cfg.bedtime_message,
            dismiss_after=cfg.bedtime_dismiss_after,
            dismissable=cfg.click_to_dismiss,
            auto_dismiss=cfg.bedtime_auto_dismiss,
        )


# ─── Clock out ───────────────────────────────────────────────

class ClockOutReminder:
    """
    Once-a-day main event at the configured minute, followed by periodic
    "don't forget" reminders until the day rolls over.
    """

    def __init__(self):
        self.last_fired_date: Optional[datetime.date] = None
        self.last_reminder_time: Optional[datetime.datetime] = None

    def tick(self, cfg, now: datetime.datetime) -> list[FireDecision]:
        if not cfg.clock_out_enabled:
            return []
        at = cfg.clock_out_at
        if at is None or now.isoweekday() not in cfg.clock_out_days:
            return []

        today = now.date()
        if self.last_fired_date is not None and self.last_fired_date != today:
            # New day: reminders stop until today's main event
            self.last_reminder_time = None

        fired = []
        if (now.hour, now.minute) == (at.hour, at.minute):
            if self.last_fired_date != today:
                self.last_fired_date = today
                self.last_reminder_time = now
                fired.append(self.decision(cfg, now))
        elif (cfg.clock_out_reminder_enabled and self.last_reminder_time is not None
              and (now - self.last_reminder_time).total_seconds() >= cfg.clock_out_reminder_period):
            self.last_reminder_time = now
            fired.append(self.reminder_decision())
        return fired

    def seconds_until(self, cfg, now: datetime.datetime) -> Optional[int]:
        """Seconds until the next clock-out on an active weekday, within a week."""
        at = cfg.clock_out_at
        if at is None:
            return None
        now_s = now.hour * 3600 + now.minute * 60 + now.second
        for offset in range(8):
            day = now + datetime.timedelta(days=offset)
            if day.isoweekday() not in cfg.clock_out_days:
                continue
            delta = offset * 24 * 3600 + at.minutes * 60 - now_s
            if delta >= 0:
                return delta
        return None

    def decision(self, cfg, now: Optional[datetime.datetime] = None) -> FireDecision:
        now = now or datetime.datetime.now()
        if cfg.clock_out_use_overlay:
            return FireDecision(
                kind=ReminderKind.CLOCK_OUT,
                title="Time to clock out",
                message=f"The time is {TimeOfDay.from_datetime(now).fmt12()}",
                dismiss_after=cfg.clock_out_dismiss_after,
                dismissable=cfg.click_to_dismiss,
            )
        return FireDecision(
            kind=ReminderKind.CLOCK_OUT,
            title="Clock Out",
            message="It's time to clock out!",
            uses_overlay=False,
        )

    @staticmethod
    def reminder_decision() -> FireDecision:
        return FireDecision(
            kind=ReminderKind.CLOCK_OUT,
            title="Clock Out Reminder",
            message="Don't forget to clock out!",
            uses_overlay=False,
            event="reminder",
        )
