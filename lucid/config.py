"""
Paths, logging setup, config load/save, immutable config snapshots.
"""
from __future__ import annotations

import copy
import dataclasses
import json
import logging
import math
import os
import sys
from dataclasses import dataclass
from typing import Any, Optional

from .timerange import TimeOfDay, TimeRange

log = logging.getLogger(__name__)

# ─── Paths ───────────────────────────────────────────────────
CONFIG_FILE = os.path.join(os.path.expanduser("~"), "lucid_config.json")
LOG_FILE    = os.path.join(os.path.expanduser("~"), "lucid.log")
LOG_MAX_BYTES = 1_000_000

# ─── Defaults ────────────────────────────────────────────────
# Intervals are minutes, dismiss-after values are seconds, weekdays are ISO (Mon=1).
DEFAULT_CONFIG = {
    # General
    "alerts_enabled": True,
    "click_to_dismiss": True,
    "disable_during_presentation": True,
    "multi_monitor_overlay": True,
    "sound_enabled": False,
    "sound_effect": "ping",
    "custom_sound_path": "",
    # Eye strain
    "eye_strain_enabled": False,
    "eye_strain_interval": 20,
    "eye_strain_title": "Eye Strain Break",
    "eye_strain_message": "Look away from the screen and rest your eyes.",
    "eye_strain_dismiss_after": 20,
    # Bedtime
    "bedtime_enabled": False,
    "bedtime_start": "22:00",
    "bedtime_end": "06:00",
    "bedtime_title": "Bedtime Reminder",
    "bedtime_message": "It's time to go to bed and get some rest.",
    "bedtime_dismiss_after": 30,
    "bedtime_auto_dismiss": True,
    "bedtime_repeat_reminders": False,
    "bedtime_repeat_interval": 15,
    "bedtime_persistent": False,
    # Mini overlay
    "mini_overlay_enabled": False,
    "mini_overlay_interval": 30,
    "mini_overlay_text": "Posture check",
    "mini_overlay_icon": "✨",
    "mini_overlay_duration": 3.15,
    "mini_overlay_hold_duration": 1.5,
    "mini_overlay_vertical_offset": 60,
    "mini_overlay_background": "",     # "" = theme colour
    "mini_overlay_foreground": "",
    # Clock out
    "clock_out_enabled": False,
    "clock_out_time": "17:00",
    "clock_out_days": [1, 2, 3, 4, 5],
    "clock_out_use_overlay": True,
    "clock_out_dismiss_after": 5,
    "clock_out_reminder_enabled": False,
    "clock_out_reminder_interval": 15,
}

# (key, minimum): values of the wrong type or below the minimum fall back to the default
NUMERIC_FIELDS = [
    ("eye_strain_interval", 0.01),
    ("eye_strain_dismiss_after", 1),
    ("bedtime_dismiss_after", 1),
    ("bedtime_repeat_interval", 0.01),
    ("mini_overlay_interval", 0.01),
    ("mini_overlay_duration", 0.1),
    ("mini_overlay_hold_duration", 0),
    ("mini_overlay_vertical_offset", 0),
    ("clock_out_dismiss_after", 1),
    ("clock_out_reminder_interval", 0.01),
]

TEST_MODE_OVERRIDES = {
    "eye_strain_interval": 1,
    "mini_overlay_interval": 1,
    "bedtime_repeat_interval": 1,
    "clock_out_reminder_interval": 1,
}


def _valid_number(val: Any, min_val: float) -> bool:
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return False
    try:
        # json accepts NaN / Infinity
        return math.isfinite(val) and val >= min_val
    except OverflowError:
        return False


def validate_config(cfg: dict[str, Any]) -> dict[str, Any]:
    """Replace invalid values in-place with their defaults."""
    for key, min_val in NUMERIC_FIELDS:
        if not _valid_number(cfg.get(key), min_val):
            cfg[key] = DEFAULT_CONFIG[key]
    for key, default in DEFAULT_CONFIG.items():
        if isinstance(default, bool) and not isinstance(cfg.get(key), bool):
            cfg[key] = default
        elif isinstance(default, str) and not isinstance(cfg.get(key), str):
            cfg[key] = default
    days = cfg.get("clock_out_days")
    if not isinstance(days, (list, tuple)):
        cfg["clock_out_days"] = list(DEFAULT_CONFIG["clock_out_days"])
    else:
        cfg["clock_out_days"] = [d for d in days
                                 if isinstance(d, int) and not isinstance(d, bool) and 1 <= d <= 7]
    return cfg


def read_user_config(path: str) -> dict[str, Any]:
    """The raw JSON object stored at `path`, or {} if missing or unreadable."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            user_cfg = json.load(f)
    except (ValueError, OSError) as e:
        # ValueError covers JSONDecodeError and UnicodeDecodeError
        log.warning("Config load error: %s. Using defaults.", e)
        return {}
    if not isinstance(user_cfg, dict):
        log.warning("Config %s is not a JSON object. Using defaults.", path)
        return {}
    return user_cfg


def load_config(path: str = CONFIG_FILE, test_mode: bool = False) -> dict[str, Any]:
    """Load config from file, falling back to defaults for missing/invalid values."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg.update(read_user_config(path))

    if test_mode:
        cfg.update(TEST_MODE_OVERRIDES)

    return validate_config(cfg)


def save_config(cfg: dict[str, Any], path: str = CONFIG_FILE) -> None:
    """Save config to file."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(cfg, f, indent=2, ensure_ascii=False)
        log.info("Config saved to %s", path)
    except OSError as e:
        log.warning("Config save error: %s", e)


def _minutes_to_seconds(minutes: float) -> int:
    return max(1, int(round(minutes * 60)))


@dataclass(frozen=True)
class ConfigSnapshot:
    """Read-only view of every tunable, taken once per tick."""
    alerts_enabled: bool = True
    click_to_dismiss: bool = True
    disable_during_presentation: bool = True
    multi_monitor_overlay: bool = True
    sound_enabled: bool = False
    sound_effect: str = "ping"
    custom_sound_path: str = ""

    eye_strain_enabled: bool = False
    eye_strain_interval: float = 20
    eye_strain_title: str = "Eye Strain Break"
    eye_strain_message: str = "Look away from the screen and rest your eyes."
    eye_strain_dismiss_after: float = 20

    bedtime_enabled: bool = False
    bedtime_start: str = "22:00"
    bedtime_end: str = "06:00"
    bedtime_title: str = "Bedtime Reminder"
    bedtime_message: str = "It's time to go to bed and get some rest."
    bedtime_dismiss_after: float = 30
    bedtime_auto_dismiss: bool = True
    bedtime_repeat_reminders: bool = False
    bedtime_repeat_interval: float = 15
    bedtime_persistent: bool = False

    mini_overlay_enabled: bool = False
    mini_overlay_interval: float = 30
    mini_overlay_text: str = "Posture check"
    mini_overlay_icon: str = "✨"
    mini_overlay_duration: float = 3.15
    mini_overlay_hold_duration: float = 1.5
    mini_overlay_vertical_offset: int = 60
    mini_overlay_background: str = ""
    mini_overlay_foreground: str = ""

    clock_out_enabled: bool = False
    clock_out_time: str = "17:00"
    clock_out_days: tuple = (1, 2, 3, 4, 5)
    clock_out_use_overlay: bool = True
    clock_out_dismiss_after: float = 5
    clock_out_reminder_enabled: bool = False
    clock_out_reminder_interval: float = 15

    @classmethod
    def from_dict(cls, cfg: dict[str, Any]) -> ConfigSnapshot:
        """Build a snapshot from a raw config dict; unknown keys are ignored."""
        cfg = validate_config({**copy.deepcopy(DEFAULT_CONFIG), **cfg})
        names = {f.name for f in dataclasses.fields(cls)}
        values = {k: v for k, v in cfg.items() if k in names}
        values["clock_out_days"] = tuple(values["clock_out_days"])
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        d = dataclasses.asdict(self)
        d["clock_out_days"] = list(self.clock_out_days)
        return d

    # ── Derived values ──
    @property
    def eye_strain_period(self) -> int:
        return _minutes_to_seconds(self.eye_strain_interval)

    @property
    def mini_overlay_period(self) -> int:
        return _minutes_to_seconds(self.mini_overlay_interval)

    @property
    def bedtime_repeat_period(self) -> int:
        return _minutes_to_seconds(self.bedtime_repeat_interval)

    @property
    def clock_out_reminder_period(self) -> int:
        return _minutes_to_seconds(self.clock_out_reminder_interval)

    @property
    def bedtime_range(self) -> Optional[TimeRange]:
        """Parsed bedtime window, or None if either end is malformed."""
        try:
            return TimeRange(TimeOfDay.parse(self.bedtime_start),
                             TimeOfDay.parse(self.bedtime_end))
        except ValueError:
            return None

    @property
    def clock_out_at(self) -> Optional[TimeOfDay]:
        try:
            return TimeOfDay.parse(self.clock_out_time)
        except ValueError:
            return None


class ConfigStore:
    """
    Owns the current ConfigSnapshot.

    The file is re-read only when its mtime changes, so calling snapshot()
    every tick is cheap. Writers publish whole new snapshots; nothing
    mutates a snapshot the scheduler may be holding.
    """

    def __init__(self, path: Optional[str] = CONFIG_FILE, test_mode: bool = False):
        self.path = path
        self.test_mode = test_mode
        self._mtime: Optional[float] = None
        self._current = ConfigSnapshot.from_dict(
            load_config(path, test_mode) if path else {})
        self._mtime = self._stat()

    def _stat(self) -> Optional[float]:
        if not self.path:
            return None
        try:
            return os.path.getmtime(self.path)
        except OSError:
            return None

    def snapshot(self) -> ConfigSnapshot:
        mtime = self._stat()
        if mtime is not None and mtime != self._mtime:
            self._mtime = mtime
            self._current = ConfigSnapshot.from_dict(load_config(self.path, self.test_mode))
            log.info("Config reloaded from %s", self.path)
        return self._current

    def publish(self, snapshot: ConfigSnapshot, persist: bool = True) -> ConfigSnapshot:
        self._current = snapshot
        if persist and self.path:
            save_config(snapshot.to_dict(), self.path)
            self._mtime = self._stat()
        return snapshot

    def update(self, persist: bool = True, **changes) -> ConfigSnapshot:
        """
        Publish a copy of the current snapshot with `changes` applied.

        Only the changed keys are written, merged over what is on disk, so
        test-mode intervals and hand-edited values are never overwritten.
        """
        snapshot = self.publish(dataclasses.replace(self._current, **changes), persist=False)
        if persist and self.path:
            on_disk = read_user_config(self.path)
            for key, value in changes.items():
                on_disk[key] = list(value) if isinstance(value, tuple) else value
            save_config(on_disk, self.path)
            self._mtime = self._stat()
        return snapshot


# ─── Logging ─────────────────────────────────────────────────

def setup_logging(verbose: bool = False, log_file: str = LOG_FILE) -> logging.Logger:
    """File + console logging for the `lucid` logger hierarchy."""
    root = logging.getLogger("lucid")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s",
                            datefmt="%Y-%m-%d %H:%M:%S")

    try:
        if os.path.exists(log_file) and os.path.getsize(log_file) > LOG_MAX_BYTES:
            open(log_file, "w").close()
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)
    except OSError as e:
        print(f"  [!] Log file unavailable: {e}")

    if sys.stdout is not None:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(fmt)
        root.addHandler(console)
    return root
