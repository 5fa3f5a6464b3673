"""
lucid: desktop reminders for eye strain, bedtime, clock-out and posture.

  timerange.py    → TimeOfDay, TimeRange, midnight-wrapping membership
  gate.py         → SuppressionSignal, may_fire, AppState
  config.py       → Defaults, config load/save, ConfigSnapshot, ConfigStore, logging
  reminders.py    → Interval, bedtime and clock-out state machines
  overlay.py      → OverlayCoordinator (one blocking overlay, generations)
  scheduler.py    → Scheduler (1 s tick loop, persistent bedtime check)
  windows.py      → TkPresenter (per-display Toplevels)
  sound.py        → Reminder sounds
  presentation.py → Presentation / screen-share detector
  tray.py         → pystray icon, menu, notifications
  app.py          → LucidApp + main()
"""

__version__ = "1.0.0"
