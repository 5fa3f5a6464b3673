"""
LucidApp: wires config, detectors, overlays, scheduler and tray onto one
Tk main loop.
"""
from __future__ import annotations

import argparse
import datetime
import logging
import threading
import tkinter as tk
from typing import Optional

from .config import CONFIG_FILE, ConfigStore, setup_logging
from .gate import AppState
from .overlay import OverlayCoordinator, OverlayDismissed
from .presentation import PresentationDetector
from .reminders import ReminderKind
from .scheduler import Scheduler
from .sound import SoundPlayer
from .tray import TrayIcon
from .windows import TkPresenter

log = logging.getLogger(__name__)

TRAY_REFRESH_MS = 1000


class LucidApp:

    def __init__(self, config_path: str = CONFIG_FILE, test_mode: bool = False):
        self.root = tk.Tk()
        self.root.withdraw()

        self.store = ConfigStore(config_path, test_mode=test_mode)
        self.state = AppState()

        presenter = TkPresenter(self.root,
                                multi_monitor=lambda: self.store.snapshot().multi_monitor_overlay)
        self.overlays = OverlayCoordinator(
            self.root, presenter,
            signal_provider=lambda: self.state.signal(self.store.snapshot()),
            sound=SoundPlayer(self.store),
            click_to_dismiss=lambda: self.store.snapshot().click_to_dismiss,
        )
        self.tray = TrayIcon(
            self.root,
            actions={
                "reset": self.reset_timers,
                "preview": self.preview,
                "dismiss": self.overlays.dismiss_all,
                "toggle_alerts": self.toggle_alerts,
                "quit": self.quit,
            },
            status=lambda: self.scheduler.status_text(),
            alerts_on=lambda: self.store.snapshot().alerts_enabled,
        )
        self.scheduler = Scheduler(self.root, self.store, self.state.signal,
                                   self.overlays, notifier=self.tray.notify)
        self.detector = PresentationDetector(self.root, self.state)
        self.overlays.subscribe(self._on_overlay_dismissed)

    # ─── Actions (Tk thread) ─────────────────────────────────

    def reset_timers(self) -> None:
        self.scheduler.reset_timers()

    def preview(self, kind: ReminderKind) -> Optional[int]:
        return self.scheduler.preview(kind)

    def toggle_alerts(self) -> None:
        cfg = self.store.update(alerts_enabled=not self.store.snapshot().alerts_enabled)
        log.info("Alerts %s", "enabled" if cfg.alerts_enabled else "disabled")
        self.tray.refresh()

    def _on_overlay_dismissed(self, event: OverlayDismissed) -> None:
        # Countdowns resume once a blocking overlay closes
        log.debug("Overlay gen %d closed (%s)", event.generation, event.reason.value)
        self.tray.refresh()

    def quit(self) -> None:
        log.info("Quitting")
        self.scheduler.stop()
        self.detector.stop()
        self.overlays.dismiss_all()
        try:
            self.tray.stop()
        except Exception as e:
            log.warning("Tray stop failed: %s", e)
        self.root.after(0, self.root.quit)

    def _refresh_tray(self) -> None:
        self.tray.refresh()
        self.root.after(TRAY_REFRESH_MS, self._refresh_tray)

    # ─── Startup ─────────────────────────────────────────────

    def print_schedule(self) -> None:
        cfg = self.store.snapshot()
        rows = []
        if cfg.eye_strain_enabled:
            rows.append(f"Every {cfg.eye_strain_interval:g} min  eye strain break")
        if cfg.mini_overlay_enabled:
            rows.append(f"Every {cfg.mini_overlay_interval:g} min  {cfg.mini_overlay_text}")
        if cfg.bedtime_enabled:
            rng = cfg.bedtime_range
            rows.append(f"Bedtime  {rng.start.fmt12()} - {rng.end.fmt12()}" if rng
                        else "Bedtime  (invalid range)")
        if cfg.clock_out_enabled:
            at = cfg.clock_out_at
            rows.append(f"Clock out  {at.fmt12()}" if at else "Clock out  (invalid time)")
        if not rows:
            rows.append("No reminders enabled")
        tz = datetime.datetime.now().astimezone().tzinfo
        rows.append(f"Timezone: {tz}")
        try:
            print()
            print("  +-----------------------------------------------+")
            print("  |               Lucid -- Schedule               |")
            print("  +-----------------------------------------------+")
            for row in rows:
                print(f"  |  {row:<45s}|")
            print("  +-----------------------------------------------+")
            print()
        except (UnicodeEncodeError, OSError):
            pass  # consoles that can't print

    def run(self) -> None:
        self.print_schedule()
        self.tray.refresh()
        threading.Thread(target=self.tray.run, daemon=True).start()
        self.detector.start()
        self.scheduler.start()
        self.root.after(TRAY_REFRESH_MS, self._refresh_tray)
        self.root.mainloop()


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="Lucid desktop reminders")
    parser.add_argument("--test", action="store_true", help="Use short intervals for testing")
    parser.add_argument("--config", default=CONFIG_FILE, help="Path to the JSON config file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    if args.test:
        log.warning("TEST MODE: using short intervals")
    LucidApp(args.config, test_mode=args.test).run()
