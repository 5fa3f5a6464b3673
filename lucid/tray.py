"""
System tray / menu-bar icon.

pystray runs its own thread. Every menu callback is marshalled back onto
the Tk thread with root.after(0, ...); nothing here touches scheduler or
overlay state directly.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Callable, Optional

import pystray
from PIL import Image, ImageDraw

from .reminders import ReminderKind

log = logging.getLogger(__name__)


def create_tray_image(muted: bool = False) -> Image.Image:
    """Draw the tray icon: an eye inside a ring, greyed out when alerts are off."""
    size = 64
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    if muted:
        RING = (100, 110, 110, 255)
        IRIS = (140, 150, 150, 255)
    else:
        RING = (94, 129, 172, 255)
        IRIS = (136, 192, 208, 255)
    WHITE = (236, 239, 244, 255)
    BLACK = (46, 52, 64, 255)

    cx, cy, r = 32, 32, 28
    draw.ellipse([cx-r, cy-r, cx+r, cy+r], fill=RING)
    draw.ellipse([cx-r+4, cy-r+4, cx+r-4, cy+r-4], fill=BLACK)

    # Almond eye outline from two arcs
    pts_top, pts_bot = [], []
    for i in range(0, 21):
        t = -1 + i / 10
        x = cx + t * 20
        y = 11 * math.cos(t * math.pi / 2)
        pts_top.append((x, cy - y))
        pts_bot.append((x, cy + y))
    draw.polygon(pts_top + pts_bot[::-1], fill=WHITE)
    draw.ellipse([cx-8, cy-8, cx+8, cy+8], fill=IRIS)
    draw.ellipse([cx-3, cy-3, cx+3, cy+3], fill=BLACK)
    return img


class TrayIcon:
    """
    Tray menu wired to app actions.

    actions keys: reset, preview, dismiss, toggle_alerts, quit
    status:       () -> str shown as tooltip and first menu line
    alerts_on:    () -> bool

    `status` and `alerts_on` are only called from refresh() on the Tk
    thread. Menu callables on the pystray thread read the cached values.
    """

    def __init__(self, root, actions: dict[str, Callable], status: Callable[[], str],
                 alerts_on: Callable[[], bool]):
        self.root = root
        self._actions = actions
        self._status = status
        self._alerts_on = alerts_on
        self.icon: Optional[pystray.Icon] = None
        self._status_text = "Lucid"
        self._alerts = True
        self._muted = False

    def _on_tk(self, name: str, *args) -> Callable:
        def cb(icon: Optional[Any] = None, item: Optional[Any] = None):
            self.root.after(0, lambda: self._actions[name](*args))
        return cb

    def status_label(self, item: Optional[Any] = None) -> str:
        return self._status_text

    def alerts_checked(self, item: Optional[Any] = None) -> bool:
        return self._alerts

    def build_menu(self) -> pystray.Menu:
        return pystray.Menu(
            pystray.MenuItem(self.status_label, None, enabled=False),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Reset timers", self._on_tk("reset")),
            pystray.MenuItem("Preview", pystray.Menu(
                pystray.MenuItem("Eye strain", self._on_tk("preview", ReminderKind.EYE_STRAIN)),
                pystray.MenuItem("Bedtime", self._on_tk("preview", ReminderKind.BEDTIME)),
                pystray.MenuItem("Clock out", self._on_tk("preview", ReminderKind.CLOCK_OUT)),
                pystray.MenuItem("Mini overlay", self._on_tk("preview", ReminderKind.MINI_OVERLAY)),
            )),
            pystray.MenuItem("Dismiss overlay", self._on_tk("dismiss")),
            pystray.MenuItem("Alerts enabled", self._on_tk("toggle_alerts"),
                             checked=self.alerts_checked),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Quit", self._on_tk("quit")),
        )

    def run(self) -> None:
        """Blocking; call from a daemon thread after a first refresh()."""
        self._muted = not self._alerts
        self.icon = pystray.Icon("lucid", create_tray_image(self._muted),
                                 self._status_text, self.build_menu())
        self.icon.run()

    def refresh(self) -> None:
        """Re-read status and alerts flag. Tk thread only."""
        try:
            self._status_text = self._status()
            self._alerts = bool(self._alerts_on())
        except Exception as e:
            log.debug("Tray status unavailable: %s", e)
            return
        if self.icon is None:
            return
        try:
            self.icon.title = self._status_text
            muted = not self._alerts
            if muted != self._muted:
                self._muted = muted
                self.icon.icon = create_tray_image(muted)
            self.icon.update_menu()
        except Exception as e:
            log.debug("Tray refresh failed: %s", e)

    def notify(self, title: str, body: str) -> None:
        """System notification via the tray backend."""
        if self.icon is None:
            raise RuntimeError("tray icon not running")
        self.icon.notify(body, title)

    def stop(self) -> None:
        if self.icon is not None:
            self.icon.stop()
