"""
TkPresenter: tkinter window backend for the overlay coordinator.

Opens one Toplevel per display. Windows never close themselves: every
teardown goes through OverlayCoordinator, which calls close().
"""
from __future__ import annotations

import datetime
import logging
import platform
import tkinter as tk
from typing import Callable

from screeninfo import get_monitors

from .overlay import DismissReason, Presenter
from .reminders import FireDecision, format_countdown

log = logging.getLogger(__name__)

IS_MAC = platform.system() == "Darwin"
IS_WIN = platform.system() == "Windows"
FONT = "Helvetica Neue" if IS_MAC else "Segoe UI" if IS_WIN else "DejaVu Sans"

# ─── Colours (nord) ──────────────────────────────────────────
C_BG       = "#2e3440";  C_CARD     = "#3b4252"
C_ACCENT   = "#88c0d0";  C_TEXT     = "#eceff4"
C_TEXT_DIM = "#d8dee9";  C_CD       = "#ebcb8b"

OVERLAY_ALPHA = 0.92
MINI_W, MINI_H = 360, 64


def get_all_monitors(multi_monitor: bool = True) -> list:
    """List of (x, y, width, height) per display; width/height None if unknown."""
    if multi_monitor:
        try:
            monitors = [(m.x, m.y, m.width, m.height) for m in get_monitors()]
            if monitors:
                return monitors
        except Exception as e:
            log.warning("Monitor enumeration failed: %s", e)
    return [(0, 0, None, None)]  # Fallback: use tkinter's screen dimensions


class TkPresenter(Presenter):

    def __init__(self, root: tk.Tk, multi_monitor: Callable[[], bool] = lambda: True):
        self.root = root
        self._multi_monitor = multi_monitor

    # ── Blocking overlay ──────────────────────────────────
    def open_blocking(self, decision: FireDecision, generation: int,
                      on_dismiss: Callable[[int, DismissReason], None]) -> list:
        windows = []
        for x, y, w, h in get_all_monitors(self._multi_monitor()):
            ov = tk.Toplevel(self.root)
            ov.overrideredirect(True)
            ov.attributes("-topmost", True)
            ov.configure(bg=C_BG, cursor="hand2" if decision.dismissable else "")
            sw = w or ov.winfo_screenwidth()
            sh = h or ov.winfo_screenheight()
            ov.geometry(f"{sw}x{sh}+{x}+{y}")
            try:
                ov.attributes("-alpha", OVERLAY_ALPHA)
            except tk.TclError:
                pass

            cf = tk.Frame(ov, bg=C_BG)
            cf.place(relx=0.5, rely=0.5, anchor="center")
            clock_var = tk.StringVar(value=self._clock_text())
            tk.Label(cf, textvariable=clock_var, font=(FONT, 20),
                     fg=C_TEXT_DIM, bg=C_BG).pack(pady=(0, 24))
            tk.Label(cf, text=decision.title, font=(FONT, 36, "bold"),
                     fg=C_ACCENT, bg=C_BG).pack(pady=(0, 12))
            tk.Label(cf, text=decision.message, font=(FONT, 18), fg=C_TEXT, bg=C_BG,
                     justify="center", wraplength=800).pack(pady=(0, 20))

            cd_var = None
            if decision.auto_dismiss and decision.dismiss_after > 0:
                cd_var = tk.StringVar()
                tk.Label(cf, textvariable=cd_var, font=(FONT, 16),
                         fg=C_CD, bg=C_BG).pack()

            def click(e, gen=generation):
                on_dismiss(gen, DismissReason.CLICK)

            def hotkey(e, gen=generation):
                on_dismiss(gen, DismissReason.HOTKEY)

            if decision.dismissable:
                ov.bind("<Button-1>", click)
                for child in cf.winfo_children():
                    child.bind("<Button-1>", click)
            ov.bind("<Escape>", hotkey)

            self._countdown(ov, clock_var, cd_var, int(decision.dismiss_after))
            windows.append(ov)

        if windows:
            windows[0].lift()
            windows[0].focus_force()
        return windows

    @staticmethod
    def _clock_text() -> str:
        now = datetime.datetime.now()
        return "The time is " + now.strftime("%I:%M %p").lstrip("0")

    def _countdown(self, ov, clock_var, cd_var, rem) -> None:
        try:
            if not ov.winfo_exists():
                return
            clock_var.set(self._clock_text())
            if cd_var is not None:
                cd_var.set(f"Dismisses in {format_countdown(rem)}")
            ov.after(1000, lambda: self._countdown(ov, clock_var, cd_var, max(0, rem - 1)))
        except tk.TclError:
            pass

    # ── Mini overlay ──────────────────────────────────────
    def open_transient(self, decision: FireDecision, generation: int) -> list:
        windows = []
        bg = decision.background or C_CARD
        fg = decision.foreground or C_ACCENT
        scale = decision.animation_duration / 3.15
        for x, y, w, h in get_all_monitors(self._multi_monitor()):
            win = tk.Toplevel(self.root)
            win.overrideredirect(True)
            win.attributes("-topmost", True)
            win.configure(bg=bg)
            sw = w or win.winfo_screenwidth()
            wx = x + (sw - MINI_W) // 2
            wy = y + decision.vertical_offset
            win.geometry(f"{MINI_W}x{MINI_H}+{wx}+{wy}")

            text = f"{decision.icon}  {decision.title}" if decision.icon else decision.title
            tk.Label(win, text=text, font=(FONT, 16, "bold"), fg=fg, bg=bg,
                     padx=20).place(relx=0.5, rely=0.5, anchor="center")

            # Expand, hold, then fade out; the coordinator closes the window afterwards
            fade_out_at = int((0.75 * scale + decision.hold_duration) * 1000)
            self._fade(win, 0.0, 0.95, steps=10, duration_ms=int(350 * scale))
            win.after(fade_out_at, lambda wn=win: self._fade(
                wn, 0.95, 0.0, steps=10, duration_ms=int(950 * scale)))
            windows.append(win)
        return windows

    def _fade(self, win, start: float, end: float, steps: int, duration_ms: int) -> None:
        delay = max(1, duration_ms // steps)

        def step(i=0):
            try:
                if not win.winfo_exists():
                    return
                win.attributes("-alpha", start + (end - start) * i / steps)
                if i < steps:
                    win.after(delay, lambda: step(i + 1))
            except tk.TclError:
                pass
        step()

    # ── Teardown ──────────────────────────────────────────
    def close(self, windows: list) -> None:
        for win in windows:
            try:
                win.destroy()
            except tk.TclError:
                pass
