"""
Presentation / screen-share detection, polled every few seconds.

Only the frontmost application counts: a meeting app left running in the
background does not silence reminders. The result is published into
AppState.presentation_active; the gate only honours it when
`disable_during_presentation` is set.
"""
from __future__ import annotations

import logging
import os
import platform
import subprocess
import threading
from typing import Callable, Optional

log = logging.getLogger(__name__)

IS_MAC = platform.system() == "Darwin"
IS_WIN = platform.system() == "Windows"

CHECK_INTERVAL_MS = 5000

# Lower-cased names of meeting / screen-share / recording apps.
# Frontmost is enough.
SCREEN_SHARE_PROCESSES = {
    "zoom.us", "zoom", "zoom.exe", "cpthost.exe",
    "microsoft teams", "teams", "teams.exe", "ms-teams.exe",
    "webex", "webexmta.exe", "ciscowebexstart.exe",
    "skype", "skype.exe", "discord", "discord.exe",
    "obs", "obs64.exe", "obs-studio", "screenflow", "camo",
    "gotomeeting", "g2mcomm.exe", "bluejeans", "bluejeans.exe",
    "ringcentral", "8x8 meet",
}

# Slideshow apps. These count only when frontmost and fullscreen.
PRESENTATION_PROCESSES = {
    "keynote", "powerpnt.exe", "microsoft powerpoint",
    "prezi", "prezi.exe", "pdf expert", "preview",
}

PROCESS_QUERY_LIMITED_INFORMATION = 0x1000


def _window_is_fullscreen(user32, hwnd) -> bool:
    from ctypes import byref, wintypes

    rect = wintypes.RECT()
    user32.GetWindowRect(hwnd, byref(rect))
    screen_w = user32.GetSystemMetrics(0)  # SM_CXSCREEN
    screen_h = user32.GetSystemMetrics(1)  # SM_CYSCREEN

    win_w = rect.right - rect.left
    win_h = rect.bottom - rect.top
    return (win_w >= screen_w - 10 and win_h >= screen_h - 10 and
            rect.left <= 5 and rect.top <= 5)


def _foreground_app_windows() -> Optional[tuple[str, bool]]:
    import ctypes
    from ctypes import wintypes
    user32 = ctypes.windll.user32
    kernel32 = ctypes.windll.kernel32

    hwnd = user32.GetForegroundWindow()
    if not hwnd or hwnd == user32.GetShellWindow():
        return None

    pid = wintypes.DWORD()
    user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
    name = ""
    handle = kernel32.OpenProcess(PROCESS_QUERY_LIMITED_INFORMATION, False, pid.value)
    if handle:
        try:
            buf = ctypes.create_unicode_buffer(260)
            size = wintypes.DWORD(len(buf))
            if kernel32.QueryFullProcessImageNameW(handle, 0, buf, ctypes.byref(size)):
                name = os.path.basename(buf.value).lower()
        finally:
            kernel32.CloseHandle(handle)
    return name, _window_is_fullscreen(user32, hwnd)


def _foreground_app_mac() -> Optional[tuple[str, bool]]:
    script = ('tell application "System Events" to get name of '
              'first application process whose frontmost is true')
    result = subprocess.run(["osascript", "-e", script],
                            capture_output=True, text=True, timeout=3)
    name = result.stdout.strip().lower()
    # Fullscreen state is not available without screen-recording permission
    return (name, False) if name else None


def foreground_app() -> Optional[tuple[str, bool]]:
    """(lower-cased process name, fullscreen) of the frontmost app, or None if unknown."""
    if IS_WIN:
        return _foreground_app_windows()
    if IS_MAC:
        return _foreground_app_mac()
    return None


def is_presenting(name: str, fullscreen: bool) -> bool:
    if name in SCREEN_SHARE_PROCESSES:
        return True
    return fullscreen and name in PRESENTATION_PROCESSES


def detect_presentation() -> bool:
    app = foreground_app()
    if app is None:
        return False
    return is_presenting(*app)


def _spawn_thread(target: Callable[[], None]) -> None:
    threading.Thread(target=target, daemon=True).start()


class PresentationDetector:
    """
    Polls `detect` off the loop thread and stores the result in `state`.

    Detection shells out and may take a while, so it runs on a daemon
    thread. The result comes back through loop.after(0, ...) and `state`
    is only written on the loop thread.
    """

    def __init__(self, loop, state, detect=detect_presentation,
                 interval_ms: int = CHECK_INTERVAL_MS, spawn=_spawn_thread):
        self._loop = loop
        self._state = state
        self._detect = detect
        self._interval_ms = interval_ms
        self._spawn = spawn
        self._after_id = None
        self._busy = False

    def start(self) -> None:
        self.poll()

    def stop(self) -> None:
        if self._after_id is not None:
            try:
                self._loop.after_cancel(self._after_id)
            except Exception:
                pass
            self._after_id = None

    def poll(self) -> None:
        # A slow detection is never stacked with another one
        if not self._busy:
            self._busy = True
            self._spawn(self._detect_in_background)
        self._after_id = self._loop.after(self._interval_ms, self.poll)

    def _detect_in_background(self) -> None:
        try:
            active = bool(self._detect())
        except Exception as e:
            log.warning("Presentation detection failed: %s", e)
            active = None
        try:
            self._loop.after(0, lambda: self._publish(active))
        except RuntimeError as e:
            # Main loop already gone
            log.debug("Dropping presentation result: %s", e)

    def _publish(self, active: Optional[bool]) -> None:
        self._busy = False
        if active is None:
            return  # keep the last known value
        if active != self._state.presentation_active:
            log.info("Presentation mode %s", "on" if active else "off")
        self._state.presentation_active = active
