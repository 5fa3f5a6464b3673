"""
Reminder sounds. Best-effort: a missing player is logged, never raised.
"""
from __future__ import annotations

import logging
import os
import platform
import subprocess
import threading
import time

log = logging.getLogger(__name__)

IS_MAC = platform.system() == "Darwin"
IS_WIN = platform.system() == "Windows"

# effect name -> (macOS system sound, Windows alias)
SOUND_EFFECTS = {
    "none":      (None, None),
    "glass":     ("Glass", "SystemExclamation"),
    "hero":      ("Hero", "SystemExclamation"),
    "morse":     ("Morse", "SystemAsterisk"),
    "ping":      ("Ping", "SystemAsterisk"),
    "pop":       ("Pop", "SystemAsterisk"),
    "purr":      ("Purr", "SystemAsterisk"),
    "sosumi":    ("Sosumi", "SystemHand"),
    "submarine": ("Submarine", "SystemHand"),
    "tink":      ("Tink", "SystemAsterisk"),
}

LINUX_PLAYERS = [
    ["mpv", "--no-terminal", "--no-video"],
    ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"],
    ["cvlc", "--play-and-exit", "--no-video", "-q"],
    ["gst-play-1.0"],
    ["paplay"],   # PulseAudio (wav/ogg only usually)
    ["aplay", "-q"],  # ALSA (wav only)
]
LINUX_DEFAULT_SOUNDS = [
    ["paplay", "/usr/share/sounds/freedesktop/stereo/message.oga"],
    ["aplay", "-q", "/usr/share/sounds/sound-icons/prompt.wav"],
]

_sound_counter = 0


def _popen(cmd: list) -> bool:
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        return True
    except FileNotFoundError:
        return False


def _play_file(path: str) -> bool:
    if IS_WIN:
        # MCI plays mp3, wav, wma natively
        import ctypes
        global _sound_counter
        winmm = ctypes.windll.winmm
        _sound_counter += 1
        alias = f"lucid_{_sound_counter}"
        winmm.mciSendStringW(f'open "{path}" alias {alias}', None, 0, None)
        winmm.mciSendStringW(f"play {alias}", None, 0, None)

        def cleanup():
            time.sleep(30)
            winmm.mciSendStringW(f"close {alias}", None, 0, None)
        threading.Thread(target=cleanup, daemon=True).start()
        return True
    if IS_MAC:
        return _popen(["afplay", path])
    return any(_popen(cmd + [path]) for cmd in LINUX_PLAYERS)


def play_sound(effect: str = "ping", custom_path: str = "") -> bool:
    """Play a custom file if given, else the named system effect. True if started."""
    if custom_path and os.path.exists(custom_path):
        try:
            if _play_file(custom_path):
                return True
        except Exception as e:
            log.warning("Custom sound %s failed: %s", custom_path, e)

    mac_name, win_alias = SOUND_EFFECTS.get(effect, SOUND_EFFECTS["ping"])
    if mac_name is None:
        return False
    try:
        if IS_WIN:
            import winsound
            winsound.PlaySound(win_alias, winsound.SND_ALIAS | winsound.SND_ASYNC)
            return True
        if IS_MAC:
            return _popen(["afplay", f"/System/Library/Sounds/{mac_name}.aiff"])
        return any(_popen(cmd) for cmd in LINUX_DEFAULT_SOUNDS)
    except Exception as e:
        log.warning("Sound playback failed: %s", e)
        return False


class SoundPlayer:
    """Plays the configured reminder sound when sounds are enabled."""

    def __init__(self, store, player=play_sound):
        self._store = store
        self._player = player

    def __call__(self) -> None:
        cfg = self._store.snapshot()
        if not cfg.sound_enabled:
            return
        self._player(cfg.sound_effect, cfg.custom_sound_path)
