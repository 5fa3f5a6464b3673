"""Tests for best-effort collaborators: presentation detector, sound, tray cache."""

import pytest

from lucid.config import ConfigSnapshot
from lucid.gate import AppState
from lucid.presentation import PresentationDetector, is_presenting
from lucid.sound import SoundPlayer, play_sound

from conftest import make_store


def inline(target):
    target()


class TestIsPresenting:
    def test_frontmost_meeting_app_counts(self):
        assert is_presenting("zoom.us", fullscreen=False)
        assert is_presenting("teams.exe", fullscreen=False)

    def test_slideshow_app_needs_fullscreen(self):
        assert not is_presenting("powerpnt.exe", fullscreen=False)
        assert is_presenting("powerpnt.exe", fullscreen=True)

    def test_other_apps_never_count(self):
        assert not is_presenting("code.exe", fullscreen=True)
        assert not is_presenting("", fullscreen=False)


class TestPresentationDetector:
    def test_publishes_result_and_repolls(self, loop):
        state = AppState()
        results = iter([True, False])
        detector = PresentationDetector(loop, state, detect=lambda: next(results),
                                        interval_ms=5000, spawn=inline)
        detector.start()
        loop.advance(0)
        assert state.presentation_active
        loop.advance(5000)
        assert not state.presentation_active
        detector.stop()
        assert loop.pending == {}

    def test_result_is_written_on_the_loop_not_the_worker(self, loop):
        state = AppState()
        detector = PresentationDetector(loop, state, detect=lambda: True, spawn=inline)
        detector.poll()
        assert not state.presentation_active   # handed back via after(0, ...)
        loop.advance(0)
        assert state.presentation_active

    def test_slow_detection_is_not_stacked(self, loop):
        state = AppState()
        jobs = []
        detector = PresentationDetector(loop, state, detect=lambda: True,
                                        interval_ms=5000, spawn=jobs.append)
        detector.start()
        loop.advance(15_000)
        assert len(jobs) == 1
        jobs[0]()
        loop.advance(5000)
        assert len(jobs) == 2

    def test_failure_keeps_last_value_and_keeps_polling(self, loop):
        state = AppState(presentation_active=True)
        calls = []

        def broken():
            calls.append(1)
            raise OSError("osascript not found")
        detector = PresentationDetector(loop, state, detect=broken, interval_ms=5000,
                                        spawn=inline)
        detector.start()
        loop.advance(10_000)
        assert state.presentation_active
        assert len(calls) == 3


class TestSoundPlayer:
    def test_silent_when_disabled(self):
        played = []
        player = SoundPlayer(make_store(sound_enabled=False),
                             player=lambda *a: played.append(a))
        player()
        assert played == []

    def test_plays_configured_effect(self):
        played = []
        store = make_store(sound_enabled=True, sound_effect="glass",
                           custom_sound_path="/tmp/chime.wav")
        SoundPlayer(store, player=lambda *a: played.append(a))()
        assert played == [("glass", "/tmp/chime.wav")]

    def test_none_effect_plays_nothing(self):
        assert play_sound("none") is False

    def test_reads_fresh_snapshot_each_time(self):
        played = []
        store = make_store(sound_enabled=False)
        player = SoundPlayer(store, player=lambda *a: played.append(a))
        player()
        store.publish(ConfigSnapshot(sound_enabled=True), persist=False)
        player()
        assert len(played) == 1


class TestTrayCache:
    @pytest.fixture
    def calls(self):
        return []

    @pytest.fixture
    def tray(self, calls):
        tray_module = pytest.importorskip("lucid.tray")

        def status():
            calls.append("status")
            return "Lucid: Eyes 12:00"

        def alerts_on():
            calls.append("alerts")
            return False
        return tray_module.TrayIcon(root=None, actions={}, status=status, alerts_on=alerts_on)

    def test_menu_reads_cached_values_only(self, tray, calls):
        tray.refresh()
        assert calls == ["status", "alerts"]
        calls.clear()
        assert tray.status_label() == "Lucid: Eyes 12:00"
        assert tray.alerts_checked() is False
        assert calls == []

    def test_defaults_before_first_refresh(self, tray, calls):
        assert tray.status_label() == "Lucid"
        assert tray.alerts_checked() is True
        assert calls == []
