"""End-to-end tests for the tick loop driving real machines and coordinator."""

from lucid.overlay import DismissReason
from lucid.reminders import ReminderKind
from lucid.scheduler import PERSISTENT_CHECK_MS, TICK_MS

from conftest import at

ONE_SECOND = 1 / 60   # eye_strain_interval in minutes


class TestIntervalScenarios:
    def test_one_second_interval_fires_every_tick(self, make_scheduler):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=ONE_SECOND)
        fires = []
        for _ in range(3):
            fires.extend(sched.tick())
            assert sched.eye_strain.countdown.remaining == 1
            # User dismisses straight away so the next tick is not paused
            assert sched.coordinator.dismiss(reason=DismissReason.HOTKEY)
        assert [d.kind for d in fires] == [ReminderKind.EYE_STRAIN] * 3

    def test_countdown_pauses_while_overlay_shown(self, make_scheduler):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=ONE_SECOND * 5)
        for _ in range(5):
            sched.tick()
        assert sched.coordinator.overlay_active
        remaining = sched.eye_strain.countdown.remaining
        for _ in range(20):
            assert sched.tick() == []
        assert sched.eye_strain.countdown.remaining == remaining
        sched.coordinator.dismiss()
        sched.tick()
        assert sched.eye_strain.countdown.remaining == remaining - 1

    def test_mini_overlay_does_not_pause_eye_strain(self, make_scheduler):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=1,
                                  mini_overlay_enabled=True, mini_overlay_interval=ONE_SECOND)
        sched.tick()
        assert sched.coordinator.transient_active
        assert not sched.coordinator.overlay_active
        sched.tick()
        assert sched.eye_strain.countdown.remaining == 58

    def test_suppressed_fire_is_dropped_but_countdown_resets(self, make_scheduler, state,
                                                              presenter):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=ONE_SECOND)
        state.settings_focused = True
        assert len(sched.tick()) == 1
        assert presenter.open == []
        assert sched.eye_strain.countdown.remaining == 1

    def test_reset_timers(self, make_scheduler):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=1,
                                  mini_overlay_enabled=True, mini_overlay_interval=2)
        for _ in range(30):
            sched.tick()
        sched.reset_timers()
        assert sched.eye_strain.countdown.remaining == 60
        assert sched.mini_overlay.countdown.remaining == 120

    def test_countdowns_only_for_enabled_kinds(self, make_scheduler):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=20)
        sched.tick()
        assert sched.countdowns() == {ReminderKind.EYE_STRAIN: "19:59"}
        assert "19:59" in sched.status_text()

    def test_countdowns_include_bedtime_and_clock_out(self, make_scheduler):
        sched, _ = make_scheduler(bedtime_enabled=True, bedtime_start="22:00",
                                  clock_out_enabled=True, clock_out_time="17:00")
        assert sched.countdowns() == {ReminderKind.BEDTIME: "10:00",
                                      ReminderKind.CLOCK_OUT: "05:00"}
        assert sched.countdowns(at(23, 0))[ReminderKind.BEDTIME] == "00:00"
        assert "Bed 10:00" in sched.status_text()
        assert "Out 05:00" in sched.status_text()

    def test_countdown_text_updates_while_paused(self, make_scheduler):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=20)
        sched.coordinator.present_blocking(sched.bedtime.decision(sched.store.snapshot()))
        sched.tick()
        assert sched.countdowns()[ReminderKind.EYE_STRAIN] == "20:00"


class TestBedtimeScenarios:
    def test_repeat_every_fifteen_minutes(self, make_scheduler):
        sched, _ = make_scheduler(bedtime_enabled=True, bedtime_start="22:00",
                                  bedtime_end="06:00", bedtime_repeat_reminders=True,
                                  bedtime_repeat_interval=15)
        fired = {t: bool(sched.tick(at(*t))) for t in [(22, 0), (22, 15), (22, 16)]}
        assert fired == {(22, 0): True, (22, 15): True, (22, 16): False}

    def test_leaving_and_reentering_while_suppressed_fires_again(self, make_scheduler, state):
        sched, _ = make_scheduler(bedtime_enabled=True)
        assert [d.kind for d in sched.tick(at(5, 50))] == [ReminderKind.BEDTIME]
        sched.coordinator.dismiss()
        state.presentation_active = True
        for hour in range(6, 22):
            assert sched.tick(at(hour, 30)) == []
        state.presentation_active = False
        assert [d.kind for d in sched.tick(at(22, 30))] == [ReminderKind.BEDTIME]

    def test_waits_while_suppressed(self, make_scheduler, state, presenter):
        sched, _ = make_scheduler(bedtime_enabled=True)
        state.presentation_active = True
        assert sched.tick(at(22, 0)) == []
        state.presentation_active = False
        fired = sched.tick(at(22, 1))
        assert [d.kind for d in fired] == [ReminderKind.BEDTIME]
        assert presenter.blocking_windows()

    def test_persistent_refires_after_dismiss(self, make_scheduler):
        sched, _ = make_scheduler(bedtime_enabled=True, bedtime_persistent=True)
        sched.tick(at(23, 0))
        assert sched.persistent_check(at(23, 0, 2)) is None   # already showing
        sched.coordinator.dismiss(reason=DismissReason.CLICK)
        assert sched.persistent_check(at(23, 0, 4)) is not None
        assert sched.coordinator.overlay_active

    def test_persistent_respects_gate(self, make_scheduler, state):
        sched, _ = make_scheduler(bedtime_enabled=True, bedtime_persistent=True)
        state.settings_focused = True
        assert sched.persistent_check(at(23, 0)) is None

    def test_bedtime_replaces_eye_strain_overlay(self, make_scheduler, presenter):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=ONE_SECOND,
                                  bedtime_enabled=True)
        fired = sched.tick(at(22, 0))
        assert {d.kind for d in fired} == {ReminderKind.EYE_STRAIN, ReminderKind.BEDTIME}
        assert sched.coordinator.current.decision.kind is ReminderKind.BEDTIME
        gens = {w[1] for w in presenter.blocking_windows()}
        assert len(gens) == 1


class TestClockOutScenarios:
    def test_notification_mode(self, make_scheduler, presenter):
        sched, notes = make_scheduler(clock_out_enabled=True, clock_out_time="17:00",
                                      clock_out_use_overlay=False)
        for s in range(0, 60, 5):
            sched.tick(at(17, 0, s))
        assert notes == [("Clock Out", "It's time to clock out!")]
        assert presenter.open == []

    def test_overlay_mode_then_reminder_notifications(self, make_scheduler):
        sched, notes = make_scheduler(clock_out_enabled=True, clock_out_time="17:00",
                                      clock_out_reminder_enabled=True,
                                      clock_out_reminder_interval=10)
        sched.tick(at(17, 0))
        assert sched.coordinator.overlay_active
        sched.tick(at(17, 10))
        assert notes == [("Clock Out Reminder", "Don't forget to clock out!")]

    def test_notifier_failure_is_isolated(self, make_scheduler):
        sched, _ = make_scheduler(clock_out_enabled=True, clock_out_use_overlay=False)

        def broken(title, body):
            raise RuntimeError("notification center down")
        sched._notifier = broken
        assert len(sched.tick(at(17, 0))) == 1


class TestIsolationAndLoop:
    def test_one_kind_failing_does_not_block_others(self, make_scheduler):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=ONE_SECOND,
                                  bedtime_enabled=True)

        def explode(cfg, now, gate_open=True):
            raise RuntimeError("bug")
        sched.bedtime.tick = explode
        fired = sched.tick(at(23, 0))
        assert [d.kind for d in fired] == [ReminderKind.EYE_STRAIN]

    def test_failed_dispatch_does_not_drop_later_decisions(self, make_scheduler):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=ONE_SECOND,
                                  mini_overlay_enabled=True, mini_overlay_interval=ONE_SECOND)

        def explode(decision, is_preview=False):
            raise OverflowError("after() delay out of range")
        sched.coordinator.present_blocking = explode
        fired = sched.tick()
        assert [d.kind for d in fired] == [ReminderKind.EYE_STRAIN, ReminderKind.MINI_OVERLAY]
        assert sched.coordinator.transient_active

    def test_config_read_once_per_tick(self, make_scheduler):
        sched, _ = make_scheduler(eye_strain_enabled=True)
        store = sched.store
        calls = []
        original = store.snapshot

        def counting():
            calls.append(1)
            return original()
        store.snapshot = counting
        sched.tick(at(12, 0))
        assert len(calls) == 1

    def test_loop_keeps_ticking_after_failure(self, make_scheduler, loop):
        sched, _ = make_scheduler(eye_strain_enabled=True, eye_strain_interval=1)
        original = sched.tick
        calls = []

        def flaky(now=None):
            calls.append(1)
            if len(calls) == 2:
                raise RuntimeError("transient")
            return original(now)
        sched.tick = flaky
        sched.start()
        loop.advance(5 * TICK_MS)
        assert len(calls) == 5
        sched.stop()
        loop.advance(5 * TICK_MS)
        assert len(calls) == 5

    def test_persistent_check_scheduled_every_two_seconds(self, make_scheduler, loop):
        sched, _ = make_scheduler()
        calls = []
        sched.persistent_check = lambda now=None: calls.append(1)
        sched.start()
        loop.advance(10 * 1000)
        sched.stop()
        assert len(calls) == 10 * 1000 // PERSISTENT_CHECK_MS

    def test_uses_injected_clock(self, make_scheduler):
        sched, _ = make_scheduler(bedtime_enabled=True, bedtime_start="12:00",
                                  bedtime_end="12:30")
        assert [d.kind for d in sched.tick()] == [ReminderKind.BEDTIME]


class TestPreview:
    def test_preview_bypasses_gate(self, make_scheduler, state, presenter):
        sched, _ = make_scheduler(alerts_enabled=False)
        state.settings_focused = True
        assert sched.preview(ReminderKind.EYE_STRAIN) is not None
        assert presenter.blocking_windows()

    def test_preview_mini_overlay(self, make_scheduler):
        sched, _ = make_scheduler()
        sched.preview(ReminderKind.MINI_OVERLAY)
        assert sched.coordinator.transient_active

    def test_preview_clock_out_notification(self, make_scheduler):
        sched, notes = make_scheduler(clock_out_use_overlay=False)
        sched.preview(ReminderKind.CLOCK_OUT)
        assert notes == [("Clock Out", "It's time to clock out!")]
