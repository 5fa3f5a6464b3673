"""Shared fakes: a manually-advanced loop and an in-memory presenter."""

import datetime

import pytest

from lucid.config import ConfigSnapshot, ConfigStore
from lucid.gate import AppState
from lucid.overlay import OverlayCoordinator, Presenter
from lucid.scheduler import Scheduler


class FakeLoop:
    """Stand-in for tk.Tk's after/after_cancel, advanced by hand."""

    def __init__(self):
        self.now_ms = 0
        self._next_id = 0
        self.pending = {}  # id -> (due_ms, callback)

    def after(self, ms, callback):
        self._next_id += 1
        self.pending[self._next_id] = (self.now_ms + ms, callback)
        return self._next_id

    def after_cancel(self, handle):
        self.pending.pop(handle, None)

    def advance(self, ms):
        """Run every callback due within the next `ms` milliseconds, in order."""
        end = self.now_ms + ms
        while True:
            due = [(t, i) for i, (t, _) in self.pending.items() if t <= end]
            if not due:
                break
            t, i = min(due)
            self.now_ms = t
            _, callback = self.pending.pop(i)
            callback()
        self.now_ms = end


class FakePresenter(Presenter):

    def __init__(self, displays=2):
        self.displays = displays
        self.open = []      # currently open window handles
        self.opened = []    # (kind, generation) history
        self.on_dismiss = None

    def open_blocking(self, decision, generation, on_dismiss):
        self.on_dismiss = on_dismiss
        wins = [("blocking", generation, d) for d in range(self.displays)]
        self.open.extend(wins)
        self.opened.append(("blocking", generation))
        return wins

    def open_transient(self, decision, generation):
        wins = [("transient", generation, d) for d in range(self.displays)]
        self.open.extend(wins)
        self.opened.append(("transient", generation))
        return wins

    def close(self, windows):
        for w in windows:
            self.open.remove(w)

    def blocking_windows(self):
        return [w for w in self.open if w[0] == "blocking"]


def make_store(**overrides):
    store = ConfigStore(None)
    store.publish(ConfigSnapshot.from_dict(overrides), persist=False)
    return store


def at(hour, minute, second=0, day=14):
    """A datetime on Wednesday 2026-10-14 (or another October day)."""
    return datetime.datetime(2026, 10, day, hour, minute, second)


@pytest.fixture
def loop():
    return FakeLoop()


@pytest.fixture
def presenter():
    return FakePresenter()


@pytest.fixture
def state():
    return AppState()


@pytest.fixture
def make_scheduler(loop, presenter, state):
    """Factory: make_scheduler(**config) -> (scheduler, notifications list)."""
    def factory(**cfg):
        store = make_store(**cfg)
        coordinator = OverlayCoordinator(
            loop, presenter,
            signal_provider=lambda: state.signal(store.snapshot()),
            click_to_dismiss=lambda: store.snapshot().click_to_dismiss,
        )
        notifications = []
        scheduler = Scheduler(loop, store, state.signal, coordinator,
                              notifier=lambda t, b: notifications.append((t, b)),
                              clock=lambda: at(12, 0))
        scheduler.store = store
        return scheduler, notifications
    return factory
