"""Shared fakes that drive the session deterministically."""

from typing import Callable, List, Optional

import pytest

from whistle_counter.audio.capture import CaptureError
from whistle_counter.config.settings import WhistleCounterConfig
from whistle_counter.core.session import WhistleSession
from whistle_counter.notify.dispatcher import DispatchReport, NotificationOutcome


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Runs ticks and timers only when the test asks it to."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.loops: List[tuple] = []
        self.timers: List[tuple] = []
        self.submitted: List[Callable[[], None]] = []

    def call_every(self, interval_s, callback):
        handle = FakeHandle()
        self.loops.append((interval_s, callback, handle))
        return handle

    def call_later(self, delay_s, callback):
        handle = FakeHandle()
        self.timers.append((self.clock() + delay_s, callback, handle))
        return handle

    def submit(self, callback):
        self.submitted.append(callback)

    @property
    def active_loops(self) -> int:
        return sum(1 for _, _, handle in self.loops if not handle.cancelled)

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, handle in self.timers if not handle.cancelled)

    def tick(self, n: int = 1) -> None:
        for _ in range(n):
            active = [loop for loop in self.loops if not loop[2].cancelled]
            if not active:
                return
            self.clock.advance(active[0][0])
            self._fire_due_timers()
            for _, callback, handle in active:
                if not handle.cancelled:
                    callback()

    def advance(self, seconds: float) -> None:
        self.clock.advance(seconds)
        self._fire_due_timers()

    def run_submitted(self) -> None:
        while self.submitted:
            self.submitted.pop(0)()

    def _fire_due_timers(self) -> None:
        due = [t for t in self.timers if t[0] <= self.clock()]
        self.timers = [t for t in self.timers if t[0] > self.clock()]
        for _, callback, handle in due:
            if not handle.cancelled:
                callback()


class FakeCapture:
    """Capture whose frames are loudness values set by the test."""

    def __init__(self):
        self.level = 0.0
        self.open_error: Optional[CaptureError] = None
        self.read_error: Optional[Exception] = None
        self.opened = 0
        self.closed = 0
        self.handle = None

    def open(self, constraints):
        if self.open_error is not None:
            raise self.open_error
        self.opened += 1
        self.handle = object()
        return self.handle

    def read_frame(self, handle):
        if self.read_error is not None:
            error, self.read_error = self.read_error, None
            raise error
        return self.level

    def close(self, handle):
        self.closed += 1

    @property
    def is_open(self) -> bool:
        return self.opened > self.closed


class RecordingDispatcher:
    def __init__(self):
        self.calls = []

    def dispatch(self, targets):
        self.calls.append(list(targets))
        return DispatchReport(outcomes=[NotificationOutcome(target=t, ok=True) for t in targets])


class RecordingSoundPlayer:
    def __init__(self):
        self.once = []
        self.looping = []

    def play_once(self, clip):
        self.once.append(clip)

    def play_looping(self, clip, stop_after_ms):
        self.looping.append((clip, stop_after_ms))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def sound_player():
    return RecordingSoundPlayer()


@pytest.fixture
def config():
    return WhistleCounterConfig(sensitivity_percent=50, min_duration_seconds=1.0, target_count=2)


@pytest.fixture
def events():
    return []


@pytest.fixture
def session(config, capture, dispatcher, sound_player, scheduler, clock, events):
    session = WhistleSession(
        config=config,
        capture=capture,
        dispatcher=dispatcher,
        sound_player=sound_player,
        scheduler=scheduler,
        clock=clock,
        estimator=lambda frame: frame,
    )
    session.add_listener(events.append)
    return session
