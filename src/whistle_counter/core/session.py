"""Whistle counting session: Ready / Listening / Cooldown / Triggered."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, List, Optional, Protocol, Sequence

from ..audio.sounds import ClipRef, NullSoundPlayer, SoundPlayer
from ..audio.types import CaptureConstraints
from ..audio.capture import CaptureError
from ..config.settings import WhistleCounterConfig
from ..constants import ALARM_DURATION_MS, COOLDOWN_MS, TICK_RATE_HZ
from ..detection.loudness import estimate_loudness
from ..detection.sustain import SustainDetector
from ..notify.dispatcher import DispatchReport, NotificationTarget, targets_from_config
from .events import (
    CaptureFailed,
    NotificationsSettled,
    SessionEvent,
    SessionSnapshot,
    SessionState,
    StateChanged,
    TargetReached,
    WhistleDetected,
    WhistleEvent,
)
from .scheduler import Cancellable, Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)

NOTIFICATIONS_SENT_MESSAGE = "Target reached! Notifications sent."
NO_NOTIFICATIONS_MESSAGE = "Target reached! (No notification URLs configured)"

# A persistently failing frame source is logged once per this many ticks.
FRAME_ERROR_LOG_EVERY = 100

SessionListener = Callable[[SessionEvent], None]


class CaptureBackend(Protocol):
    def open(self, constraints: CaptureConstraints) -> Any: ...

    def read_frame(self, handle: Any) -> Any: ...

    def close(self, handle: Any) -> None: ...


class Dispatcher(Protocol):
    def dispatch(self, targets: Sequence[NotificationTarget]) -> DispatchReport: ...


class WhistleSession:
    """
    Counts sustained whistles and raises the alarm once the target is reached.

    Every entry point (start/stop/reset, ticks, the cooldown re-check and the
    notification completion) runs under one re-entrant lock, so the session
    behaves as if driven by a single event loop.  ``start``, ``stop`` and
    ``reset`` bump a generation number; scheduled continuations remember the
    generation they were created in and do nothing once it is stale.

    The config object is shared with whoever edits settings and is re-read on
    every tick.
    """

    def __init__(
        self,
        config: WhistleCounterConfig,
        capture: CaptureBackend,
        dispatcher: Dispatcher,
        sound_player: Optional[SoundPlayer] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], float] = time.monotonic,
        estimator: Callable[[Any], float] = estimate_loudness,
        detector: Optional[SustainDetector] = None,
        tick_rate_hz: float = TICK_RATE_HZ,
        cooldown_ms: int = COOLDOWN_MS,
        alarm_duration_ms: int = ALARM_DURATION_MS,
        constraints: CaptureConstraints = CaptureConstraints(),
    ):
        self._config = config
        self._capture = capture
        self._dispatcher = dispatcher
        self._sound_player = sound_player or NullSoundPlayer()
        self._scheduler = scheduler or ThreadingScheduler()
        self._clock = clock
        self._estimator = estimator
        self._tick_rate_hz = tick_rate_hz
        self._cooldown_s = cooldown_ms / 1000.0
        self._alarm_duration_ms = alarm_duration_ms
        self._constraints = constraints
        self._detector = detector or SustainDetector(config.required_frames(tick_rate_hz))

        self._lock = threading.RLock()
        self._state = SessionState.READY
        self._whistle_count = 0
        self._last_event_time = 0.0
        self._volume_level = 0.0
        self._error_message: Optional[str] = None
        self._frame_errors = 0
        self._generation = 0
        self._handle: Any = None
        self._tick_loop: Optional[Cancellable] = None
        self._pending_recheck: Optional[Cancellable] = None
        self._listeners: List[SessionListener] = []

    @property
    def config(self) -> WhistleCounterConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def whistle_count(self) -> int:
        return self._whistle_count

    def add_listener(self, listener: SessionListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                state=self._state,
                whistle_count=self._whistle_count,
                target_count=self._config.target_count,
                threshold_percent=self._config.threshold_percent,
                volume_level=self._volume_level,
                loud_frame_count=self._detector.loud_frame_count,
                required_frames=self._config.required_frames(self._tick_rate_hz),
                error_message=self._error_message,
            )

    # -- commands ---------------------------------------------------------

    def start(self) -> None:
        """
        Open the microphone and begin listening.

        Raises:
            CaptureError: the microphone could not be acquired; the session
                stays Ready.
        """
        with self._lock:
            if self._state is not SessionState.READY:
                logger.debug(f"start() ignored in state {self._state.value}")
                return

            self._error_message = None
            try:
                handle = self._capture.open(self._constraints)
            except CaptureError as e:
                self._error_message = str(e)
                logger.error(f"Could not start listening: {e}")
                self._emit(CaptureFailed(message=str(e)))
                raise

            self._handle = handle
            self._generation += 1
            self._frame_errors = 0
            generation = self._generation
            self._detector.reset()
            self._last_event_time = self._clock()
            self._tick_loop = self._scheduler.call_every(
                1.0 / self._tick_rate_hz, lambda: self._on_tick(generation)
            )
            self._set_state(SessionState.LISTENING)
            logger.info(
                f"Listening (threshold={self._config.threshold_percent}, "
                f"min_duration={self._config.min_duration_seconds}s, target={self._config.target_count})"
            )

    def stop(self) -> None:
        """Stop listening, keeping the whistle count."""
        with self._lock:
            self._halt()
            self._set_state(SessionState.READY)

    def reset(self) -> None:
        """Stop listening and zero the whistle count."""
        with self._lock:
            self._halt()
            self._whistle_count = 0
            self._error_message = None
            self._set_state(SessionState.READY)
            logger.info("Session reset")

    # -- tick loop --------------------------------------------------------

    def _on_tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._state not in (
                SessionState.LISTENING,
                SessionState.COOLDOWN,
            ):
                return

            try:
                frame = self._capture.read_frame(self._handle)
                level = float(self._estimator(frame))
            except Exception as e:
                self._frame_errors += 1
                if self._frame_errors % FRAME_ERROR_LOG_EVERY == 1:
                    logger.error(
                        f"Skipping tick, frame processing failed ({self._frame_errors} so far): {e}",
                        exc_info=self._frame_errors == 1,
                    )
                return

            self._volume_level = level
            now = self._clock()

            if self._state is SessionState.LISTENING:
                self._detector.required_frames = self._config.required_frames(self._tick_rate_hz)
                _, sustained = self._detector.observe(level, self._config.threshold_percent)
                if sustained and now - self._last_event_time > self._cooldown_s:
                    self._record_whistle(now)

            self._check_target()

    def _record_whistle(self, now: float) -> None:
        self._whistle_count += 1
        event = WhistleEvent(index=self._whistle_count, timestamp=now)
        self._detector.reset()
        self._last_event_time = now
        self._set_state(SessionState.COOLDOWN)
        logger.info(f"Whistle #{event.index} detected")
        self._emit(
            WhistleDetected(
                event=event,
                whistle_count=self._whistle_count,
                target_count=self._config.target_count,
            )
        )
        self._play_once(ClipRef.CONFIRM)

        generation = self._generation
        self._cancel_recheck()
        self._pending_recheck = self._scheduler.call_later(
            self._cooldown_s, lambda: self._after_cooldown(generation)
        )

    def _after_cooldown(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._state is not SessionState.COOLDOWN:
                logger.debug("Discarding stale cooldown re-check")
                return
            self._pending_recheck = None
            if self._check_target():
                return
            self._detector.reset()
            self._set_state(SessionState.LISTENING)

    def _check_target(self) -> bool:
        target = self._config.target_count
        if target > 0 and self._whistle_count >= target and self._state is not SessionState.TRIGGERED:
            self._trigger()
            return True
        return False

    # -- trigger ----------------------------------------------------------

    def _trigger(self) -> None:
        generation = self._generation
        self._release_capture()
        self._cancel_recheck()
        self._detector.reset()
        self._volume_level = 0.0
        self._set_state(SessionState.TRIGGERED)
        logger.info(f"Target of {self._config.target_count} whistles reached")
        self._emit(TargetReached(whistle_count=self._whistle_count, target_count=self._config.target_count))
        self._play_looping(ClipRef.ALARM, self._alarm_duration_ms)

        targets = targets_from_config(self._config)
        if not targets:
            self._emit(NotificationsSettled(message=NO_NOTIFICATIONS_MESSAGE, sent=0, failed=0))
            return
        self._scheduler.submit(lambda: self._notify(generation, targets))

    def _notify(self, generation: int, targets: List[NotificationTarget]) -> None:
        try:
            report = self._dispatcher.dispatch(targets)
        except Exception as e:
            logger.error(f"Notification dispatch failed: {e}", exc_info=True)
            report = DispatchReport()
        self._notifications_settled(generation, report)

    def _notifications_settled(self, generation: int, report: DispatchReport) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding notification result from a stopped session")
                return
            self._emit(
                NotificationsSettled(
                    message=NOTIFICATIONS_SENT_MESSAGE,
                    sent=report.sent,
                    failed=report.failed,
                )
            )

    # -- helpers ----------------------------------------------------------

    def _halt(self) -> None:
        self._generation += 1
        self._release_capture()
        self._cancel_recheck()
        self._detector.reset()
        self._volume_level = 0.0

    def _release_capture(self) -> None:
        if self._tick_loop is not None:
            self._tick_loop.cancel()
            self._tick_loop = None
        handle, self._handle = self._handle, None
        if handle is not None:
            try:
                self._capture.close(handle)
            except Exception as e:
                logger.warning(f"Error releasing microphone: {e}")

    def _cancel_recheck(self) -> None:
        if self._pending_recheck is not None:
            self._pending_recheck.cancel()
            self._pending_recheck = None

    def _set_state(self, state: SessionState) -> None:
        previous = self._state
        if previous is state:
            return
        self._state = state
        logger.debug(f"State {previous.value} -> {state.value}")
        self._emit(StateChanged(previous=previous, current=state))

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)

    def _play_once(self, clip: ClipRef) -> None:
        try:
            self._sound_player.play_once(clip)
        except Exception as e:
            logger.warning(f"Sound playback failed: {e}")

    def _play_looping(self, clip: ClipRef, stop_after_ms: int) -> None:
        try:
            self._sound_player.play_looping(clip, stop_after_ms)
        except Exception as e:
            logger.warning(f"Sound playback failed: {e}")
