"""Session state machine and its timing services."""

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
from .scheduler import Scheduler, ThreadingScheduler, TickLoop
from .session import WhistleSession

__all__ = [
    "CaptureFailed",
    "NotificationsSettled",
    "SessionEvent",
    "SessionSnapshot",
    "SessionState",
    "StateChanged",
    "TargetReached",
    "WhistleDetected",
    "WhistleEvent",
    "Scheduler",
    "ThreadingScheduler",
    "TickLoop",
    "WhistleSession",
]
