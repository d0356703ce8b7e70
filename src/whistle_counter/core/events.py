"""Session states, events and snapshots."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class SessionState(Enum):
    READY = "Ready"
    LISTENING = "Listening"
    COOLDOWN = "Cooldown"
    TRIGGERED = "Triggered"


@dataclass(frozen=True)
class WhistleEvent:
    """One detected sustained tone."""
    index: int
    timestamp: float


@dataclass(frozen=True)
class StateChanged:
    previous: SessionState
    current: SessionState


@dataclass(frozen=True)
class WhistleDetected:
    event: WhistleEvent
    whistle_count: int
    target_count: int


@dataclass(frozen=True)
class TargetReached:
    whistle_count: int
    target_count: int


@dataclass(frozen=True)
class NotificationsSettled:
    """Single user-facing completion signal after all notifications settled."""
    message: str
    sent: int
    failed: int


@dataclass(frozen=True)
class CaptureFailed:
    message: str


SessionEvent = Union[StateChanged, WhistleDetected, TargetReached, NotificationsSettled, CaptureFailed]


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session for presentation layers."""
    state: SessionState
    whistle_count: int
    target_count: int
    threshold_percent: int
    volume_level: float
    loud_frame_count: int
    required_frames: int
    error_message: Optional[str] = None

    @property
    def is_listening(self) -> bool:
        return self.state in (SessionState.LISTENING, SessionState.COOLDOWN)
