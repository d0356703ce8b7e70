"""Audio subsystem - microphone capture and alert sounds."""

from .types import AudioFormat, AnalyserConfig, CaptureConstraints
from .capture import (
    AudioCapture,
    CaptureAvailability,
    CaptureError,
    CaptureHandle,
    NoDevice,
    PermissionDenied,
    Unsupported,
)
from .sounds import ClipRef, NullSoundPlayer, SoundPlayer, SounddevicePlayer

__all__ = [
    "AudioFormat",
    "AnalyserConfig",
    "CaptureConstraints",
    "AudioCapture",
    "CaptureAvailability",
    "CaptureError",
    "CaptureHandle",
    "NoDevice",
    "PermissionDenied",
    "Unsupported",
    "ClipRef",
    "NullSoundPlayer",
    "SoundPlayer",
    "SounddevicePlayer",
]
