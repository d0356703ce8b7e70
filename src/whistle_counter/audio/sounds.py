"""Confirmation and alarm sounds."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Dict, Optional, Protocol

import numpy as np

from ..constants import SAMPLE_RATE
from .backend import load_sounddevice

logger = logging.getLogger(__name__)

# Short fade at start/end of each tone to avoid pops (ms).
FADE_DURATION_MS = 5


class ClipRef(Enum):
    CONFIRM = "confirm"
    ALARM = "alarm"


class SoundPlayer(Protocol):
    def play_once(self, clip: ClipRef) -> None: ...

    def play_looping(self, clip: ClipRef, stop_after_ms: int) -> None: ...


def _apply_fades(tone: np.ndarray, n: int) -> None:
    """Apply linear fade-in and fade-out of n samples in-place."""
    if n <= 0 or len(tone) < 2 * n:
        return
    tone[:n] *= np.linspace(0.0, 1.0, n, dtype=np.float32)
    tone[-n:] *= np.linspace(1.0, 0.0, n, dtype=np.float32)


def _tone(freq_hz: float, duration_ms: int, sample_rate: int, amplitude: float) -> np.ndarray:
    n = int(sample_rate * duration_ms / 1000)
    t = np.arange(n, dtype=np.float32) / sample_rate
    tone = (amplitude * np.sin(2 * np.pi * freq_hz * t)).astype(np.float32)
    _apply_fades(tone, int(sample_rate * FADE_DURATION_MS / 1000))
    return tone


def _silence(duration_ms: int, sample_rate: int) -> np.ndarray:
    return np.zeros(int(sample_rate * duration_ms / 1000), dtype=np.float32)


def synthesize_clip(clip: ClipRef, sample_rate: int = SAMPLE_RATE, amplitude: float = 0.8) -> np.ndarray:
    """Build the PCM for ``clip`` as mono float32.

    ``CONFIRM`` is a short rising double beep.  ``ALARM`` is one period of a
    digital-clock style beep-beep-beep-beep pattern meant to be looped.
    """
    if clip is ClipRef.CONFIRM:
        parts = [
            _tone(880.0, 90, sample_rate, amplitude),
            _silence(40, sample_rate),
            _tone(1320.0, 120, sample_rate, amplitude),
        ]
    else:
        parts = []
        for _ in range(4):
            parts.append(_tone(2000.0, 100, sample_rate, amplitude))
            parts.append(_silence(80, sample_rate))
        parts.append(_silence(500, sample_rate))
    return np.concatenate(parts)


class SounddevicePlayer:
    """Plays synthesized clips on the default output device.

    Playback is fire-and-forget: any failure is logged and swallowed.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE, device: Optional[int] = None):
        self._sample_rate = sample_rate
        self._device = device
        self._clips: Dict[ClipRef, np.ndarray] = {}
        self._stop_timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def _pcm(self, clip: ClipRef) -> np.ndarray:
        if clip not in self._clips:
            self._clips[clip] = synthesize_clip(clip, self._sample_rate)
        return self._clips[clip]

    def play_once(self, clip: ClipRef) -> None:
        try:
            sd = load_sounddevice()
            sd.play(self._pcm(clip), self._sample_rate, device=self._device)
        except Exception as e:
            logger.warning(f"Sound playback failed ({clip.value}): {e}")

    def play_looping(self, clip: ClipRef, stop_after_ms: int) -> None:
        try:
            sd = load_sounddevice()
            sd.play(self._pcm(clip), self._sample_rate, device=self._device, loop=True)
        except Exception as e:
            logger.warning(f"Sound playback failed ({clip.value}): {e}")
            return

        timer = threading.Timer(stop_after_ms / 1000.0, self.stop)
        timer.daemon = True
        with self._lock:
            if self._stop_timer is not None:
                self._stop_timer.cancel()
            self._stop_timer = timer
        timer.start()

    def stop(self) -> None:
        with self._lock:
            timer, self._stop_timer = self._stop_timer, None
        if timer is not None:
            timer.cancel()
        try:
            load_sounddevice().stop()
        except Exception as e:
            logger.warning(f"Error stopping sound playback: {e}")


class NullSoundPlayer:
    """Player used when sounds are disabled."""

    def play_once(self, clip: ClipRef) -> None:
        logger.debug(f"Sound disabled, skipping {clip.value}")

    def play_looping(self, clip: ClipRef, stop_after_ms: int) -> None:
        logger.debug(f"Sound disabled, skipping {clip.value} loop")
