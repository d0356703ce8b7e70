"""Audio subsystem data types and configuration."""

from __future__ import annotations

from dataclasses import dataclass

from ..constants import (
    FFT_SIZE,
    MAX_DECIBELS,
    MIN_DECIBELS,
    SAMPLE_RATE,
    SMOOTHING_TIME_CONSTANT,
)


@dataclass(frozen=True)
class AudioFormat:
    """PCM format of the capture stream."""
    sample_rate: int = SAMPLE_RATE
    channels: int = 1
    dtype: str = "float32"  # sounddevice dtype name


@dataclass(frozen=True)
class AnalyserConfig:
    """Spectrum analyser settings used to turn PCM into frequency frames."""
    fft_size: int = FFT_SIZE
    smoothing: float = SMOOTHING_TIME_CONSTANT
    min_decibels: float = MIN_DECIBELS
    max_decibels: float = MAX_DECIBELS
    max_blocks_queue: int = 64

    def __post_init__(self):
        if self.fft_size < 2 or self.fft_size & (self.fft_size - 1):
            raise ValueError("fft_size must be a power of two")
        if not 0.0 <= self.smoothing < 1.0:
            raise ValueError("smoothing must be in [0, 1)")
        if self.max_decibels <= self.min_decibels:
            raise ValueError("max_decibels must exceed min_decibels")

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2


@dataclass(frozen=True)
class CaptureConstraints:
    """
    Processing the capture backend is asked to turn off.

    Echo cancellation, noise suppression and auto gain all flatten a
    whistle's pure tone, so they are requested off.  Backends that have no
    such processing ignore the request.
    """
    echo_cancellation: bool = False
    noise_suppression: bool = False
    auto_gain_control: bool = False
