"""Tuning constants shared across the detection pipeline."""

from __future__ import annotations

# Ticks per second of the sampling loop (one sample per display refresh).
TICK_RATE_HZ: int = 60

# Dead time after a counted whistle during which no new whistle is counted.
COOLDOWN_MS: int = 5000

# How long the target-reached alarm keeps looping.
ALARM_DURATION_MS: int = 10_000

# Analyser settings: 256-point transform gives 128 magnitude bins.
FFT_SIZE: int = 256
SAMPLE_RATE: int = 44_100
SMOOTHING_TIME_CONSTANT: float = 0.8
MIN_DECIBELS: float = -100.0
MAX_DECIBELS: float = -30.0

# Bins are byte-scaled, so 255 is the loudest representable magnitude.
MAX_BIN_MAGNITUDE: float = 255.0

# Headroom compensation applied to the spectral RMS.
LOUDNESS_BOOST: float = 2.5

# Leaky bucket rates (frames added / removed per observation).
SUSTAIN_GROWTH: int = 1
SUSTAIN_DECAY: int = 1

DEFAULT_SENSITIVITY_PERCENT: int = 50
DEFAULT_MIN_DURATION_SECONDS: float = 2.0
DEFAULT_TARGET_COUNT: int = 3

__all__ = [
    "TICK_RATE_HZ",
    "COOLDOWN_MS",
    "ALARM_DURATION_MS",
    "FFT_SIZE",
    "SAMPLE_RATE",
    "SMOOTHING_TIME_CONSTANT",
    "MIN_DECIBELS",
    "MAX_DECIBELS",
    "MAX_BIN_MAGNITUDE",
    "LOUDNESS_BOOST",
    "SUSTAIN_GROWTH",
    "SUSTAIN_DECAY",
    "DEFAULT_SENSITIVITY_PERCENT",
    "DEFAULT_MIN_DURATION_SECONDS",
    "DEFAULT_TARGET_COUNT",
]
