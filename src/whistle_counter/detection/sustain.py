"""Leaky-bucket sustain detector."""

from __future__ import annotations

import logging

from ..constants import SUSTAIN_DECAY, SUSTAIN_GROWTH, TICK_RATE_HZ

logger = logging.getLogger(__name__)


def required_frames(min_duration_seconds: float, tick_rate_hz: float = TICK_RATE_HZ) -> int:
    """Number of net loud ticks that approximates ``min_duration_seconds``."""
    return int(round(min_duration_seconds * tick_rate_hz))


class SustainDetector:
    """
    Decides whether loudness has been above threshold for long enough.

    Each loud observation adds ``growth`` to the bucket and each quiet one
    drains ``decay`` (never below zero).  Brief dips inside one blast only
    cost a little progress, while short bursts drain back to zero.  A tone is
    sustained once the bucket holds more than ``required_frames``.
    """

    def __init__(
        self,
        required_frames: int,
        growth: int = SUSTAIN_GROWTH,
        decay: int = SUSTAIN_DECAY,
    ):
        if growth < 1:
            raise ValueError("growth must be at least 1")
        if decay < 0:
            raise ValueError("decay must not be negative")
        self.required_frames = required_frames
        self._growth = growth
        self._decay = decay
        self._loud_frame_count = 0

    @property
    def loud_frame_count(self) -> int:
        return self._loud_frame_count

    def observe(self, loudness: float, threshold_percent: float) -> tuple[int, bool]:
        """Feed one loudness sample; returns ``(loud_frame_count, is_sustained)``."""
        if loudness > threshold_percent:
            self._loud_frame_count += self._growth
        else:
            self._loud_frame_count = max(0, self._loud_frame_count - self._decay)
        return self._loud_frame_count, self._loud_frame_count > self.required_frames

    def reset(self) -> None:
        if self._loud_frame_count:
            logger.debug(f"Sustain detector reset from {self._loud_frame_count} frames")
        self._loud_frame_count = 0
