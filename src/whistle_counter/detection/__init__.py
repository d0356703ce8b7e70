"""Detection pipeline: loudness estimation and sustain detection."""

from .loudness import estimate_loudness
from .sustain import SustainDetector, required_frames

__all__ = ["estimate_loudness", "SustainDetector", "required_frames"]
