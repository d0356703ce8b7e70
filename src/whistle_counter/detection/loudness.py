"""Loudness estimation from one frame of spectral magnitudes."""

from __future__ import annotations

import numpy as np

from ..constants import LOUDNESS_BOOST, MAX_BIN_MAGNITUDE


def estimate_loudness(
    bins: np.ndarray,
    max_magnitude: float = MAX_BIN_MAGNITUDE,
    boost: float = LOUDNESS_BOOST,
) -> float:
    """Return the loudness of a frequency frame on a 0-100 scale.

    The root-mean-square of the bin magnitudes rejects single-bin spikes
    while a near-pure tone, which concentrates its energy in a few adjacent
    bins, still dominates it.  The RMS is normalized by ``max_magnitude``,
    scaled by ``boost`` and clamped to 100.

    Raises:
        ValueError: if the frame contains non-finite values.
    """
    values = np.asarray(bins, dtype=np.float64).reshape(-1)
    if values.size == 0:
        return 0.0
    if not np.all(np.isfinite(values)):
        raise ValueError("frequency frame contains non-finite values")

    rms = float(np.sqrt(np.mean(values**2)))
    level = rms / max_magnitude * 100.0 * boost
    return float(min(max(level, 0.0), 100.0))
