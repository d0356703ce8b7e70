"""Access to the sounddevice backend."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class BackendUnavailable(RuntimeError):
    """Raised when the PortAudio backend cannot be loaded."""


def load_sounddevice():
    """Import sounddevice; importing fails with OSError when PortAudio is missing."""
    try:
        import sounddevice as sd
    except (ImportError, OSError) as e:
        logger.error(f"Audio backend unavailable: {e}")
        raise BackendUnavailable(str(e)) from e
    return sd
