"""Microphone capture producing frequency frames for the detector."""

from __future__ import annotations

import logging
import queue
import threading
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from .backend import BackendUnavailable, load_sounddevice
from .types import AnalyserConfig, AudioFormat, CaptureConstraints

logger = logging.getLogger(__name__)


class CaptureAvailability(Enum):
    AVAILABLE = "available"
    PERMISSION_DENIED = "permission_denied"
    NO_DEVICE = "no_device"
    UNSUPPORTED = "unsupported"


class CaptureError(Exception):
    """Microphone could not be acquired."""

    availability = CaptureAvailability.UNSUPPORTED


class PermissionDenied(CaptureError):
    availability = CaptureAvailability.PERMISSION_DENIED


class NoDevice(CaptureError):
    availability = CaptureAvailability.NO_DEVICE


class Unsupported(CaptureError):
    availability = CaptureAvailability.UNSUPPORTED


_PERMISSION_MARKERS = ("permission", "not permitted", "access denied", "denied")
_NO_DEVICE_MARKERS = (
    "no input device",
    "no default input",
    "error querying device",
    "invalid device",
    "device unavailable",
    "no such device",
    "-9996",
    "-9985",
)


def classify_capture_error(exc: BaseException) -> CaptureAvailability:
    """Map a backend error onto the capture availability variants."""
    text = str(exc).lower()
    if any(marker in text for marker in _PERMISSION_MARKERS):
        return CaptureAvailability.PERMISSION_DENIED
    if any(marker in text for marker in _NO_DEVICE_MARKERS):
        return CaptureAvailability.NO_DEVICE
    return CaptureAvailability.UNSUPPORTED


def _capture_error(exc: BaseException) -> CaptureError:
    availability = classify_capture_error(exc)
    if availability is CaptureAvailability.PERMISSION_DENIED:
        return PermissionDenied(f"Microphone permission denied: {exc}")
    if availability is CaptureAvailability.NO_DEVICE:
        return NoDevice(f"No usable microphone found: {exc}")
    return Unsupported(f"Microphone capture is not supported: {exc}")


class CaptureHandle:
    """
    One open capture stream plus its analyser state.

    The sounddevice callback only queues raw blocks; spectrum analysis
    happens in ``AudioCapture.read_frame`` on the tick thread.
    """

    def __init__(self, analyser: AnalyserConfig, sample_rate: int):
        self.analyser = analyser
        self.sample_rate = sample_rate
        self.stream = None
        self.blocks: queue.Queue[np.ndarray] = queue.Queue(maxsize=analyser.max_blocks_queue)
        self.window = np.blackman(analyser.fft_size)
        self.buffer = np.zeros(analyser.fft_size, dtype=np.float32)
        self.smoothed = np.zeros(analyser.bin_count, dtype=np.float64)
        self.closed = False
        self._dropped = 0

    def on_audio(self, indata, frames, time_info, status) -> None:
        """Callback function for the sounddevice input stream."""
        if status:
            logger.warning(f"Audio callback status: {status}")

        if indata.ndim > 1:
            pcm = indata[:, 0].astype(np.float32)
        else:
            pcm = indata.astype(np.float32)

        try:
            self.blocks.put_nowait(pcm)
        except queue.Full:
            self._dropped += 1
            if self._dropped % 100 == 1:
                logger.warning(f"Capture queue is full, dropped {self._dropped} audio blocks so far")

    def drain(self) -> None:
        """Move queued blocks into the rolling analysis buffer."""
        size = self.analyser.fft_size
        while True:
            try:
                block = self.blocks.get_nowait()
            except queue.Empty:
                break
            if block.size >= size:
                self.buffer = block[-size:].copy()
            else:
                self.buffer = np.concatenate([self.buffer[block.size:], block])


def byte_frequency_data(
    samples: np.ndarray,
    window: np.ndarray,
    previous: np.ndarray,
    analyser: AnalyserConfig,
) -> Tuple[np.ndarray, np.ndarray]:
    """Compute byte-scaled spectral magnitudes the way a Web Audio analyser does.

    Args:
        samples: the last ``fft_size`` time-domain samples.
        window: Blackman window of ``fft_size`` points.
        previous: smoothed magnitudes from the previous frame.
        analyser: analyser settings.

    Returns:
        ``(bins, smoothed)`` where ``bins`` holds ``fft_size // 2`` values in
        ``[0, 255]`` and ``smoothed`` feeds the next call.
    """
    spectrum = np.fft.rfft(samples * window)[: analyser.bin_count]
    magnitude = np.abs(spectrum) / analyser.fft_size
    smoothed = analyser.smoothing * previous + (1.0 - analyser.smoothing) * magnitude
    with np.errstate(divide="ignore"):
        decibels = 20.0 * np.log10(smoothed)
    scale = 255.0 / (analyser.max_decibels - analyser.min_decibels)
    scaled = np.floor(scale * (decibels - analyser.min_decibels))
    bins = np.clip(np.nan_to_num(scaled, nan=0.0, neginf=0.0), 0, 255).astype(np.uint8)
    return bins, smoothed


class AudioCapture:
    """Opens the microphone through sounddevice and yields frequency frames."""

    def __init__(
        self,
        audio_format: AudioFormat = AudioFormat(),
        analyser: AnalyserConfig = AnalyserConfig(),
        device: Optional[int] = None,
    ):
        self._audio_format = audio_format
        self._analyser = analyser
        self._device = device
        self._lock = threading.Lock()

    def probe(self) -> CaptureAvailability:
        """Check whether the configured input could be opened, without opening it."""
        try:
            sd = load_sounddevice()
        except BackendUnavailable:
            return CaptureAvailability.UNSUPPORTED
        try:
            sd.check_input_settings(
                device=self._device,
                channels=self._audio_format.channels,
                samplerate=self._audio_format.sample_rate,
                dtype=self._audio_format.dtype,
            )
        except (sd.PortAudioError, ValueError) as e:
            return classify_capture_error(e)
        return CaptureAvailability.AVAILABLE

    def list_input_devices(self) -> List[Tuple[int, str]]:
        sd = load_sounddevice()
        devices = sd.query_devices()
        return [
            (index, device["name"])
            for index, device in enumerate(devices)
            if device.get("max_input_channels", 0) > 0
        ]

    def open(self, constraints: CaptureConstraints = CaptureConstraints()) -> CaptureHandle:
        """
        Start capturing from the microphone.

        Raises:
            PermissionDenied, NoDevice, Unsupported: the microphone could not
                be acquired.
        """
        try:
            sd = load_sounddevice()
        except BackendUnavailable as e:
            raise Unsupported(f"Audio backend unavailable: {e}") from e

        # PortAudio streams are unprocessed, so the constraints are already met.
        logger.debug(f"Capture constraints requested: {constraints}")

        handle = CaptureHandle(self._analyser, self._audio_format.sample_rate)
        try:
            sd.check_input_settings(
                device=self._device,
                channels=self._audio_format.channels,
                samplerate=self._audio_format.sample_rate,
                dtype=self._audio_format.dtype,
            )
            stream = sd.InputStream(
                callback=handle.on_audio,
                samplerate=self._audio_format.sample_rate,
                channels=self._audio_format.channels,
                dtype=self._audio_format.dtype,
                device=self._device,
            )
        except (sd.PortAudioError, ValueError) as e:
            error = _capture_error(e)
            logger.error(f"Failed to open microphone: {error}")
            raise error from e

        try:
            stream.start()
        except sd.PortAudioError as e:
            error = _capture_error(e)
            logger.error(f"Failed to start microphone stream: {error}")
            try:
                stream.close()
            except sd.PortAudioError as close_error:
                logger.warning(f"Error closing capture stream: {close_error}")
            raise error from e

        handle.stream = stream
        logger.info(
            f"Microphone capture started (device={self._device}, "
            f"rate={self._audio_format.sample_rate} Hz, fft={self._analyser.fft_size})"
        )
        return handle

    def read_frame(self, handle: CaptureHandle) -> np.ndarray:
        """Return the current frequency frame for ``handle``."""
        if handle.closed:
            raise RuntimeError("capture handle is closed")
        handle.drain()
        bins, handle.smoothed = byte_frequency_data(
            handle.buffer, handle.window, handle.smoothed, handle.analyser
        )
        return bins

    def close(self, handle: Optional[CaptureHandle]) -> None:
        """Release the microphone. Closing twice is harmless."""
        if handle is None:
            return
        with self._lock:
            if handle.closed:
                return
            handle.closed = True
        stream = handle.stream
        if stream is None:
            return
        try:
            if stream.active:
                stream.stop()
            stream.close()
        except Exception as e:
            logger.warning(f"Error closing capture stream: {e}")
        finally:
            logger.info("Microphone capture stopped")
