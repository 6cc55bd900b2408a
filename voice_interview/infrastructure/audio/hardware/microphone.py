"""
PyAudio microphone with a level meter and chunked recorder sessions.

The PyAudio callback runs on the audio thread. It only updates the level and
hands finished chunks to the event loop with ``call_soon_threadsafe``; all
recorder callbacks therefore run on the loop thread.
"""
import asyncio
import logging
import threading
from typing import Callable, Optional

from ..processing import level_from_pcm16, prepare_utterance
from ....config import (
    AUDIO_SAMPLE_RATE, SAMPLE_RATE_TARGET, CHANNELS, FRAME_MS,
    RECORDER_TIMESLICE_MS, UTTERANCE_MIME_TYPE
)
from ....interview.errors import DeviceUnavailableError, CaptureError
from ....utils import with_suppressed_audio_warnings

logger = logging.getLogger("microphone")


class Recorder:
    """One recording session: accumulates frames and emits timesliced chunks."""

    def __init__(self,
                 loop: asyncio.AbstractEventLoop,
                 on_chunk: Callable[[bytes], None],
                 on_error: Callable[[Exception], None],
                 chunk_bytes: int):
        self.loop = loop
        self.on_chunk = on_chunk
        self.on_error = on_error
        self.chunk_bytes = chunk_bytes
        self.active = True
        self._pending = bytearray()
        self._lock = threading.Lock()

    def feed(self, data: bytes) -> None:
        """Audio thread: collect a frame, ship a chunk once a timeslice is full."""
        with self._lock:
            if not self.active:
                return
            self._pending.extend(data)
            if len(self._pending) < self.chunk_bytes:
                return
            chunk = bytes(self._pending)
            self._pending.clear()
        self.loop.call_soon_threadsafe(self.on_chunk, chunk)

    def fail(self, error: Exception) -> None:
        if self.active:
            self.loop.call_soon_threadsafe(self.on_error, error)

    def stop(self) -> None:
        """
        Loop thread: queue the partial tail behind any chunks already handed
        over, then go quiet. Callers yield once to let the queue drain.
        """
        with self._lock:
            if not self.active:
                return
            self.active = False
            tail = bytes(self._pending)
            self._pending.clear()
        if tail:
            self.loop.call_soon_threadsafe(self.on_chunk, tail)


class Microphone:
    """Input device wrapper used by the recording session controller."""

    mime_type = UTTERANCE_MIME_TYPE

    def __init__(self,
                 device_index: Optional[int] = None,
                 sample_rate: int = AUDIO_SAMPLE_RATE,
                 channels: int = CHANNELS,
                 frame_ms: int = FRAME_MS,
                 timeslice_ms: int = RECORDER_TIMESLICE_MS,
                 target_rate: int = SAMPLE_RATE_TARGET):
        self.device_index = device_index
        self.sample_rate = sample_rate
        self.channels = channels
        self.frame_samples = int(sample_rate * frame_ms / 1000)
        self.chunk_bytes = int(sample_rate * timeslice_ms / 1000) * channels * 2
        self.target_rate = target_rate

        self._pa = None
        self._stream = None
        self._pyaudio = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._recorder: Optional[Recorder] = None
        self._level = 0.0

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    @with_suppressed_audio_warnings
    def open(self) -> None:
        """
        Open the input stream.

        Raises:
            DeviceUnavailableError: If PyAudio is missing or the device cannot be opened
        """
        if self._stream is not None:
            return
        self._loop = asyncio.get_running_loop()
        try:
            import pyaudio
        except ImportError as e:
            raise DeviceUnavailableError(f"pyaudio is not installed: {e}")

        self._pyaudio = pyaudio
        self._pa = pyaudio.PyAudio()
        try:
            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.frame_samples,
                stream_callback=self._callback,
            )
            self._stream.start_stream()
        except Exception as e:
            self._pa.terminate()
            self._pa = None
            self._stream = None
            raise DeviceUnavailableError(f"Could not open microphone: {e}")

        logger.info(f"Microphone open: device={self.device_index} {self.sample_rate}Hz x{self.channels}")

    def _callback(self, in_data, frame_count, time_info, status):
        if status:
            logger.debug(f"PyAudio status flags: {status}")
        self._level = level_from_pcm16(in_data, self.channels)
        recorder = self._recorder
        if recorder is not None:
            try:
                recorder.feed(in_data)
            except RuntimeError as e:
                # Loop closed under us
                logger.debug(f"Dropped frame: {e}")
        return (None, self._pyaudio.paContinue)

    def level(self) -> float:
        return self._level

    def start_recorder(self, on_chunk, on_error) -> Recorder:
        if self._stream is None or self._loop is None:
            raise CaptureError("Microphone is not open")
        recorder = Recorder(self._loop, on_chunk, on_error, self.chunk_bytes)
        self._recorder = recorder
        return recorder

    def encode(self, pcm: bytes) -> bytes:
        """Turn a frozen utterance into the WAV payload sent upstream."""
        return prepare_utterance(pcm, self.sample_rate, self.target_rate, self.channels)

    @with_suppressed_audio_warnings
    def close(self) -> None:
        self._recorder = None
        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except Exception as e:
                logger.warning(f"Error closing stream: {e}")
            self._stream = None
        if self._pa is not None:
            self._pa.terminate()
            self._pa = None
        self._level = 0.0
        logger.info("Microphone closed")
