"""
Voice activity monitoring for turn segmentation.

The monitor samples an input level on a fixed interval and decides when the
candidate has finished speaking. A silence countdown is armed only on a
speaking-to-silence edge, after speech has been heard in the current recording
window, with audio buffered, and while the orchestrator is free to take a turn.
"""
import asyncio
import logging
from typing import Callable, Optional

from ..config import SILENCE_THRESHOLD, SILENCE_DURATION_MS, ANALYSIS_INTERVAL_MS

logger = logging.getLogger("activity")


class VoiceActivityMonitor:
    """
    Speaking/silence classifier with a single pending silence countdown.

    All methods must be called from the event loop thread.
    """

    def __init__(self,
                 level_source: Callable[[], float],
                 on_silence_timeout: Callable[[], None],
                 is_busy: Callable[[], bool] = lambda: False,
                 has_buffered_audio: Callable[[], bool] = lambda: True,
                 threshold: float = SILENCE_THRESHOLD,
                 interval_ms: int = ANALYSIS_INTERVAL_MS,
                 silence_duration_ms: int = SILENCE_DURATION_MS):
        self.level_source = level_source
        self.on_silence_timeout = on_silence_timeout
        self.is_busy = is_busy
        self.has_buffered_audio = has_buffered_audio
        self.threshold = threshold
        self.interval_ms = interval_ms
        self.silence_duration_ms = silence_duration_ms

        self.has_spoken = False
        self.was_speaking = False
        self.last_level = 0.0
        self._countdown: Optional[asyncio.TimerHandle] = None
        self._countdown_started_at: Optional[float] = None

    @property
    def countdown_pending(self) -> bool:
        return self._countdown is not None

    @property
    def silence_elapsed_ms(self) -> int:
        """Milliseconds since the countdown armed; 0 when none is pending."""
        if self._countdown_started_at is None:
            return 0
        elapsed = asyncio.get_running_loop().time() - self._countdown_started_at
        return int(min(elapsed * 1000, self.silence_duration_ms))

    def observe(self, level: float) -> Optional[bool]:
        """
        Classify one level sample and update countdown state.

        Args:
            level: Input level, clamped to [0, 1]

        Returns:
            True when speaking, False when silent, None when the sample was
            ignored because the orchestrator is busy
        """
        if self.is_busy():
            return None

        level = max(0.0, min(1.0, float(level)))
        self.last_level = level
        speaking = level > self.threshold

        if speaking:
            if not self.has_spoken:
                logger.debug(f"Speech detected (level={level:.3f})")
            self.has_spoken = True
            self.cancel_countdown()
        elif (self.has_spoken and self.was_speaking
              and not self.countdown_pending and self.has_buffered_audio()):
            self._arm_countdown()

        self.was_speaking = speaking
        return speaking

    def sample(self) -> Optional[bool]:
        try:
            level = self.level_source()
        except Exception as e:
            logger.warning(f"Level source failed: {e}")
            level = 0.0
        return self.observe(level)

    async def run(self) -> None:
        """Sample until cancelled."""
        interval = self.interval_ms / 1000.0
        logger.debug(f"Monitor running every {self.interval_ms}ms, threshold {self.threshold}")
        while True:
            self.sample()
            await asyncio.sleep(interval)

    def reset(self) -> None:
        """Forget speech history; called whenever a new recording window opens."""
        self.cancel_countdown()
        self.has_spoken = False
        self.was_speaking = False
        self.last_level = 0.0

    def cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            logger.debug("Silence countdown cancelled")
        self._countdown = None
        self._countdown_started_at = None

    def _arm_countdown(self) -> None:
        loop = asyncio.get_running_loop()
        self._countdown_started_at = loop.time()
        handle = loop.call_later(self.silence_duration_ms / 1000.0, self._on_countdown_expired)
        self._countdown = handle
        logger.debug(f"Silence countdown armed ({self.silence_duration_ms}ms)")

    def _on_countdown_expired(self) -> None:
        self._countdown = None
        self._countdown_started_at = None
        if self.is_busy():
            logger.debug("Countdown expired while busy; ignored")
            return
        logger.info("Silence detected, closing utterance")
        self.on_silence_timeout()
