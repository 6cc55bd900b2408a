"""
Audio infrastructure for the interview loop.

- hardware: microphone capture and speaker playback
- processing: signal processing, level metering and WAV encoding
- speech: text-to-speech
"""

from .hardware import Microphone, Speaker
from .speech import SpeechSynthesizer

__all__ = ["Microphone", "Speaker", "SpeechSynthesizer"]
