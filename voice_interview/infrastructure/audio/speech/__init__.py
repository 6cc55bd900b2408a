"""Speech synthesis."""

from .tts import SpeechSynthesizer, TTS_MIME_TYPE

__all__ = ["SpeechSynthesizer", "TTS_MIME_TYPE"]
