"""Audio device wrappers: PyAudio microphone and subprocess speaker."""

from .microphone import Microphone, Recorder
from .speaker import Speaker

__all__ = ["Microphone", "Recorder", "Speaker"]
