"""Audio processing: format conversions, level metering and WAV encoding."""

from .processing import (
    pcm16_to_float,
    float_to_pcm16,
    stereo_to_mono,
    remove_dc,
    resample,
    normalize_audio,
    level_from_pcm16,
    encode_wav,
    prepare_utterance,
)

__all__ = [
    "pcm16_to_float",
    "float_to_pcm16",
    "stereo_to_mono",
    "remove_dc",
    "resample",
    "normalize_audio",
    "level_from_pcm16",
    "encode_wav",
    "prepare_utterance",
]
