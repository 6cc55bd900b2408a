"""
Basic audio processing functions including format conversions and level metering.
"""
import io
import wave
from math import gcd

import numpy as np
from scipy.signal import resample_poly

from ....config import TARGET_RMS, LEVEL_GAIN


def pcm16_to_float(data: bytes, channels: int = 1) -> np.ndarray:
    """Decode interleaved int16 PCM into float32 in [-1, 1], shape (n,) or (n, channels)."""
    samples = np.frombuffer(data, dtype=np.int16).astype(np.float32) / 32768.0
    if channels > 1:
        usable = len(samples) - (len(samples) % channels)
        samples = samples[:usable].reshape(-1, channels)
    return samples


def float_to_pcm16(x: np.ndarray) -> np.ndarray:
    return (np.clip(x, -1.0, 1.0) * 32767.0).astype(np.int16)


def stereo_to_mono(x: np.ndarray) -> np.ndarray:
    """Convert multi-channel audio to mono by averaging channels."""
    if x.ndim == 1:
        return x
    return np.mean(x, axis=1)


def remove_dc(x: np.ndarray) -> np.ndarray:
    """Remove DC offset from audio signal."""
    if x.size == 0:
        return x
    return x - np.mean(x)


def resample(x: np.ndarray, sr_in: int, sr_out: int) -> np.ndarray:
    """Polyphase resample between arbitrary integer rates."""
    if sr_in == sr_out or x.size == 0:
        return x.astype(np.float32)
    g = gcd(sr_in, sr_out)
    return resample_poly(x, up=sr_out // g, down=sr_in // g).astype(np.float32)


def normalize_audio(audio: np.ndarray, target_rms: float = TARGET_RMS) -> np.ndarray:
    """Normalize audio to target RMS level."""
    if audio.size == 0:
        return audio
    rms = float(np.sqrt(np.mean(audio**2)) + 1e-9)
    gain = min(20.0, target_rms / rms) if rms > 0 else 1.0
    return audio * gain


def level_from_pcm16(data: bytes, channels: int = 1, gain: float = LEVEL_GAIN) -> float:
    """Input level of one frame, scaled into [0, 1]."""
    if not data:
        return 0.0
    x = stereo_to_mono(pcm16_to_float(data, channels))
    if x.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(x**2)))
    return max(0.0, min(1.0, rms * gain))


def encode_wav(pcm16: np.ndarray, sr: int, channels: int = 1) -> bytes:
    """Encode PCM16 samples as an in-memory WAV file."""
    out = io.BytesIO()
    with wave.open(out, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sr)
        wf.writeframes(pcm16.tobytes())
    return out.getvalue()


def prepare_utterance(raw: bytes, sr_capture: int, sr_target: int, channels: int = 1) -> bytes:
    """Raw capture bytes to a mono, normalized, resampled WAV for upload."""
    x = stereo_to_mono(pcm16_to_float(raw, channels))
    x = remove_dc(x)
    x = resample(x, sr_capture, sr_target)
    x = normalize_audio(x)
    return encode_wav(float_to_pcm16(x), sr_target)
