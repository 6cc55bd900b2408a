import io
import wave

import numpy as np

from voice_interview.infrastructure.audio.processing import (
    encode_wav, level_from_pcm16, pcm16_to_float, prepare_utterance, resample, stereo_to_mono
)


def _tone(seconds, sr, amplitude=0.5):
    t = np.arange(int(seconds * sr)) / sr
    return (amplitude * np.sin(2 * np.pi * 440 * t) * 32767).astype(np.int16)


def test_silence_has_zero_level():
    assert level_from_pcm16(b"") == 0.0
    assert level_from_pcm16(np.zeros(800, dtype=np.int16).tobytes()) == 0.0


def test_loud_frame_level_is_clamped():
    level = level_from_pcm16(_tone(0.05, 16000, amplitude=0.9).tobytes())
    assert 0.0 < level <= 1.0


def test_stereo_frames_are_averaged():
    stereo = np.array([[1000, -1000], [2000, -2000]], dtype=np.int16).tobytes()
    mono = stereo_to_mono(pcm16_to_float(stereo, channels=2))
    assert np.allclose(mono, 0.0)


def test_resample_changes_length():
    x = np.zeros(44100, dtype=np.float32)
    assert len(resample(x, 44100, 16000)) == 16000
    assert len(resample(x, 16000, 16000)) == 44100


def test_encode_wav_header():
    data = encode_wav(_tone(0.1, 16000), 16000)
    assert data[:4] == b"RIFF"
    with wave.open(io.BytesIO(data), "rb") as wf:
        assert wf.getframerate() == 16000
        assert wf.getnchannels() == 1
        assert wf.getnframes() == 1600


def test_prepare_utterance_produces_mono_target_rate_wav():
    raw = _tone(0.5, 44100).tobytes()
    data = prepare_utterance(raw, 44100, 16000)
    with wave.open(io.BytesIO(data), "rb") as wf:
        assert wf.getframerate() == 16000
        assert wf.getnchannels() == 1
        assert wf.getnframes() == 8000
