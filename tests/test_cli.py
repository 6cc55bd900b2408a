import pytest

from voice_interview.__main__ import parse_args, apply_overrides
from voice_interview.config import Config


def test_defaults_leave_config_untouched():
    options = parse_args([])
    config = Config()
    assert apply_overrides(config, options) is config
    assert options["profile"] == {}


def test_flags_and_values():
    options = parse_args([
        "--text", "--threshold=0.2", "--silence-ms=900",
        "--session=abc", "--company=Acme", "--focus=final",
    ])
    config = apply_overrides(Config(), options)
    assert config.enable_tts is False
    assert config.silence_threshold == 0.2
    assert config.silence_duration_ms == 900
    assert options["session"] == "abc"
    assert options["profile"] == {"company_name": "Acme", "interview_focus": "final"}


def test_threshold_is_clamped():
    assert parse_args(["--threshold=3"])["threshold"] == 1.0
    assert parse_args(["--threshold=-1"])["threshold"] == 0.0


def test_tts_flag_wins_when_last():
    assert parse_args(["--no-tts", "--tts"])["use_tts"] is True


@pytest.mark.parametrize("arg", ["--threshold=loud", "--silence-ms=soon", "--silence-ms=0"])
def test_invalid_values_raise(arg):
    with pytest.raises(ValueError):
        parse_args([arg])


def test_feedback_flag():
    assert parse_args([])["feedback"] is False
    options = parse_args(["--feedback", "--session=abc"])
    assert options["feedback"] is True
    assert options["session"] == "abc"
