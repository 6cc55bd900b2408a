"""
Interview Configuration System
==============================

This file contains ALL configuration for the voice interview loop.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the interviewer
# =============================================================================

# Either a Google Cloud project (in-process Gemini) or a remote endpoint URL
GOOGLE_CLOUD_PROJECT = "your-project-id"  # Change this!
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON
INTERVIEW_ENDPOINT_URL = None  # e.g. "https://example.com/api/interview-conversation"

# Session settings
WORKDIR = "./_interviews"
PLAN_LIMIT_MINUTES = 60
USAGE_CHECK_INTERVAL = 60.0

# Speech settings
ENABLE_TTS = True
TTS_VOICE = "ja-JP-Neural2-C"
LANGUAGE_CODE = "ja-JP"

# Turn taking
SILENCE_THRESHOLD = 0.05
SILENCE_DURATION_MS = 1500
ANALYSIS_INTERVAL_MS = 100

# Greeting spoken (as text) before the first recording session
INITIAL_GREETING = "本日はお時間をいただきありがとうございます。まずは簡単に自己紹介をお願いできますか？"

# Logging
LOG_FILE = "./_interviews/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Audio capture
AUDIO_SAMPLE_RATE = 44100
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
RECORDER_TIMESLICE_MS = 200
FRAME_MS = 50
TARGET_RMS = 0.06
LEVEL_GAIN = 4.0

# Payloads under this many bytes are treated as noise and never sent
MIN_UTTERANCE_BYTES = 1000
UTTERANCE_MIME_TYPE = "audio/wav"

# Playback
PLAYER_COMMANDS = (
    ("afplay",),
    ("aplay", "-q"),
    ("ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"),
)

# TTS technical
TTS_SPEAKING_RATE = 1.0
TTS_PITCH = 0.0
TTS_SAMPLE_RATE = 24000

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.0-flash"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 512
ENDPOINT_TIMEOUT = 60

# Placeholder stored when the endpoint returns no transcript
AUDIO_PLACEHOLDER = "[Audio message]"


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    google_cloud_project: Optional[str] = None
    google_application_credentials: Optional[str] = None
    endpoint_url: Optional[str] = None
    workdir: str = WORKDIR
    plan_limit_minutes: int = PLAN_LIMIT_MINUTES
    usage_check_interval: float = USAGE_CHECK_INTERVAL
    enable_tts: bool = ENABLE_TTS
    tts_voice: str = TTS_VOICE
    language_code: str = LANGUAGE_CODE
    silence_threshold: float = SILENCE_THRESHOLD
    silence_duration_ms: int = SILENCE_DURATION_MS
    analysis_interval_ms: int = ANALYSIS_INTERVAL_MS
    min_utterance_bytes: int = MIN_UTTERANCE_BYTES
    initial_greeting: str = INITIAL_GREETING
    model_name: str = MODEL_NAME
    vertex_location: str = VERTEX_LOCATION
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    @property
    def uses_remote_endpoint(self) -> bool:
        return bool(self.endpoint_url)


def get_config() -> Config:
    """Load configuration."""
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    credentials = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS
    endpoint_url = os.getenv("INTERVIEW_ENDPOINT_URL") or INTERVIEW_ENDPOINT_URL
    workdir = os.getenv("INTERVIEW_WORKDIR") or WORKDIR

    if project == "your-project-id":
        project = None
    if not project and not endpoint_url:
        raise ValueError(
            "Please set GOOGLE_CLOUD_PROJECT or INTERVIEW_ENDPOINT_URL in config.py or as environment variable"
        )

    plan_limit = PLAN_LIMIT_MINUTES
    raw_limit = os.getenv("INTERVIEW_PLAN_LIMIT_MINUTES")
    if raw_limit:
        try:
            plan_limit = int(raw_limit)
        except ValueError:
            raise ValueError(f"INTERVIEW_PLAN_LIMIT_MINUTES must be an integer, got {raw_limit!r}")

    return Config(
        google_cloud_project=project,
        google_application_credentials=credentials,
        endpoint_url=endpoint_url,
        workdir=workdir,
        plan_limit_minutes=plan_limit,
        log_file=os.path.join(workdir, "interview.log"),
    )


