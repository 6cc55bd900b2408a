"""
Error types raised inside the turn loop.

Only DeviceUnavailableError is fatal (and only at session start); everything
else is caught by the orchestrator, surfaced, and followed by a fresh
recording session.
"""


class InterviewError(Exception):
    """Base class for turn-loop errors."""

    component = "interview"


class SessionDeniedError(InterviewError):
    """Usage limit reached; the session may not start."""

    component = "usage"

    def __init__(self, current_usage: int, plan_limit: int):
        self.current_usage = current_usage
        self.plan_limit = plan_limit
        super().__init__(f"月間利用制限に達しました ({current_usage}/{plan_limit}分)")


class DeviceUnavailableError(InterviewError):
    """Microphone could not be opened."""

    component = "device"


class CaptureError(InterviewError):
    """Recorder failed mid-session."""

    component = "capture"


class UtteranceError(InterviewError):
    """Captured payload failed local validation."""

    component = "utterance"


class EmptyUtteranceError(UtteranceError):
    def __init__(self):
        super().__init__("Empty audio data")


class UtteranceTooShortError(UtteranceError):
    def __init__(self, size: int, minimum: int):
        self.size = size
        self.minimum = minimum
        super().__init__(f"Audio data too small - please speak longer ({size} < {minimum} bytes)")


class EndpointError(InterviewError):
    """Conversation endpoint failed or returned a non-success status."""

    component = "endpoint"


class MalformedReplyError(EndpointError):
    """Endpoint answered but the body is unusable."""


class PlaybackError(InterviewError):
    component = "playback"


class FeedbackError(InterviewError):
    """Post-interview feedback could not be produced."""

    component = "feedback"
