"""Interview loop components.

This module contains the turn-taking core of the voice interview: silence
detection, recording sessions, conversation state, prompt composition and the
orchestrator that sequences them.
"""

# Core orchestrator class
from .orchestrator import TurnOrchestrator

# Data models
from .models import (
    Turn, Role, InterviewPhase, OrchestratorState, CandidateFacts,
    InterviewProfile, SessionSummary, classify_phase, phase_for_history
)

# Errors
from .errors import (
    InterviewError, SessionDeniedError, DeviceUnavailableError, CaptureError,
    UtteranceError, EmptyUtteranceError, UtteranceTooShortError,
    EndpointError, MalformedReplyError, PlaybackError, FeedbackError
)

# Wire models and conversation state
from .schemas import (
    ConversationRequest, EndpointReply, UsageCheck, ConversationState,
    FeedbackItem, FeedbackReport, parse_endpoint_reply, parse_model_output, parse_feedback_output
)

# Turn-taking services
from .activity import VoiceActivityMonitor
from .facts import FactExtractor, FactRule, FACT_RULES
from .services import (
    UtteranceBuffer, RecordingSessionController, PlaybackController,
    PersistenceService, UsageService, FeedbackService
)

# Prompt composition
from .prompt_engine import PromptEngine, PromptFormatter
from .prompts import InterviewPrompts

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    EventType, InterviewEvent, SessionStartedEvent, SessionDeniedEvent,
    SessionStoppedEvent, RecordingStartedEvent, UtteranceCapturedEvent,
    TurnCompletedEvent, PhaseChangedEvent, FactsUpdatedEvent,
    PlaybackStartedEvent, PlaybackFinishedEvent, ErrorOccurredEvent, FeedbackSavedEvent
)

__all__ = [
    # Orchestrator
    "TurnOrchestrator",

    # Data models
    "Turn", "Role", "InterviewPhase", "OrchestratorState", "CandidateFacts",
    "InterviewProfile", "SessionSummary", "classify_phase", "phase_for_history",

    # Errors
    "InterviewError", "SessionDeniedError", "DeviceUnavailableError", "CaptureError",
    "UtteranceError", "EmptyUtteranceError", "UtteranceTooShortError",
    "EndpointError", "MalformedReplyError", "PlaybackError", "FeedbackError",

    # Schemas and state
    "ConversationRequest", "EndpointReply", "UsageCheck", "ConversationState",
    "FeedbackItem", "FeedbackReport", "parse_endpoint_reply", "parse_model_output", "parse_feedback_output",

    # Services
    "VoiceActivityMonitor", "FactExtractor", "FactRule", "FACT_RULES",
    "UtteranceBuffer", "RecordingSessionController", "PlaybackController",
    "PersistenceService", "UsageService", "FeedbackService",

    # Prompts
    "PromptEngine", "PromptFormatter", "InterviewPrompts",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics",
    "EventType", "InterviewEvent", "SessionStartedEvent", "SessionDeniedEvent",
    "SessionStoppedEvent", "RecordingStartedEvent", "UtteranceCapturedEvent",
    "TurnCompletedEvent", "PhaseChangedEvent", "FactsUpdatedEvent",
    "PlaybackStartedEvent", "PlaybackFinishedEvent", "ErrorOccurredEvent", "FeedbackSavedEvent",
]
