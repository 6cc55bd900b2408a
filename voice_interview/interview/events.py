"""
Event-driven notifications for the interview loop.

The orchestrator emits these for UI, logging and metrics. Handlers run
synchronously on the event loop thread; a failing handler is logged and never
affects the loop.
"""
import logging
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    SESSION_STARTED = "session_started"
    SESSION_DENIED = "session_denied"
    SESSION_STOPPED = "session_stopped"
    RECORDING_STARTED = "recording_started"
    UTTERANCE_CAPTURED = "utterance_captured"
    TURN_COMPLETED = "turn_completed"
    PHASE_CHANGED = "phase_changed"
    FACTS_UPDATED = "facts_updated"
    PLAYBACK_STARTED = "playback_started"
    PLAYBACK_FINISHED = "playback_finished"
    ERROR_OCCURRED = "error_occurred"
    FEEDBACK_SAVED = "feedback_saved"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    session_ref: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionStartedEvent(InterviewEvent):
    def __init__(self, session_ref: str, timestamp: float, greeting: str, question_count: int):
        super().__init__(
            event_type=EventType.SESSION_STARTED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={"greeting": greeting, "question_count": question_count}
        )


@dataclass
class SessionDeniedEvent(InterviewEvent):
    """Event fired when the usage limit blocks a new session."""
    def __init__(self, session_ref: str, timestamp: float, current_usage: int, plan_limit: int):
        super().__init__(
            event_type=EventType.SESSION_DENIED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={"current_usage": current_usage, "plan_limit": plan_limit}
        )


@dataclass
class SessionStoppedEvent(InterviewEvent):
    def __init__(self, session_ref: str, timestamp: float, reason: str,
                 billed_minutes: int, turn_count: int):
        super().__init__(
            event_type=EventType.SESSION_STOPPED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={
                "reason": reason,
                "billed_minutes": billed_minutes,
                "turn_count": turn_count
            }
        )


@dataclass
class RecordingStartedEvent(InterviewEvent):
    def __init__(self, session_ref: str, timestamp: float, recording_id: int):
        super().__init__(
            event_type=EventType.RECORDING_STARTED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={"recording_id": recording_id}
        )


@dataclass
class UtteranceCapturedEvent(InterviewEvent):
    """Event fired when silence closes an utterance and it is sent off."""
    def __init__(self, session_ref: str, timestamp: float, recording_id: int, size_bytes: int):
        super().__init__(
            event_type=EventType.UTTERANCE_CAPTURED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={"recording_id": recording_id, "size_bytes": size_bytes}
        )


@dataclass
class TurnCompletedEvent(InterviewEvent):
    """Event fired when a user/assistant exchange is appended to history."""
    def __init__(self, session_ref: str, timestamp: float, turn_idx: int,
                 transcript: Optional[str], reply_text: str, has_audio: bool):
        super().__init__(
            event_type=EventType.TURN_COMPLETED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={
                "turn_idx": turn_idx,
                "transcript": transcript,
                "reply_text": reply_text,
                "has_audio": has_audio
            }
        )


@dataclass
class PhaseChangedEvent(InterviewEvent):
    def __init__(self, session_ref: str, timestamp: float, previous: str, current: str):
        super().__init__(
            event_type=EventType.PHASE_CHANGED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={"previous": previous, "current": current}
        )


@dataclass
class FactsUpdatedEvent(InterviewEvent):
    def __init__(self, session_ref: str, timestamp: float, kinds: List[str], facts: Dict[str, Any]):
        super().__init__(
            event_type=EventType.FACTS_UPDATED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={"kinds": kinds, "facts": facts}
        )


@dataclass
class PlaybackStartedEvent(InterviewEvent):
    def __init__(self, session_ref: str, timestamp: float, mime_type: str, size_bytes: int):
        super().__init__(
            event_type=EventType.PLAYBACK_STARTED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={"mime_type": mime_type, "size_bytes": size_bytes}
        )


@dataclass
class PlaybackFinishedEvent(InterviewEvent):
    def __init__(self, session_ref: str, timestamp: float, error: Optional[str]):
        super().__init__(
            event_type=EventType.PLAYBACK_FINISHED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={"error": error}
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    """Event fired when an error occurs."""
    def __init__(self, session_ref: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


@dataclass
class FeedbackSavedEvent(InterviewEvent):
    def __init__(self, session_ref: str, timestamp: float, record_id: Optional[str], item_count: int):
        super().__init__(
            event_type=EventType.FEEDBACK_SAVED,
            session_ref=session_ref,
            timestamp=timestamp,
            data={"record_id": record_id, "item_count": item_count}
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for interview system communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug(f"Unsubscribed handler from {event_type}")
        else:
            logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        Args:
            event: Event to emit
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_ref}")

        for handler in self._handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in self._global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: InterviewEvent) -> None:
        self.logger.info(f"Event: {event.event_type} | Session: {event.session_ref} | Data: {event.data}")


class InterviewMetrics:
    """Collects counters from interview events."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.sessions_started = 0
        self.sessions_denied = 0
        self.sessions_stopped = 0
        self.utterances_captured = 0
        self.total_turns = 0
        self.phase_changes = 0
        self.playbacks = 0
        self.errors_occurred = 0
        self.feedback_reports = 0
        self.billed_minutes = 0

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == EventType.SESSION_STARTED:
            self.sessions_started += 1
        elif event.event_type == EventType.SESSION_DENIED:
            self.sessions_denied += 1
        elif event.event_type == EventType.SESSION_STOPPED:
            self.sessions_stopped += 1
            self.billed_minutes += event.data.get("billed_minutes", 0)
        elif event.event_type == EventType.UTTERANCE_CAPTURED:
            self.utterances_captured += 1
        elif event.event_type == EventType.TURN_COMPLETED:
            self.total_turns += 1
        elif event.event_type == EventType.PHASE_CHANGED:
            self.phase_changes += 1
        elif event.event_type == EventType.PLAYBACK_STARTED:
            self.playbacks += 1
        elif event.event_type == EventType.ERROR_OCCURRED:
            self.errors_occurred += 1
        elif event.event_type == EventType.FEEDBACK_SAVED:
            self.feedback_reports += 1

    def get_metrics(self) -> Dict[str, int]:
        return {
            "sessions_started": self.sessions_started,
            "sessions_denied": self.sessions_denied,
            "sessions_stopped": self.sessions_stopped,
            "utterances_captured": self.utterances_captured,
            "total_turns": self.total_turns,
            "phase_changes": self.phase_changes,
            "playbacks": self.playbacks,
            "errors_occurred": self.errors_occurred,
            "feedback_reports": self.feedback_reports,
            "billed_minutes": self.billed_minutes,
        }
