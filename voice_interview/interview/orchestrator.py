"""
Turn-taking orchestrator for the voice interview.

One authoritative state value drives the loop:

    IDLE -> RECORDING -> PROCESSING -> (PLAYING | RECORDING)

Everything runs on the asyncio event loop. Device chunks arrive through
``call_soon_threadsafe``, the silence countdown is a ``call_later`` timer, the
endpoint round trip and playback are awaited in tasks. Every asynchronous
completion carries the epoch it started in; after ``stop()`` the epoch moves on
and late completions are dropped.
"""
import asyncio
import logging
import time
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple

from .activity import VoiceActivityMonitor
from .errors import (
    InterviewError, DeviceUnavailableError, CaptureError,
    EmptyUtteranceError, UtteranceTooShortError, MalformedReplyError, PlaybackError,
    SessionDeniedError
)
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    SessionStartedEvent, SessionDeniedEvent, SessionStoppedEvent,
    RecordingStartedEvent, UtteranceCapturedEvent, TurnCompletedEvent,
    PhaseChangedEvent, FactsUpdatedEvent, PlaybackStartedEvent,
    PlaybackFinishedEvent, ErrorOccurredEvent, FeedbackSavedEvent
)
from .models import (
    Turn, InterviewPhase, CandidateFacts, InterviewProfile,
    OrchestratorState, SessionSummary
)
from .prompt_engine import PromptEngine, PromptFormatter
from .schemas import ConversationRequest, ConversationState, EndpointReply, parse_endpoint_reply
from .services import (
    UtteranceBuffer, RecordingSessionController, PlaybackController,
    PersistenceService, UsageService, FeedbackService
)
from ..config import Config, AUDIO_PLACEHOLDER, UTTERANCE_MIME_TYPE

logger = logging.getLogger("orchestrator")


class TurnOrchestrator:
    """
    Voice interview loop using service-based architecture.

    Collaborators are injected: the conversation endpoint, a microphone and a
    speaker, plus optional session store, usage ledger and feedback generator.
    Store and ledger failures are logged and never stop the interview.
    """

    def __init__(self,
                 endpoint,
                 microphone,
                 speaker,
                 store=None,
                 usage=None,
                 config: Optional[Config] = None,
                 event_bus: Optional[InterviewEventBus] = None,
                 clock: Callable[[], float] = time.time,
                 feedback_generator=None):
        self.config = config or Config()
        self.endpoint = endpoint
        self.microphone = microphone
        self.clock = clock

        # Initialize event system
        self.event_bus = event_bus or InterviewEventBus()
        self.metrics = InterviewMetrics()
        self.event_bus.subscribe_all(EventLogger().handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        self.buffer = UtteranceBuffer()
        self.recorder = RecordingSessionController(
            microphone, self.buffer,
            can_accept=lambda: self.state == OrchestratorState.RECORDING,
            on_error=self._on_capture_error,
        )
        self.playback = PlaybackController(speaker)
        self.persistence = PersistenceService(store) if store is not None else None
        self.usage = UsageService(usage) if usage is not None else None
        self.feedback: Optional[FeedbackService] = None
        if feedback_generator is not None and self.persistence is not None:
            self.feedback = FeedbackService(feedback_generator, self.persistence)

        self.conversation = ConversationState()
        self.prompt_engine = PromptEngine()
        self.monitor: Optional[VoiceActivityMonitor] = None

        self.state = OrchestratorState.IDLE
        self.session_ref: Optional[str] = None
        self.started_at: Optional[float] = None
        self.last_error: Optional[Exception] = None
        self.errors: List[Exception] = []
        self.network_calls = 0

        self._epoch = 0
        self._monitor_task: Optional[asyncio.Task] = None
        self._watchdog_task: Optional[asyncio.Task] = None
        self._processing_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.state != OrchestratorState.IDLE

    @property
    def is_recording(self) -> bool:
        return self.state == OrchestratorState.RECORDING

    @property
    def is_processing(self) -> bool:
        return self.state == OrchestratorState.PROCESSING

    @property
    def is_playing(self) -> bool:
        return self.state == OrchestratorState.PLAYING

    @property
    def session_id(self) -> int:
        return self.recorder.session_id

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def history(self) -> Tuple[Turn, ...]:
        return tuple(self.conversation.history)

    @property
    def phase(self) -> InterviewPhase:
        return self.conversation.phase

    @property
    def facts(self) -> CandidateFacts:
        return self.conversation.facts

    @property
    def elapsed_seconds(self) -> float:
        if self.started_at is None:
            return 0.0
        return max(0.0, self.clock() - self.started_at)

    @property
    def silence_elapsed_ms(self) -> int:
        if self.monitor is None:
            return 0
        return self.monitor.silence_elapsed_ms

    def snapshot(self) -> Dict[str, Any]:
        """Presentation view of the loop."""
        return {
            "state": self.state.value,
            "session_ref": self.session_ref,
            "session_id": self.session_id,
            "phase": self.phase.value,
            "phase_label": self.phase.label,
            "exchanges": self.conversation.exchange_count,
            "facts": self.facts.to_dict(),
            "silence_elapsed_ms": self.silence_elapsed_ms,
            "elapsed_seconds": round(self.elapsed_seconds, 1),
            "last_error": str(self.last_error) if self.last_error else None,
        }

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start(self,
                    profile: Optional[InterviewProfile] = None,
                    session_ref: Optional[str] = None) -> bool:
        """
        Start an interview session.

        Args:
            profile: Optional applicant context rendered into every prompt
            session_ref: Identifier used with the session store

        Returns:
            True when the loop is recording, False when the start was refused
        """
        if self.is_active:
            logger.warning("Start requested while a session is active")
            return False

        self.session_ref = session_ref or f"session_{int(self.clock())}"
        self.errors = []
        self.last_error = None

        if self.usage is not None:
            try:
                self.usage.ensure_can_start()
            except SessionDeniedError as e:
                logger.warning(f"Session denied: {e}")
                self._record_error(e)
                self._emit(SessionDeniedEvent(
                    self.session_ref, self.clock(), e.current_usage, e.plan_limit
                ))
                return False
            except Exception as e:
                logger.error(f"Usage check failed: {e}")
                self._record_error(e, component="usage")
                return False

        try:
            self.recorder.open()
        except DeviceUnavailableError as e:
            logger.error(f"Microphone unavailable: {e}")
            self._record_error(e)
            return False
        except Exception as e:
            logger.error(f"Microphone unavailable: {e}")
            self._record_error(DeviceUnavailableError(str(e)))
            return False

        self._epoch += 1
        epoch = self._epoch

        self.conversation.reset()
        self.conversation.add_greeting(self.config.initial_greeting)

        questions = self.persistence.load_questions(self.session_ref) if self.persistence else []
        self.prompt_engine = PromptEngine(profile, questions)
        if questions:
            logger.info(f"Loaded {len(questions)} prepared questions")

        self.monitor = VoiceActivityMonitor(
            level_source=self.microphone.level,
            on_silence_timeout=partial(self._on_silence_timeout, epoch),
            is_busy=lambda: self.state != OrchestratorState.RECORDING,
            has_buffered_audio=lambda: not self.buffer.is_empty,
            threshold=self.config.silence_threshold,
            interval_ms=self.config.analysis_interval_ms,
            silence_duration_ms=self.config.silence_duration_ms,
        )

        # Nothing is billed until the first recording is live
        self.state = OrchestratorState.RECORDING
        try:
            recording_id = self.recorder.start_session()
        except Exception as e:
            logger.error(f"Could not start recording: {e}")
            self.state = OrchestratorState.IDLE
            self._epoch += 1
            self._record_error(CaptureError(str(e)))
            self.recorder.release()
            return False

        self.started_at = self.clock()
        self._emit(SessionStartedEvent(
            self.session_ref, self.started_at, self.config.initial_greeting, len(questions)
        ))
        self._emit(RecordingStartedEvent(self.session_ref, self.clock(), recording_id))

        loop = asyncio.get_running_loop()
        self._monitor_task = loop.create_task(self.monitor.run())
        if self.usage is not None and self.config.usage_check_interval > 0:
            self._watchdog_task = loop.create_task(self._watch_usage(epoch))

        logger.info(f"Session {self.session_ref} started")
        return True

    def stop(self, reason: str = "user") -> Optional[SessionSummary]:
        """
        Tear down the session and report usage.

        In-flight endpoint requests are left to finish; their results are
        discarded.

        Returns:
            Summary of the finished session, or None if nothing was running
        """
        if not self.is_active:
            return None

        self.state = OrchestratorState.IDLE
        self._epoch += 1

        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        for task in (self._monitor_task, self._watchdog_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._monitor_task = None
        self._watchdog_task = None
        self._processing_task = None

        if self.monitor is not None:
            self.monitor.reset()
        self.playback.stop()
        self.recorder.release()

        elapsed = self.elapsed_seconds
        if self.usage is not None:
            billed = self.usage.report(elapsed)
        else:
            billed = UsageService.billable_minutes(elapsed)

        history = self.conversation.history
        if self.persistence is not None and self.conversation.user_turn_count > 0:
            self.persistence.save_transcript(
                PromptFormatter.format_transcript_for_storage(history), self.session_ref
            )

        summary = SessionSummary(
            session_ref=self.session_ref,
            elapsed_seconds=elapsed,
            billed_minutes=billed,
            turn_count=len(history),
            phase=self.conversation.phase,
            facts=self.conversation.facts,
            recording_sessions=self.recorder.sessions_started,
            errors=[str(e) for e in self.errors],
        )
        self._emit(SessionStoppedEvent(
            self.session_ref, self.clock(), reason, billed, len(history)
        ))
        self.started_at = None
        logger.info(f"Session {self.session_ref} stopped ({reason}), {billed} minute(s)")
        return summary

    async def generate_feedback(self, session_ref: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Evaluate a finished session's saved transcript and store the report.

        Failures are recorded like any other error and never raised.

        Returns:
            The stored report (camelCase keys), or None
        """
        if self.feedback is None:
            logger.warning("Feedback requested but no generator or store is configured")
            return None
        if self.is_active:
            logger.warning("Feedback requested while the session is still running")
            return None

        ref = session_ref or self.session_ref
        if ref is None:
            logger.warning("Feedback requested before any session")
            return None
        try:
            data, record_id = await asyncio.to_thread(self.feedback.generate, ref)
        except Exception as e:
            logger.error(f"Feedback failed for {ref}: {e}")
            self._record_error(e, component="feedback")
            return None

        self._emit(FeedbackSavedEvent(ref, self.clock(), record_id, len(data.get("feedback", []))))
        return data

    # ------------------------------------------------------------------
    # Turn processing
    # ------------------------------------------------------------------

    def _on_silence_timeout(self, epoch: int) -> None:
        if epoch != self._epoch or self.state != OrchestratorState.RECORDING:
            logger.debug("Stale silence timeout ignored")
            return
        if self._processing_task is not None and not self._processing_task.done():
            return
        self._processing_task = asyncio.get_running_loop().create_task(self.process_utterance())

    async def process_utterance(self) -> bool:
        """
        Send the buffered utterance and apply the reply.

        Returns:
            True when a reply was applied to the conversation
        """
        if self.state != OrchestratorState.RECORDING:
            logger.debug(f"Utterance ignored in state {self.state.value}")
            return False

        epoch = self._epoch
        recording_id = self.recorder.session_id
        # The recorder's queued chunks and tail land on the next loop pass; keep the gate open until then
        self.recorder.stop_session()
        await asyncio.sleep(0)
        if (epoch != self._epoch or self.state != OrchestratorState.RECORDING
                or self.recorder.session_id != recording_id):
            logger.debug("Utterance abandoned while the recorder drained")
            return False

        self.state = OrchestratorState.PROCESSING
        if self.monitor is not None:
            self.monitor.reset()
        raw = self.buffer.freeze()

        try:
            payload = self._prepare_payload(raw)
            self._emit(UtteranceCapturedEvent(
                self.session_ref, self.clock(), recording_id, len(payload)
            ))
            request = self._build_request(payload)
            self.network_calls += 1
            logger.info(f"Sending {len(payload)} bytes (phase={self.phase.value})")
            reply = await self.endpoint.converse(request)
            if epoch != self._epoch:
                logger.info("Reply arrived after the session ended; discarded")
                return False
            if not isinstance(reply, EndpointReply):
                reply = parse_endpoint_reply(reply)
        except Exception as e:
            if epoch != self._epoch:
                logger.info(f"Failure after the session ended ignored: {e}")
                return False
            logger.error(f"Turn failed: {e}")
            self._record_error(e, component="endpoint")
            self._begin_recording()
            return False

        self._apply_reply(reply)

        try:
            audio = reply.audio_bytes()
        except MalformedReplyError as e:
            logger.error(f"Reply audio unusable, skipping playback: {e}")
            self._record_error(PlaybackError(str(e)))
            self._begin_recording()
            return True

        if audio:
            self._begin_playback(epoch, audio, reply.mime_type or UTTERANCE_MIME_TYPE)
        else:
            self._begin_recording()
        return True

    def _prepare_payload(self, raw: bytes) -> bytes:
        if not raw:
            raise EmptyUtteranceError()
        payload = self.microphone.encode(raw)
        if len(payload) < self.config.min_utterance_bytes:
            raise UtteranceTooShortError(len(payload), self.config.min_utterance_bytes)
        return payload

    def _build_request(self, payload: bytes) -> ConversationRequest:
        state = self.conversation
        formatted = PromptFormatter.format_history(state.history)
        return ConversationRequest(
            audio=payload,
            mime_type=getattr(self.microphone, "mime_type", UTTERANCE_MIME_TYPE),
            system_prompt=self.prompt_engine.build_system_prompt(state.phase, state.history, state.facts),
            context_json=self.prompt_engine.build_context_json(state.to_context(formatted)),
            session_ref=self.session_ref,
        )

    def _apply_reply(self, reply: EndpointReply) -> None:
        previous_phase = self.conversation.phase
        user_content = reply.transcript or AUDIO_PLACEHOLDER
        filled = self.conversation.record_exchange(user_content, reply.text, reply.transcript)

        logger.info(f"Candidate: {user_content}")
        logger.info(f"Interviewer: {reply.text}")

        now = self.clock()
        self._emit(TurnCompletedEvent(
            self.session_ref, now, self.conversation.user_turn_count,
            reply.transcript, reply.text, reply.has_audio
        ))
        current_phase = self.conversation.phase
        if current_phase != previous_phase:
            logger.info(f"Phase: {previous_phase.value} -> {current_phase.value}")
            self._emit(PhaseChangedEvent(self.session_ref, now, previous_phase.value, current_phase.value))
        if filled:
            self._emit(FactsUpdatedEvent(self.session_ref, now, filled, self.conversation.facts.to_dict()))

        if self.persistence is not None and reply.transcript:
            self.persistence.save_transcript(
                PromptFormatter.format_transcript_for_storage(self.conversation.history),
                self.session_ref,
            )

    # ------------------------------------------------------------------
    # Recording and playback transitions
    # ------------------------------------------------------------------

    def _begin_recording(self) -> None:
        self.state = OrchestratorState.RECORDING
        if self.monitor is not None:
            self.monitor.reset()
        try:
            session_id = self.recorder.start_session()
        except Exception as e:
            logger.error(f"Could not start recording: {e}")
            self._record_error(CaptureError(str(e)))
            self.stop(reason="capture_failed")
            return
        self._emit(RecordingStartedEvent(self.session_ref, self.clock(), session_id))

    def _begin_playback(self, epoch: int, audio: bytes, mime_type: str) -> None:
        self.state = OrchestratorState.PLAYING
        self._emit(PlaybackStartedEvent(self.session_ref, self.clock(), mime_type, len(audio)))
        self.playback.play(audio, mime_type, partial(self._on_playback_finished, epoch))

    def _on_playback_finished(self, epoch: int, error: Optional[Exception]) -> None:
        if epoch != self._epoch or self.state != OrchestratorState.PLAYING:
            logger.debug("Stale playback completion ignored")
            return
        if error is not None:
            self._record_error(error if isinstance(error, PlaybackError) else PlaybackError(str(error)))
        self._emit(PlaybackFinishedEvent(self.session_ref, self.clock(), str(error) if error else None))
        self._begin_recording()

    def _on_capture_error(self, error: Exception) -> None:
        if self.state != OrchestratorState.RECORDING:
            return
        self._record_error(error if isinstance(error, CaptureError) else CaptureError(str(error)))
        self._begin_recording()

    # ------------------------------------------------------------------
    # Usage watchdog
    # ------------------------------------------------------------------

    async def _watch_usage(self, epoch: int) -> None:
        interval = self.config.usage_check_interval
        while True:
            await asyncio.sleep(interval)
            if epoch != self._epoch or not self.is_active:
                return
            if self.usage.limit_reached(self.elapsed_seconds):
                logger.warning("Usage limit reached during the session")
                self.stop(reason="usage_limit")
                return

    # ------------------------------------------------------------------

    def _record_error(self, error: Exception, component: Optional[str] = None) -> None:
        if isinstance(error, InterviewError):
            component = error.component
        elif component is None:
            component = "interview"
        self.last_error = error
        self.errors.append(error)
        self._emit(ErrorOccurredEvent(
            self.session_ref or "unknown", self.clock(),
            type(error).__name__, str(error), component
        ))

    def _emit(self, event) -> None:
        self.event_bus.emit(event)
