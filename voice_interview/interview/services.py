"""
Service classes for the interview loop.

These wrap the device, persistence and usage collaborators so the
orchestrator only deals with plain results: chunks land in a buffer, playback
reports completion through one callback, and store or ledger failures are
logged instead of raised.
"""
import asyncio
import logging
import math
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import FeedbackError, SessionDeniedError
from .schemas import UsageCheck

logger = logging.getLogger("services")


class UtteranceBuffer:
    """Audio chunks accumulated for the current turn."""

    def __init__(self):
        self._chunks: List[bytes] = []

    def append(self, chunk: bytes) -> None:
        self._chunks.append(chunk)

    def freeze(self) -> bytes:
        """Return everything buffered as one payload and start empty."""
        payload = b"".join(self._chunks)
        self._chunks = []
        return payload

    def clear(self) -> None:
        self._chunks = []

    @property
    def is_empty(self) -> bool:
        return not any(self._chunks)

    @property
    def size(self) -> int:
        return sum(len(c) for c in self._chunks)

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)


class RecordingSessionController:
    """
    Owns the capture device and the current recording session id.

    Chunks are tagged with the id of the session that produced them; anything
    tagged with a superseded id, or arriving while the gate is closed, is
    dropped.
    """

    def __init__(self,
                 microphone,
                 buffer: UtteranceBuffer,
                 can_accept: Callable[[], bool],
                 on_error: Optional[Callable[[Exception], None]] = None):
        self.microphone = microphone
        self.buffer = buffer
        self.can_accept = can_accept
        self.on_error = on_error
        self.session_id = 0
        self.sessions_started = 0
        self._recorder = None

    @property
    def is_recording(self) -> bool:
        return self._recorder is not None

    def open(self) -> None:
        """Open the device. Raises DeviceUnavailableError."""
        self.microphone.open()

    def start_session(self) -> int:
        """Invalidate the previous session and start capturing a new one."""
        self.session_id += 1
        session_id = self.session_id
        self.stop_session()
        self.buffer.clear()
        self._recorder = self.microphone.start_recorder(
            on_chunk=partial(self._on_chunk, session_id),
            on_error=partial(self._on_recorder_error, session_id),
        )
        self.sessions_started += 1
        logger.info(f"Recording session {session_id} started")
        return session_id

    def stop_session(self) -> None:
        recorder, self._recorder = self._recorder, None
        if recorder is None:
            return
        try:
            recorder.stop()
        except Exception as e:
            logger.warning(f"Failed to stop recorder: {e}")

    def release(self) -> None:
        """Stop capture and close the device."""
        self.stop_session()
        self.buffer.clear()
        try:
            self.microphone.close()
        except Exception as e:
            logger.warning(f"Failed to close microphone: {e}")

    def _on_chunk(self, session_id: int, chunk: bytes) -> None:
        if not chunk:
            return
        if session_id != self.session_id:
            logger.debug(f"Discarded {len(chunk)} bytes from stale session {session_id}")
            return
        if not self.can_accept():
            logger.debug(f"Discarded {len(chunk)} bytes while busy")
            return
        self.buffer.append(chunk)

    def _on_recorder_error(self, session_id: int, error: Exception) -> None:
        if session_id != self.session_id:
            logger.debug(f"Ignored recorder error from stale session {session_id}: {error}")
            return
        logger.error(f"Recorder error in session {session_id}: {error}")
        if self.on_error is not None:
            self.on_error(error)


class PlaybackController:
    """Plays one reply at a time and reports when it is over."""

    def __init__(self, speaker):
        self.speaker = speaker
        self._task: Optional[asyncio.Task] = None

    @property
    def is_playing(self) -> bool:
        return self._task is not None and not self._task.done()

    def play(self,
             audio: bytes,
             mime_type: str,
             on_finished: Callable[[Optional[Exception]], None]) -> asyncio.Task:
        """
        Start playback in a task.

        `on_finished` is called exactly once with None on completion or with
        the error on failure. It is not called if playback is stopped.
        """
        self.stop()
        self._task = asyncio.get_running_loop().create_task(
            self._run(audio, mime_type, on_finished)
        )
        return self._task

    async def _run(self, audio: bytes, mime_type: str,
                   on_finished: Callable[[Optional[Exception]], None]) -> None:
        error: Optional[Exception] = None
        try:
            await self.speaker.play(audio, mime_type)
        except asyncio.CancelledError:
            logger.debug("Playback cancelled")
            raise
        except Exception as e:
            logger.warning(f"Playback failed: {e}")
            error = e
        on_finished(error)

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()


class PersistenceService:
    """Fire-and-observe access to the session store."""

    def __init__(self, store):
        self.store = store

    def save_transcript(self, text: str, session_ref: str) -> bool:
        try:
            self.store.save_transcript(text, session_ref)
            logger.info(f"Transcript saved for {session_ref} ({len(text)} chars)")
            return True
        except Exception as e:
            logger.error(f"Failed to save transcript for {session_ref}: {e}")
            return False

    def load_questions(self, session_ref: str) -> List[str]:
        try:
            questions = self.store.get_questions(session_ref) or []
        except Exception as e:
            logger.error(f"Failed to load questions for {session_ref}: {e}")
            return []
        return [str(q) for q in questions]

    def load_transcript(self, session_ref: str) -> Optional[str]:
        try:
            return self.store.get_transcript(session_ref)
        except Exception as e:
            logger.error(f"Failed to load transcript for {session_ref}: {e}")
            return None

    def save_feedback(self, data: Dict[str, Any], session_ref: str) -> Optional[str]:
        """Store a feedback report. Returns the record id, None on failure."""
        try:
            record_id = self.store.save_feedback(data, session_ref)
            logger.info(f"Feedback saved for {session_ref}")
            return record_id
        except Exception as e:
            logger.error(f"Failed to save feedback for {session_ref}: {e}")
            return None


class FeedbackService:
    """Turns a saved transcript and its questions into a stored feedback report."""

    def __init__(self, generator, persistence: PersistenceService):
        self.generator = generator
        self.persistence = persistence

    def generate(self, session_ref: str) -> Tuple[Dict[str, Any], Optional[str]]:
        """
        Blocking; run it off the event loop.

        Returns:
            The report (camelCase keys, as stored) and its record id

        Raises:
            FeedbackError: No saved transcript, or the generator failed
        """
        transcript = self.persistence.load_transcript(session_ref)
        if not transcript:
            raise FeedbackError("面接の記録が見つかりません。面接を完了してから再試行してください。")
        questions = self.persistence.load_questions(session_ref)

        try:
            report = self.generator.generate(transcript, questions)
        except FeedbackError:
            raise
        except Exception as e:
            raise FeedbackError(f"フィードバックの生成に失敗しました: {e}") from e

        data = report.model_dump(by_alias=True)
        record_id = self.persistence.save_feedback(data, session_ref)
        return data, record_id


class UsageService:
    """Usage checks before a session and reporting after it."""

    def __init__(self, usage):
        self.usage = usage

    def ensure_can_start(self) -> UsageCheck:
        """
        Raises:
            SessionDeniedError: When the plan limit has been reached
        """
        result: Any = self.usage.can_start_session()
        check = result if isinstance(result, UsageCheck) else UsageCheck.model_validate(result)
        if not check.can_start:
            raise SessionDeniedError(check.current_usage, check.plan_limit)
        return check

    @staticmethod
    def billable_minutes(elapsed_seconds: float) -> int:
        if elapsed_seconds <= 0:
            return 0
        return math.ceil(elapsed_seconds / 60.0)

    def report(self, elapsed_seconds: float) -> int:
        """Record the session's minutes. Returns the minutes billed (0 on failure)."""
        minutes = self.billable_minutes(elapsed_seconds)
        if minutes <= 0:
            return 0
        try:
            self.usage.add_session_usage(minutes)
            logger.info(f"Recorded {minutes} minute(s) of usage")
            return minutes
        except Exception as e:
            logger.error(f"Failed to record session usage: {e}")
            return 0

    def limit_reached(self, elapsed_seconds: float) -> bool:
        """Whether this session has used up what remains of the plan."""
        try:
            current = int(self.usage.get_current_usage())
            limit = int(self.usage.get_plan_limit())
        except Exception as e:
            logger.warning(f"Usage check failed: {e}")
            return False
        return current + self.billable_minutes(elapsed_seconds) >= limit
