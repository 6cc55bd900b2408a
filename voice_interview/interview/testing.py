"""
Testing infrastructure with mock collaborators for the interview loop.
"""
import asyncio
import tempfile
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import DeviceUnavailableError
from .orchestrator import TurnOrchestrator
from .schemas import ConversationRequest, EndpointReply, FeedbackReport, UsageCheck
from ..config import Config


class MockRecorder:
    """One capture session handed out by MockMicrophone."""

    def __init__(self, on_chunk: Callable[[bytes], None], on_error: Callable[[Exception], None]):
        self.on_chunk = on_chunk
        self.on_error = on_error
        self.stopped = False

    def push(self, chunk: bytes) -> None:
        # Delivered even after stop(), like trailing data from a real device
        self.on_chunk(chunk)

    def fail(self, error: Exception) -> None:
        self.on_error(error)

    def stop(self) -> None:
        self.stopped = True


class MockMicrophone:
    """Microphone whose level and chunks are set by the test."""

    mime_type = "audio/wav"

    def __init__(self, fail_open: bool = False, fail_start: bool = False):
        self.fail_open = fail_open
        self.fail_start = fail_start
        self.level_value = 0.0
        self.opened = False
        self.closed = False
        self.recorders: List[MockRecorder] = []

    def open(self) -> None:
        if self.fail_open:
            raise DeviceUnavailableError("Mock microphone unavailable")
        self.opened = True
        self.closed = False

    def close(self) -> None:
        self.closed = True
        self.opened = False

    def level(self) -> float:
        return self.level_value

    def start_recorder(self, on_chunk, on_error) -> MockRecorder:
        if self.fail_start:
            raise RuntimeError("Mock recorder failed to start")
        recorder = MockRecorder(on_chunk, on_error)
        self.recorders.append(recorder)
        return recorder

    @property
    def current_recorder(self) -> Optional[MockRecorder]:
        return self.recorders[-1] if self.recorders else None

    def emit_chunk(self, chunk: bytes) -> None:
        if self.current_recorder is not None:
            self.current_recorder.push(chunk)

    def encode(self, pcm: bytes) -> bytes:
        return pcm


class MockSpeaker:
    """Speaker that finishes when the test says so."""

    def __init__(self, auto_finish: bool = False, error: Optional[Exception] = None):
        self.auto_finish = auto_finish
        self.error = error
        self.played: List[Dict[str, Any]] = []
        self.cancelled = 0
        self._done: Optional[asyncio.Event] = None

    async def play(self, audio: bytes, mime_type: str) -> None:
        self.played.append({"audio": audio, "mime_type": mime_type})
        if self.error is not None:
            raise self.error
        if self.auto_finish:
            return
        self._done = asyncio.Event()
        try:
            await self._done.wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise

    def finish(self) -> None:
        if self._done is not None:
            self._done.set()


Scripted = Union[EndpointReply, Dict[str, Any], Exception]


class MockConversationEndpoint:
    """Endpoint returning scripted replies (or raising scripted errors)."""

    def __init__(self, replies: Optional[List[Scripted]] = None):
        self.replies: List[Scripted] = list(replies or [])
        self.requests: List[ConversationRequest] = []
        self._gate: Optional[asyncio.Event] = None

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def hold(self) -> None:
        """Make subsequent calls wait until release()."""
        self._gate = asyncio.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    async def converse(self, request: ConversationRequest) -> Any:
        self.requests.append(request)
        if self._gate is not None:
            await self._gate.wait()
        if self.replies:
            reply = self.replies.pop(0)
        else:
            reply = EndpointReply(text="ありがとうございます。次の質問に移ります。")
        if isinstance(reply, Exception):
            raise reply
        return reply


class MockSessionStore:
    """In-memory session store."""

    def __init__(self, questions: Optional[List[str]] = None, fail: bool = False):
        self.questions = list(questions or [])
        self.fail = fail
        self.transcripts: Dict[str, str] = {}
        self.feedback: Dict[str, List[Dict[str, Any]]] = {}
        self.save_calls = 0

    def save_transcript(self, text: str, session_ref: str) -> None:
        self.save_calls += 1
        if self.fail:
            raise IOError("Mock store failure")
        self.transcripts[session_ref] = text

    def save_feedback(self, data: Dict[str, Any], session_ref: str, record_id: Optional[str] = None) -> str:
        if self.fail:
            raise IOError("Mock store failure")
        records = self.feedback.setdefault(session_ref, [])
        record_id = record_id or f"fb{len(records) + 1}"
        records.append({"id": record_id, "data": data})
        return record_id

    def get_transcript(self, session_ref: str) -> Optional[str]:
        return self.transcripts.get(session_ref)

    def get_questions(self, session_ref: str) -> List[str]:
        if self.fail:
            raise IOError("Mock store failure")
        return list(self.questions)

    def get_feedback(self, session_ref: str) -> List[Dict[str, Any]]:
        return list(self.feedback.get(session_ref, []))


class MockUsage:
    """Usage ledger with fixed numbers."""

    def __init__(self, current_usage: int = 0, plan_limit: int = 60):
        self.current_usage = current_usage
        self.plan_limit = plan_limit
        self.added: List[int] = []

    def can_start_session(self) -> UsageCheck:
        return UsageCheck(
            can_start=self.current_usage < self.plan_limit,
            current_usage=self.current_usage,
            plan_limit=self.plan_limit,
        )

    def add_session_usage(self, minutes: int) -> None:
        self.added.append(minutes)
        self.current_usage += minutes

    def get_current_usage(self) -> int:
        return self.current_usage

    def get_plan_limit(self) -> int:
        return self.plan_limit


class MockFeedbackGenerator:
    """Feedback generator returning a fixed report (or raising)."""

    def __init__(self, report: Optional[FeedbackReport] = None, error: Optional[Exception] = None):
        self.report = report or FeedbackReport(
            feedback=[{
                "question": "自己紹介をお願いします",
                "answerSummary": "名前と専攻を話した",
                "evaluation": "簡潔で分かりやすい",
                "advice": "志望動機にもつなげましょう",
                "score": 4,
            }],
            overall_feedback="落ち着いて話せていました。",
        )
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def generate(self, transcript: str, questions: List[str]) -> FeedbackReport:
        self.calls.append({"transcript": transcript, "questions": list(questions)})
        if self.error is not None:
            raise self.error
        return self.report


def create_test_config(**overrides) -> Config:
    """Config with short timings so tests run quickly."""
    values = dict(
        analysis_interval_ms=10,
        silence_duration_ms=60,
        usage_check_interval=0,
    )
    values.update(overrides)
    if "workdir" not in values:
        values["workdir"] = tempfile.mkdtemp()
    return Config(**values)


def create_mock_interview_setup(replies: Optional[List[Scripted]] = None,
                                questions: Optional[List[str]] = None,
                                current_usage: int = 0,
                                plan_limit: int = 60,
                                fail_open: bool = False,
                                fail_start: bool = False,
                                feedback_generator=None,
                                **config_overrides) -> Dict[str, Any]:
    """Create a complete mock interview setup for testing."""
    endpoint = MockConversationEndpoint(replies)
    microphone = MockMicrophone(fail_open=fail_open, fail_start=fail_start)
    speaker = MockSpeaker()
    store = MockSessionStore(questions)
    usage = MockUsage(current_usage, plan_limit)
    config = create_test_config(**config_overrides)

    orchestrator = TurnOrchestrator(
        endpoint=endpoint,
        microphone=microphone,
        speaker=speaker,
        store=store,
        usage=usage,
        config=config,
        feedback_generator=feedback_generator,
    )
    return {
        "orchestrator": orchestrator,
        "endpoint": endpoint,
        "microphone": microphone,
        "speaker": speaker,
        "store": store,
        "usage": usage,
        "config": config,
    }


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll until predicate() is true. Returns False on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            return False
        await asyncio.sleep(interval)
    return True


async def speak(microphone: MockMicrophone, payload: bytes, speaking_seconds: float = 0.05) -> None:
    """Simulate one utterance: loud samples with audio, then silence."""
    microphone.level_value = 0.5
    microphone.emit_chunk(payload)
    await asyncio.sleep(speaking_seconds)
    microphone.level_value = 0.0
