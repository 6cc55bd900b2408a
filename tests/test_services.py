import asyncio

import pytest

from voice_interview.interview.errors import SessionDeniedError
from voice_interview.interview.schemas import UsageCheck
from voice_interview.interview.services import (
    UtteranceBuffer, RecordingSessionController, PlaybackController,
    PersistenceService, UsageService
)
from voice_interview.interview.testing import (
    MockMicrophone, MockSpeaker, MockSessionStore, MockUsage, create_test_config
)


def _controller(accepting=True):
    gate = {"open": accepting}
    microphone = MockMicrophone()
    buffer = UtteranceBuffer()
    controller = RecordingSessionController(microphone, buffer, can_accept=lambda: gate["open"])
    return controller, microphone, buffer, gate


def test_buffer_freeze_returns_payload_and_empties():
    buffer = UtteranceBuffer()
    buffer.append(b"ab")
    buffer.append(b"cd")
    assert buffer.size == 4
    assert buffer.chunk_count == 2
    assert buffer.freeze() == b"abcd"
    assert buffer.is_empty
    assert buffer.freeze() == b""


def test_session_ids_increase_and_stale_chunks_are_dropped():
    controller, microphone, buffer, _ = _controller()
    first = controller.start_session()
    old_recorder = microphone.current_recorder
    second = controller.start_session()
    assert second == first + 1
    assert old_recorder.stopped

    old_recorder.push(b"late")
    assert buffer.is_empty

    microphone.emit_chunk(b"fresh")
    assert buffer.freeze() == b"fresh"


def test_chunks_dropped_while_gate_closed():
    controller, microphone, buffer, gate = _controller(accepting=False)
    controller.start_session()
    microphone.emit_chunk(b"data")
    assert buffer.is_empty
    gate["open"] = True
    microphone.emit_chunk(b"")
    assert buffer.is_empty
    microphone.emit_chunk(b"data")
    assert not buffer.is_empty


def test_recorder_errors_from_old_sessions_are_ignored():
    errors = []
    microphone = MockMicrophone()
    controller = RecordingSessionController(
        microphone, UtteranceBuffer(), can_accept=lambda: True, on_error=errors.append
    )
    controller.start_session()
    stale = microphone.current_recorder
    controller.start_session()
    stale.fail(RuntimeError("old"))
    assert errors == []
    microphone.current_recorder.fail(RuntimeError("new"))
    assert [str(e) for e in errors] == ["new"]


def test_release_closes_microphone():
    controller, microphone, buffer, _ = _controller()
    controller.open()
    controller.start_session()
    microphone.emit_chunk(b"data")
    controller.release()
    assert microphone.closed
    assert not controller.is_recording
    assert buffer.is_empty


def test_playback_reports_completion_once(run):
    async def scenario():
        speaker = MockSpeaker()
        finished = []
        controller = PlaybackController(speaker)
        controller.play(b"audio", "audio/wav", finished.append)
        await asyncio.sleep(0)
        assert controller.is_playing
        speaker.finish()
        await asyncio.sleep(0.01)
        assert finished == [None]
        assert not controller.is_playing

    run(scenario())


def test_stopped_playback_invokes_no_callback(run):
    async def scenario():
        speaker = MockSpeaker()
        finished = []
        controller = PlaybackController(speaker)
        controller.play(b"audio", "audio/wav", finished.append)
        await asyncio.sleep(0)
        controller.stop()
        await asyncio.sleep(0.01)
        assert finished == []
        assert speaker.cancelled == 1

    run(scenario())


def test_playback_failure_is_reported(run):
    async def scenario():
        finished = []
        controller = PlaybackController(MockSpeaker(error=RuntimeError("no player")))
        controller.play(b"audio", "audio/wav", finished.append)
        await asyncio.sleep(0.01)
        assert len(finished) == 1
        assert str(finished[0]) == "no player"

    run(scenario())


def test_persistence_failures_are_swallowed():
    service = PersistenceService(MockSessionStore(fail=True))
    assert service.save_transcript("text", "ref") is False
    assert service.load_questions("ref") == []
    assert service.save_feedback({"overallFeedback": "ok"}, "ref") is None


def test_persistence_round_trip():
    store = MockSessionStore(questions=["Q1", "Q2"])
    service = PersistenceService(store)
    assert service.save_transcript("text", "ref") is True
    assert store.transcripts["ref"] == "text"
    assert service.load_questions("ref") == ["Q1", "Q2"]
    assert service.load_transcript("ref") == "text"
    assert service.save_feedback({"overallFeedback": "ok"}, "ref") == "fb1"


@pytest.mark.parametrize("seconds, minutes", [
    (0, 0),
    (1, 1),
    (60, 1),
    (61, 2),
    (600, 10),
])
def test_billable_minutes_round_up(seconds, minutes):
    assert UsageService.billable_minutes(seconds) == minutes


def test_usage_denied_at_limit():
    service = UsageService(MockUsage(current_usage=60, plan_limit=60))
    with pytest.raises(SessionDeniedError) as info:
        service.ensure_can_start()
    assert info.value.current_usage == 60
    assert info.value.plan_limit == 60


def test_usage_check_accepts_camel_case_dict():
    class DictUsage:
        def can_start_session(self):
            return {"canStart": True, "currentUsage": 3, "planLimit": 60}

    check = UsageService(DictUsage()).ensure_can_start()
    assert isinstance(check, UsageCheck)
    assert check.current_usage == 3


def test_usage_report_records_minutes():
    usage = MockUsage()
    assert UsageService(usage).report(90) == 2
    assert usage.added == [2]


def test_usage_report_skips_zero_and_failures():
    class BrokenUsage(MockUsage):
        def add_session_usage(self, minutes):
            raise IOError("ledger offline")

    usage = MockUsage()
    assert UsageService(usage).report(0) == 0
    assert usage.added == []
    assert UsageService(BrokenUsage()).report(30) == 0


def test_limit_reached_counts_current_session():
    service = UsageService(MockUsage(current_usage=58, plan_limit=60))
    assert not service.limit_reached(30)
    assert service.limit_reached(61)


def test_test_config_uses_the_given_workdir(tmp_path, monkeypatch):
    def no_tempdir():
        raise AssertionError("mkdtemp called although workdir was given")

    monkeypatch.setattr("tempfile.mkdtemp", no_tempdir)
    config = create_test_config(workdir=str(tmp_path), silence_duration_ms=90)
    assert config.workdir == str(tmp_path)
    assert config.silence_duration_ms == 90
