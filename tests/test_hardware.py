import asyncio

import pytest

from voice_interview.infrastructure.audio.hardware import Recorder, Speaker
from voice_interview.interview.errors import PlaybackError


def test_recorder_emits_full_chunks_and_flushes_tail(run):
    async def scenario():
        chunks = []
        recorder = Recorder(asyncio.get_running_loop(), chunks.append, lambda e: None, chunk_bytes=4)
        recorder.feed(b"ab")
        recorder.feed(b"cd")
        recorder.feed(b"e")
        await asyncio.sleep(0)
        assert chunks == [b"abcd"]

        recorder.stop()
        assert chunks == [b"abcd"]
        await asyncio.sleep(0)
        assert chunks == [b"abcd", b"e"]

        recorder.feed(b"ignored!")
        await asyncio.sleep(0)
        assert chunks == [b"abcd", b"e"]

    run(scenario())


def test_recorder_tail_follows_chunks_already_queued(run):
    async def scenario():
        chunks = []
        recorder = Recorder(asyncio.get_running_loop(), chunks.append, lambda e: None, chunk_bytes=4)
        recorder.feed(b"abcd")
        recorder.feed(b"ef")
        # Full chunk still queued when stop() runs
        recorder.stop()
        assert chunks == []
        await asyncio.sleep(0)
        assert chunks == [b"abcd", b"ef"]

    run(scenario())


def test_recorder_errors_reach_the_loop(run):
    async def scenario():
        errors = []
        recorder = Recorder(asyncio.get_running_loop(), lambda c: None, errors.append, chunk_bytes=4)
        recorder.fail(RuntimeError("overflow"))
        await asyncio.sleep(0)
        assert [str(e) for e in errors] == ["overflow"]

    run(scenario())


def test_speaker_skips_wav_only_players_for_mp3(monkeypatch):
    monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")
    speaker = Speaker(commands=[("aplay", "-q"), ("ffplay", "-nodisp")])
    assert speaker.find_player(".wav") == ("aplay", "-q")
    assert speaker.find_player(".mp3") == ("ffplay", "-nodisp")


def test_speaker_without_player_raises(monkeypatch, run):
    monkeypatch.setattr("shutil.which", lambda name: None)
    with pytest.raises(PlaybackError):
        run(Speaker().play(b"RIFF", "audio/wav"))
