import asyncio

from voice_interview.interview.activity import VoiceActivityMonitor


def make_monitor(**overrides):
    state = {"busy": False, "buffered": True, "fired": 0}

    def fire():
        state["fired"] += 1

    options = dict(
        level_source=lambda: 0.0,
        on_silence_timeout=fire,
        is_busy=lambda: state["busy"],
        has_buffered_audio=lambda: state["buffered"],
        threshold=0.05,
        silence_duration_ms=40,
    )
    options.update(overrides)
    return VoiceActivityMonitor(**options), state


def test_silence_to_silence_never_arms(run):
    async def scenario():
        monitor, state = make_monitor()
        for _ in range(5):
            assert monitor.observe(0.0) is False
            assert not monitor.countdown_pending
        await asyncio.sleep(0.08)
        assert state["fired"] == 0

    run(scenario())


def test_speech_then_silence_arms_once(run):
    async def scenario():
        monitor, state = make_monitor()
        assert monitor.observe(0.5) is True
        assert not monitor.countdown_pending
        monitor.observe(0.0)
        assert monitor.countdown_pending
        monitor.observe(0.0)
        assert monitor.countdown_pending
        await asyncio.sleep(0.1)
        assert state["fired"] == 1
        assert not monitor.countdown_pending

        # Continued silence after expiry does not re-arm
        monitor.observe(0.0)
        assert not monitor.countdown_pending

    run(scenario())


def test_no_arming_without_buffered_audio(run):
    async def scenario():
        monitor, state = make_monitor()
        state["buffered"] = False
        monitor.observe(0.5)
        monitor.observe(0.0)
        assert not monitor.countdown_pending

    run(scenario())


def test_level_at_threshold_counts_as_silence(run):
    async def scenario():
        monitor, _ = make_monitor()
        assert monitor.observe(0.05) is False
        assert not monitor.has_spoken

    run(scenario())


def test_resumed_speech_cancels_countdown(run):
    async def scenario():
        monitor, state = make_monitor()
        monitor.observe(0.5)
        monitor.observe(0.0)
        assert monitor.countdown_pending
        monitor.observe(0.4)
        assert not monitor.countdown_pending
        assert monitor.silence_elapsed_ms == 0
        await asyncio.sleep(0.08)
        assert state["fired"] == 0

    run(scenario())


def test_busy_samples_are_ignored(run):
    async def scenario():
        monitor, state = make_monitor()
        state["busy"] = True
        assert monitor.observe(0.9) is None
        assert not monitor.has_spoken
        state["busy"] = False
        monitor.observe(0.0)
        assert not monitor.countdown_pending

    run(scenario())


def test_countdown_expiring_while_busy_is_dropped(run):
    async def scenario():
        monitor, state = make_monitor()
        monitor.observe(0.5)
        monitor.observe(0.0)
        state["busy"] = True
        await asyncio.sleep(0.08)
        assert state["fired"] == 0

    run(scenario())


def test_reset_clears_speech_and_countdown(run):
    async def scenario():
        monitor, state = make_monitor()
        monitor.observe(0.5)
        monitor.observe(0.0)
        monitor.reset()
        assert not monitor.countdown_pending
        assert not monitor.has_spoken
        monitor.observe(0.0)
        assert not monitor.countdown_pending
        await asyncio.sleep(0.08)
        assert state["fired"] == 0

    run(scenario())


def test_silence_elapsed_reports_progress(run):
    async def scenario():
        monitor, _ = make_monitor(silence_duration_ms=200)
        assert monitor.silence_elapsed_ms == 0
        monitor.observe(0.5)
        monitor.observe(0.0)
        await asyncio.sleep(0.05)
        elapsed = monitor.silence_elapsed_ms
        assert 0 < elapsed <= 200
        monitor.cancel_countdown()

    run(scenario())


def test_run_samples_level_source(run):
    async def scenario():
        levels = iter([0.5, 0.5] + [0.0] * 100)
        monitor, state = make_monitor(level_source=lambda: next(levels), interval_ms=5)
        task = asyncio.ensure_future(monitor.run())
        await asyncio.sleep(0.15)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        assert state["fired"] == 1

    run(scenario())
