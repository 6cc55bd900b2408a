from voice_interview.interview.events import (
    EventType, InterviewEventBus, InterviewMetrics,
    SessionStartedEvent, SessionStoppedEvent, TurnCompletedEvent, ErrorOccurredEvent
)


def test_handlers_receive_matching_events():
    bus = InterviewEventBus()
    started, everything = [], []
    bus.subscribe(EventType.SESSION_STARTED, started.append)
    bus.subscribe_all(everything.append)

    bus.emit(SessionStartedEvent("s1", 1.0, "hello", 0))
    bus.emit(TurnCompletedEvent("s1", 2.0, 1, "hi", "next", False))

    assert [e.event_type for e in started] == [EventType.SESSION_STARTED]
    assert len(everything) == 2
    assert started[0].data == {"greeting": "hello", "question_count": 0}


def test_failing_handler_does_not_stop_others():
    bus = InterviewEventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(EventType.SESSION_STARTED, broken)
    bus.subscribe(EventType.SESSION_STARTED, received.append)
    bus.subscribe_all(broken)

    bus.emit(SessionStartedEvent("s1", 1.0, "hello", 0))
    assert len(received) == 1


def test_unsubscribe_and_clear():
    bus = InterviewEventBus()
    received = []
    bus.subscribe(EventType.SESSION_STARTED, received.append)
    bus.unsubscribe(EventType.SESSION_STARTED, received.append)
    bus.emit(SessionStartedEvent("s1", 1.0, "hello", 0))
    assert received == []

    bus.subscribe_all(received.append)
    bus.clear_handlers()
    bus.emit(SessionStartedEvent("s1", 1.0, "hello", 0))
    assert received == []


def test_metrics_count_events():
    metrics = InterviewMetrics()
    metrics.handle_event(SessionStartedEvent("s1", 1.0, "hello", 2))
    metrics.handle_event(TurnCompletedEvent("s1", 2.0, 1, "hi", "next", True))
    metrics.handle_event(ErrorOccurredEvent("s1", 3.0, "EndpointError", "down", "endpoint"))
    metrics.handle_event(SessionStoppedEvent("s1", 4.0, "user", 3, 3))

    counts = metrics.get_metrics()
    assert counts["sessions_started"] == 1
    assert counts["total_turns"] == 1
    assert counts["errors_occurred"] == 1
    assert counts["billed_minutes"] == 3

    metrics.reset()
    assert metrics.get_metrics()["total_turns"] == 0
