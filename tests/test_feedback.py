import json

import pytest

from voice_interview.infrastructure.llm import FeedbackGenerator
from voice_interview.interview.errors import FeedbackError
from voice_interview.interview.prompts import InterviewPrompts
from voice_interview.interview.schemas import parse_feedback_output
from voice_interview.interview.services import FeedbackService, PersistenceService
from voice_interview.interview.testing import MockFeedbackGenerator, MockSessionStore

REPORT = {
    "feedback": [{
        "question": "自己紹介をお願いします",
        "answerSummary": "名前と大学名を述べた",
        "evaluation": "要点がまとまっている",
        "advice": "強みを一言添えましょう",
        "score": 4,
    }],
    "overallFeedback": "全体的に落ち着いていました。",
}


class FakeClient:
    def __init__(self, output=None, error=None):
        self.output = output
        self.error = error
        self.calls = []

    def generate_content(self, prompt_text, audio=None, mime_type=None,
                         temperature=0.7, max_output_tokens=1024):
        self.calls.append({
            "prompt": prompt_text,
            "audio": audio,
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        })
        if self.error is not None:
            raise self.error
        return self.output


def test_feedback_output_inside_code_fence():
    report = parse_feedback_output("```json\n" + json.dumps(REPORT, ensure_ascii=False) + "\n```")
    assert report.overall_feedback == "全体的に落ち着いていました。"
    assert report.feedback[0].answer_summary == "名前と大学名を述べた"
    assert report.feedback[0].score == 4


@pytest.mark.parametrize("raw", [
    "評価できませんでした",
    '{"feedback": [], "overallFeedback": "  "}',
    '{"feedback": [{"question": "q"}], "overallFeedback": "ok"}',
    '{"feedback": [{"question": "q", "evaluation": "e", "score": 9}], "overallFeedback": "ok"}',
])
def test_unusable_feedback_output_raises(raw):
    with pytest.raises(FeedbackError):
        parse_feedback_output(raw)


def test_feedback_prompt_lists_questions_and_transcript():
    prompt = InterviewPrompts.feedback_prompt("面接官: こんにちは\n\n候補者: 田中です", ["自己紹介", "志望動機"])
    assert "1. 自己紹介" in prompt
    assert "2. 志望動機" in prompt
    assert "候補者: 田中です" in prompt
    assert "overallFeedback" in prompt


def test_feedback_prompt_without_questions_targets_asked_ones():
    prompt = InterviewPrompts.feedback_prompt("候補者: 田中です", [])
    assert "面接官が実際にした質問" in prompt


def test_generator_asks_for_text_only_output():
    client = FakeClient(json.dumps(REPORT, ensure_ascii=False))
    report = FeedbackGenerator(client).generate("候補者: 田中です", ["自己紹介"])
    assert len(report.feedback) == 1
    call = client.calls[0]
    assert call["audio"] is None
    assert call["temperature"] == 0.3
    assert call["max_output_tokens"] == 2048
    assert "候補者: 田中です" in call["prompt"]


def test_generator_wraps_client_failures():
    client = FakeClient(error=ConnectionError("offline"))
    with pytest.raises(FeedbackError, match="offline"):
        FeedbackGenerator(client).generate("候補者: 田中です", [])


def test_service_stores_report_with_camel_case_keys():
    store = MockSessionStore(questions=["自己紹介"])
    store.save_transcript("候補者: 田中です", "s1")
    generator = MockFeedbackGenerator()
    data, record_id = FeedbackService(generator, PersistenceService(store)).generate("s1")

    assert record_id == "fb1"
    assert set(data) == {"feedback", "overallFeedback"}
    assert data["feedback"][0]["answerSummary"] == "名前と専攻を話した"
    assert store.get_feedback("s1")[0]["data"] == data
    assert generator.calls == [{"transcript": "候補者: 田中です", "questions": ["自己紹介"]}]


def test_service_requires_a_transcript():
    generator = MockFeedbackGenerator()
    service = FeedbackService(generator, PersistenceService(MockSessionStore()))
    with pytest.raises(FeedbackError):
        service.generate("missing")
    assert generator.calls == []


def test_service_wraps_generator_failures():
    store = MockSessionStore()
    store.save_transcript("候補者: はい", "s1")
    service = FeedbackService(MockFeedbackGenerator(error=ValueError("bad")), PersistenceService(store))
    with pytest.raises(FeedbackError, match="bad"):
        service.generate("s1")
    assert store.get_feedback("s1") == []


def test_service_returns_report_when_store_write_fails():
    store = MockSessionStore()
    store.save_transcript("候補者: はい", "s1")
    store.fail = True
    data, record_id = FeedbackService(MockFeedbackGenerator(), PersistenceService(store)).generate("s1")
    assert record_id is None
    assert data["overallFeedback"] == "落ち着いて話せていました。"
