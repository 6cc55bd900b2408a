import json

from voice_interview.interview.models import (
    Turn, Role, InterviewPhase, CandidateFacts, InterviewProfile
)
from voice_interview.interview.prompt_engine import PromptEngine, PromptFormatter
from voice_interview.interview.schemas import ConversationState


def _history():
    return [
        Turn(Role.ASSISTANT, "本日はよろしくお願いいたします", timestamp=1000.0),
        Turn(Role.USER, "田中です", timestamp=1001.0),
        Turn(Role.ASSISTANT, "ご経験を教えてください", timestamp=1002.0),
        Turn(Role.USER, "営業を三年しました", timestamp=1003.0),
        Turn(Role.ASSISTANT, "ありがとうございます", timestamp=1004.0),
    ]


def test_prompt_is_deterministic():
    engine = PromptEngine()
    facts = CandidateFacts(name="田中")
    first = engine.build_system_prompt(InterviewPhase.EXPERIENCE, _history(), facts)
    second = engine.build_system_prompt(InterviewPhase.EXPERIENCE, _history(), facts)
    assert first == second


def test_history_rendered_in_chronological_order():
    prompt = PromptEngine().build_system_prompt(InterviewPhase.INTRODUCTION, _history(), CandidateFacts())
    positions = [prompt.index(turn.content) for turn in _history()]
    assert positions == sorted(positions)


def test_history_labels_and_exchange_numbers():
    text = PromptFormatter.format_history(_history())
    assert "面接官: 本日はよろしくお願いいたします" in text
    assert "【やり取り1】\n候補者: 田中です" in text
    assert "【やり取り2】\n候補者: 営業を三年しました" in text


def test_empty_history_placeholder():
    assert PromptFormatter.format_history([]) == "まだ会話が始まっていません。"


def test_only_known_facts_rendered():
    facts = CandidateFacts(name="田中")
    prompt = PromptEngine().build_system_prompt(InterviewPhase.INTRODUCTION, _history(), facts)
    assert "候補者情報:" in prompt
    assert "- 名前: 田中" in prompt
    assert "- 大学:" not in prompt
    assert "- スキル:" not in prompt


def test_no_fact_block_when_nothing_known():
    prompt = PromptEngine().build_system_prompt(InterviewPhase.INTRODUCTION, _history(), CandidateFacts())
    assert "候補者情報:" not in prompt


def test_facts_rendered_without_a_name():
    facts = CandidateFacts(university="京都大学")
    assert "- 大学: 京都大学" in PromptFormatter.format_facts(facts)


def test_phase_guidance_and_label():
    prompt = PromptEngine().build_system_prompt(InterviewPhase.SKILLS, [], CandidateFacts())
    assert "【スキル確認段階の特別指示】" in prompt
    assert "**現在の面接フェーズ:** スキル確認" in prompt
    assert "【質問の多様性と深掘り】" in prompt
    assert prompt.endswith("各回答は1文と必ず簡潔にまとめてください。")


def test_timestamps_not_rendered():
    prompt = PromptEngine().build_system_prompt(InterviewPhase.INTRODUCTION, _history(), CandidateFacts())
    assert "1001" not in prompt


def test_profile_and_prepared_questions():
    profile = InterviewProfile(applicant_name="山田", company_name="サンプル商事", interview_focus="final")
    engine = PromptEngine(profile, ["学生時代に力を入れたことは？", "  "])
    prompt = engine.build_system_prompt(InterviewPhase.INTRODUCTION, [], CandidateFacts())
    assert "- 志望企業: サンプル商事" in prompt
    assert "- 面接種別: 最終面接" in prompt
    assert "1. 学生時代に力を入れたことは？" in prompt
    assert "2." not in prompt.split("参考にする質問")[1].split("**重要な指示:**")[0]
    assert profile.heading == "サンプル商事｜最終面接"


def test_transcript_for_storage_groups_consecutive_speakers():
    history = [
        Turn(Role.ASSISTANT, "はじめまして"),
        Turn(Role.USER, "よろしくお願いします"),
        Turn(Role.ASSISTANT, "では"),
        Turn(Role.ASSISTANT, "始めましょう"),
    ]
    text = PromptFormatter.format_transcript_for_storage(history)
    assert text == "面接官: はじめまして\n\n応募者: よろしくお願いします\n\n面接官: では 始めましょう"


def test_context_json_shape():
    state = ConversationState()
    state.add_greeting("こんにちは")
    state.record_exchange("私の名前は田中です", "よろしくお願いします", "私の名前は田中です")
    engine = PromptEngine()
    context = json.loads(engine.build_context_json(
        state.to_context(PromptFormatter.format_history(state.history))
    ))
    assert [h["role"] for h in context["history"]] == ["assistant", "user", "assistant"]
    assert context["phase"] == "introduction"
    assert context["totalExchanges"] == 1
    assert context["candidateInfo"] == {"name": "田中"}
    assert "【やり取り1】" in context["formattedHistory"]
