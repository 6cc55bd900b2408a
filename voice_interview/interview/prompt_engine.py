"""
Prompt composition for the interview loop.

Everything here is a pure function of its inputs: no clock, no network, no
mutable module state. The same phase, history and facts always render to the
same text.
"""
import json
import logging
from typing import Dict, Any, List, Optional, Sequence

from .models import Turn, InterviewPhase, CandidateFacts, InterviewProfile
from .prompts import InterviewPrompts

logger = logging.getLogger("prompt_engine")


class PromptFormatter:
    """Helpers that render individual prompt sections."""

    @staticmethod
    def format_history(history: Sequence[Turn]) -> str:
        """Render the history in chronological order with speaker labels."""
        if not history:
            return InterviewPrompts.empty_history()

        labels = InterviewPrompts.speaker_labels()
        lines = []
        for index, turn in enumerate(history):
            label = labels[turn.role.value]
            if turn.is_user:
                exchange_number = index // 2 + 1
                lines.append(f"【やり取り{exchange_number}】\n{label}: {turn.content}\n")
            else:
                lines.append(f"{label}: {turn.content}\n")
        return "\n".join(lines)

    @staticmethod
    def format_facts(facts: CandidateFacts) -> str:
        """Render known facts; empty string when nothing is known."""
        known = facts.known()
        if not known:
            return ""

        labels = InterviewPrompts.fact_labels()
        lines = ["候補者情報:"]
        for kind, value in known.items():
            if isinstance(value, list):
                value = ", ".join(value)
            lines.append(f"- {labels[kind]}: {value}")
        return "\n".join(lines)

    @staticmethod
    def format_profile(profile: Optional[InterviewProfile]) -> str:
        if profile is None or profile.is_empty():
            return ""

        lines = ["応募者情報:"]
        for attr, label in InterviewPrompts.profile_labels().items():
            value = getattr(profile, attr)
            if value:
                lines.append(f"- {label}: {value}")
        return "\n".join(lines)

    @staticmethod
    def format_questions(questions: Sequence[str]) -> str:
        cleaned = [q.strip() for q in questions if q and q.strip()]
        if not cleaned:
            return ""

        lines = ["参考にする質問（順番や表現は会話に合わせて調整してください）:"]
        lines.extend(f"{i}. {q}" for i, q in enumerate(cleaned, start=1))
        return "\n".join(lines)

    @staticmethod
    def format_transcript_for_storage(history: Sequence[Turn]) -> str:
        """Group consecutive turns by speaker, one paragraph per group."""
        labels = InterviewPrompts.transcript_labels()
        groups: List[Dict[str, Any]] = []
        for turn in history:
            label = labels[turn.role.value]
            if groups and groups[-1]["label"] == label:
                groups[-1]["content"].append(turn.content)
            else:
                groups.append({"label": label, "content": [turn.content]})
        return "\n\n".join(f"{g['label']}: {' '.join(g['content'])}" for g in groups)


class PromptEngine:
    """Builds the system prompt and context payload for each turn."""

    def __init__(self,
                 profile: Optional[InterviewProfile] = None,
                 prepared_questions: Optional[Sequence[str]] = None):
        self.profile = profile
        self.prepared_questions: List[str] = list(prepared_questions or [])

    def build_system_prompt(self,
                            phase: InterviewPhase,
                            history: Sequence[Turn],
                            facts: CandidateFacts) -> str:
        """
        Render the directive instruction block for the current turn.

        Args:
            phase: Current interview phase
            history: Conversation so far, oldest first
            facts: Candidate fact sheet

        Returns:
            The system prompt text
        """
        sections = [
            InterviewPrompts.interviewer_opening(),
            InterviewPrompts.phase_guidance()[phase],
            InterviewPrompts.progression_guidance(),
        ]

        profile_text = PromptFormatter.format_profile(self.profile)
        if profile_text:
            sections.append(profile_text)

        questions_text = PromptFormatter.format_questions(self.prepared_questions)
        if questions_text:
            sections.append(questions_text)

        sections.append(InterviewPrompts.standing_instructions())
        sections.append(f"**現在の面接フェーズ:** {phase.label}")

        history_block = f"**会話履歴:**\n{PromptFormatter.format_history(history)}"
        facts_text = PromptFormatter.format_facts(facts)
        if facts_text:
            history_block = f"{history_block}\n{facts_text}"
        sections.append(history_block)

        sections.append(InterviewPrompts.closing_line())
        return "\n\n".join(sections)

    def build_context_json(self, context: Dict[str, Any]) -> str:
        return json.dumps(context, ensure_ascii=False)
