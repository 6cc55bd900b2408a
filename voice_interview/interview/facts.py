"""
Best-effort candidate fact extraction.

Each fact kind has an ordered list of regex rules. For a kind that is still
empty, the rules are tried in order against the latest transcript and the
first match long enough to be plausible fills the slot. Filled slots are never
revisited. This is a heuristic over surface text, not a parser; expect misses
and the occasional odd capture.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from .models import CandidateFacts, FACT_KINDS

logger = logging.getLogger("facts")


@dataclass(frozen=True)
class FactRule:
    kind: str
    pattern: Pattern[str]
    # captured text must be strictly longer than this
    min_length: int = 0

    def extract(self, transcript: str) -> Optional[str]:
        match = self.pattern.search(transcript)
        if not match:
            return None
        value = match.group(1).strip()
        if len(value) > self.min_length:
            return value
        return None


def _rule(kind: str, pattern: str, min_length: int = 0, flags: int = 0) -> FactRule:
    return FactRule(kind, re.compile(pattern, flags), min_length)


FACT_RULES: List[FactRule] = [
    # name
    _rule("name", r"(?:私の名前は|私は)(.+?)(?:です|と申します)"),
    _rule("name", r"(?:名前は|名前が)(.+?)(?:です|と申します)"),
    _rule("name", r"(?:候補者は|応募者は)(.+?)(?:です|と申します)"),
    _rule("name", r"\bmy name is\s+([A-Za-z][A-Za-z'\-]*)", flags=re.IGNORECASE),
    _rule("name", r"\b(?:I am|I'm)\s+([A-Z][A-Za-z'\-]+)\b"),

    # university
    _rule("university", r"(.+?(?:大学|学院|専門学校|短大).+?)(?:です|出身|卒業)", 2),
    _rule("university", r"(?:出身は|卒業は)(.+?(?:大学|学院|専門学校|短大).+?)(?:です)", 2),
    _rule("university", r"(.+?(?:大学|学院|専門学校|短大).+?)(?:で|に)(?:通っ|在学|卒業)", 2),
    _rule("university", r"(?:大学は|学校は)(.+?)(?:です|でした)", 2),
    _rule("university", r"\b((?:University of [A-Z][\w\s]*?|[A-Z][\w]*(?:\s+[A-Z][\w]*)* University))\b", 2),

    # company
    _rule("company", r"(.+?(?:会社|企業|株式会社|有限会社|合同会社).+?)(?:で|に)(?:働い|勤務)", 2),
    _rule("company", r"(?:会社は|企業は)(.+?)(?:です|でした)", 2),
    _rule("company", r"(.+?(?:株式会社|有限会社|合同会社).+?)(?:です|でした)", 2),
    _rule("company", r"\b(?:work|worked|working) (?:at|for)\s+([A-Z][\w&\-]*(?:\s+[A-Z][\w&\-]*)*)", 2),

    # experience
    _rule("experience", r"(.+?(?:経験|働い|職歴|勤務|在職).+?)", 5),
    _rule("experience", r"(.+?(?:年|年間).+?(?:経験|働い|職歴).+?)", 5),
    _rule("experience", r"(.+?(?:会社|企業|組織).+?(?:で|に).+?(?:働い|勤務).+?)", 5),

    # skills
    _rule("skills", r"(.+?(?:スキル|できる|技術|得意|専門).+?)", 3),
    _rule("skills", r"(.+?(?:プログラミング|開発|設計|分析|管理).+?)", 3),
    _rule("skills", r"(.+?(?:言語|ツール|フレームワーク).+?)", 3),
]


class FactExtractor:
    """Applies an ordered rule list to transcripts, filling empty slots only."""

    def __init__(self, rules: Optional[List[FactRule]] = None):
        self.rules = list(rules) if rules is not None else list(FACT_RULES)

    def update(self, facts: CandidateFacts, transcript: str) -> List[str]:
        """
        Fill whatever empty slots the transcript can fill.

        Returns:
            The fact kinds written by this call
        """
        written: List[str] = []
        if not transcript:
            return written

        for kind in FACT_KINDS:
            if facts.is_known(kind):
                continue
            for rule in self.rules:
                if rule.kind != kind:
                    continue
                value = rule.extract(transcript)
                if value is not None:
                    facts.fill(kind, value)
                    written.append(kind)
                    logger.info(f"Extracted {kind}: {value}")
                    break

        return written
