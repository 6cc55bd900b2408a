"""
Data models for the interview loop.
"""
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, List, Sequence, Any


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class InterviewPhase(str, Enum):
    """Coarse interview stage, derived from the number of user turns."""
    INTRODUCTION = "introduction"
    EXPERIENCE = "experience"
    SKILLS = "skills"
    MOTIVATION = "motivation"
    CLOSING = "closing"

    @property
    def label(self) -> str:
        return PHASE_LABELS[self]


PHASE_LABELS = {
    InterviewPhase.INTRODUCTION: "自己紹介",
    InterviewPhase.EXPERIENCE: "経歴・経験",
    InterviewPhase.SKILLS: "スキル確認",
    InterviewPhase.MOTIVATION: "志望動機",
    InterviewPhase.CLOSING: "質疑応答",
}

# (inclusive upper bound on user turns, phase)
PHASE_THRESHOLDS = (
    (2, InterviewPhase.INTRODUCTION),
    (5, InterviewPhase.EXPERIENCE),
    (8, InterviewPhase.SKILLS),
    (11, InterviewPhase.MOTIVATION),
)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    PLAYING = "playing"


@dataclass(frozen=True)
class Turn:
    """Represents a single conversation turn."""
    role: Role
    content: str
    timestamp: float = field(default_factory=time.time)

    @property
    def is_user(self) -> bool:
        return self.role == Role.USER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            # milliseconds, as the web client sends it
            "timestamp": int(self.timestamp * 1000),
        }


def classify_phase(user_turn_count: int) -> InterviewPhase:
    """Map a count of user turns onto the interview phase."""
    for upper_bound, phase in PHASE_THRESHOLDS:
        if user_turn_count <= upper_bound:
            return phase
    return InterviewPhase.CLOSING


def count_user_turns(history: Sequence[Turn]) -> int:
    return sum(1 for turn in history if turn.is_user)


def phase_for_history(history: Sequence[Turn]) -> InterviewPhase:
    return classify_phase(count_user_turns(history))


@dataclass
class CandidateFacts:
    """Facts extracted about the candidate. Each field is filled at most once."""
    name: Optional[str] = None
    university: Optional[str] = None
    company: Optional[str] = None
    experience: Optional[str] = None
    skills: List[str] = field(default_factory=list)

    def is_known(self, kind: str) -> bool:
        value = getattr(self, kind)
        return bool(value)

    def fill(self, kind: str, value: str) -> bool:
        """Set a fact if its slot is still empty. Returns True when written."""
        if self.is_known(kind):
            return False
        if kind == "skills":
            self.skills = [value]
        else:
            setattr(self, kind, value)
        return True

    def known(self) -> Dict[str, Any]:
        """Known, non-empty facts in a stable order."""
        result: Dict[str, Any] = {}
        for kind in FACT_KINDS:
            if self.is_known(kind):
                value = getattr(self, kind)
                result[kind] = list(value) if isinstance(value, list) else value
        return result

    def to_dict(self) -> Dict[str, Any]:
        return self.known()


FACT_KINDS = ("name", "university", "company", "experience", "skills")


INTERVIEW_FOCUS_LABELS = {
    "hr": "人事面接",
    "final": "最終面接",
    "tech": "技術面接",
    "technical": "技術面接",
    "case": "ケース面接",
    "group": "グループ面接",
    "first": "一次面接",
    "second": "二次面接",
    "third": "三次面接",
}


@dataclass
class InterviewProfile:
    """Applicant context supplied when a session starts."""
    applicant_name: Optional[str] = None
    company_name: Optional[str] = None
    role: Optional[str] = None
    job_description: Optional[str] = None
    interview_focus: Optional[str] = None

    @property
    def focus_label(self) -> Optional[str]:
        if not self.interview_focus:
            return None
        return INTERVIEW_FOCUS_LABELS.get(self.interview_focus.lower(), self.interview_focus)

    @property
    def heading(self) -> str:
        if self.company_name and self.focus_label:
            return f"{self.company_name}｜{self.focus_label}"
        return self.company_name or self.focus_label or "AI面接システム"

    def is_empty(self) -> bool:
        return not any([self.applicant_name, self.company_name, self.role,
                        self.job_description, self.interview_focus])


@dataclass
class SessionSummary:
    """What a finished session looked like."""
    session_ref: str
    elapsed_seconds: float
    billed_minutes: int
    turn_count: int
    phase: InterviewPhase
    facts: CandidateFacts
    recording_sessions: int = 0
    errors: List[str] = field(default_factory=list)
