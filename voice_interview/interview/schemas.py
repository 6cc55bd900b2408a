"""
Structured data models and schemas for the interview loop.
"""
import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import FeedbackError, MalformedReplyError
from .facts import FactExtractor
from .models import (
    Turn, Role, InterviewPhase, CandidateFacts,
    phase_for_history, count_user_turns
)

logger = logging.getLogger("schemas")

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class ConversationRequest(BaseModel):
    """Everything the conversation endpoint needs for one turn."""
    audio: bytes
    mime_type: str = Field(alias="mimeType")
    system_prompt: str = Field(alias="systemPrompt")
    context_json: str = Field(alias="contextJSON")
    session_ref: Optional[str] = None

    model_config = {"populate_by_name": True}


class EndpointReply(BaseModel):
    """Reply from the conversation endpoint. Only `text` is required."""
    text: str
    transcript: Optional[str] = None
    audio: Optional[str] = None  # base64
    mime_type: Optional[str] = Field(default=None, alias="mimeType")

    model_config = {"populate_by_name": True}

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("No text response from API")
        return value

    @property
    def has_audio(self) -> bool:
        return bool(self.audio)

    def audio_bytes(self) -> bytes:
        """Decode the synthesized speech."""
        if not self.audio:
            return b""
        try:
            return base64.b64decode(self.audio, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedReplyError(f"Reply audio is not valid base64: {e}")


class UsageCheck(BaseModel):
    can_start: bool = Field(alias="canStart")
    current_usage: int = Field(alias="currentUsage")
    plan_limit: int = Field(alias="planLimit")

    model_config = {"populate_by_name": True}


def parse_endpoint_reply(payload: Any) -> EndpointReply:
    """
    Validate an endpoint response body.

    Raises:
        MalformedReplyError: If the body is not an object or lacks usable text
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedReplyError(f"Endpoint returned invalid JSON: {e}")
    if not isinstance(payload, dict):
        raise MalformedReplyError(f"Endpoint returned {type(payload).__name__}, expected an object")
    try:
        return EndpointReply.model_validate(payload)
    except ValidationError as e:
        raise MalformedReplyError(f"Invalid reply structure: {e.errors()[0].get('msg', e)}")


class FeedbackItem(BaseModel):
    question: str
    answer_summary: str = Field(default="", alias="answerSummary")
    evaluation: str
    advice: str = ""
    score: Optional[int] = Field(default=None, ge=1, le=5)

    model_config = {"populate_by_name": True}


class FeedbackReport(BaseModel):
    """Post-interview evaluation, stored as-is with the session."""
    feedback: List[FeedbackItem] = Field(default_factory=list)
    overall_feedback: str = Field(alias="overallFeedback")

    model_config = {"populate_by_name": True}

    @field_validator("overall_feedback")
    @classmethod
    def overall_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("overallFeedback is empty")
        return value


def extract_json_object(raw_response: str) -> Optional[Dict[str, Any]]:
    """The outermost `{...}` in model output, or None when there is no usable object."""
    match = _JSON_OBJECT.search(raw_response)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse JSON response: %s", e)
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_model_output(raw_response: str) -> Dict[str, Optional[str]]:
    """
    Pull `{text, transcript}` out of free-form model output.

    Models are asked for JSON but sometimes wrap it in prose or code fences;
    when no usable object is found the whole output is treated as the text.
    """
    parsed = extract_json_object(raw_response)
    if parsed is None:
        return {"text": raw_response, "transcript": None}
    return {"text": parsed.get("text") or raw_response, "transcript": parsed.get("transcript")}


def parse_feedback_output(raw_response: str) -> FeedbackReport:
    """
    Raises:
        FeedbackError: If the output holds no valid feedback object
    """
    parsed = extract_json_object(raw_response)
    if parsed is None:
        raise FeedbackError("Feedback response did not contain a JSON object")
    try:
        return FeedbackReport.model_validate(parsed)
    except ValidationError as e:
        raise FeedbackError(f"Invalid feedback structure: {e.errors()[0].get('msg', e)}")


@dataclass
class ConversationState:
    """History and fact sheet for one interview session. Phase is derived."""
    history: List[Turn] = field(default_factory=list)
    facts: CandidateFacts = field(default_factory=CandidateFacts)
    extractor: FactExtractor = field(default_factory=FactExtractor, repr=False)

    @property
    def phase(self) -> InterviewPhase:
        return phase_for_history(self.history)

    @property
    def user_turn_count(self) -> int:
        return count_user_turns(self.history)

    @property
    def exchange_count(self) -> int:
        return len(self.history) // 2

    def reset(self) -> None:
        self.history = []
        self.facts = CandidateFacts()

    def add_greeting(self, text: str) -> Turn:
        turn = Turn(Role.ASSISTANT, text)
        self.history.append(turn)
        return turn

    def record_exchange(self, user_content: str, assistant_content: str,
                        transcript: Optional[str]) -> List[str]:
        """
        Append a user/assistant pair and update facts from the transcript.

        Returns:
            Fact kinds filled by this exchange
        """
        self.history.append(Turn(Role.USER, user_content))
        self.history.append(Turn(Role.ASSISTANT, assistant_content))
        if transcript:
            return self.extractor.update(self.facts, transcript)
        return []

    def to_context(self, formatted_history: str) -> Dict[str, Any]:
        """Context object sent alongside the audio."""
        return {
            "history": [turn.to_dict() for turn in self.history],
            "phase": self.phase.value,
            "candidateInfo": self.facts.to_dict(),
            "totalExchanges": self.user_turn_count,
            "formattedHistory": formatted_history,
        }
