"""
voice_interview: spoken mock-interview loop.

Silence-segmented candidate turns are sent to a generative-AI endpoint, the
interviewer's reply is played back, and the conversation history, phase and
candidate facts keep each new prompt coherent.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.orchestrator import TurnOrchestrator
from .interview.models import Turn, InterviewPhase, InterviewProfile, SessionSummary

__all__ = ["TurnOrchestrator", "Turn", "InterviewPhase", "InterviewProfile", "SessionSummary"]
