"""Infrastructure components for the voice interview system.

This module contains the concrete collaborators behind the interview loop:
audio devices, the conversation endpoints and local persistence.
"""

# Audio infrastructure
from .audio import Microphone, Speaker, SpeechSynthesizer

# LLM infrastructure
from .llm import VertexRestClient, GeminiConversationEndpoint, HttpConversationEndpoint, FeedbackGenerator

# Data infrastructure
from .data import JsonSessionStore, UsageLedger

__all__ = [
    # Audio
    "Microphone", "Speaker", "SpeechSynthesizer",

    # LLM
    "VertexRestClient", "GeminiConversationEndpoint", "HttpConversationEndpoint", "FeedbackGenerator",

    # Data
    "JsonSessionStore", "UsageLedger",
]
