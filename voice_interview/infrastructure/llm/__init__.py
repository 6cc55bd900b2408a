"""LLM clients, conversation endpoints and feedback generation."""

from .client import VertexRestClient
from .conversation import GeminiConversationEndpoint, HttpConversationEndpoint
from .feedback import FeedbackGenerator

__all__ = ["VertexRestClient", "GeminiConversationEndpoint", "HttpConversationEndpoint", "FeedbackGenerator"]
