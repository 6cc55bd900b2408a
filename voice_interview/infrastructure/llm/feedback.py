"""
Post-interview feedback from Gemini, text only.
"""
import logging
from typing import List

from .client import VertexRestClient
from ...interview.errors import FeedbackError
from ...interview.prompts import InterviewPrompts
from ...interview.schemas import FeedbackReport, parse_feedback_output

logger = logging.getLogger("feedback")


class FeedbackGenerator:
    """Asks the model to evaluate a finished interview transcript."""

    def __init__(self, client: VertexRestClient, temperature: float = 0.3, max_output_tokens: int = 2048):
        self.client = client
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def generate(self, transcript: str, questions: List[str]) -> FeedbackReport:
        """
        Raises:
            FeedbackError: If the model call fails or its output is unusable
        """
        prompt = InterviewPrompts.feedback_prompt(transcript, questions)
        try:
            raw = self.client.generate_content(
                prompt,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
            )
        except Exception as e:
            logger.error(f"Feedback request failed: {e}")
            raise FeedbackError(f"Failed to generate feedback: {e}") from e

        report = parse_feedback_output(raw)
        logger.info(f"Feedback generated for {len(report.feedback)} question(s)")
        return report
