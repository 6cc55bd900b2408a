"""
Conversation endpoints: one utterance in, interviewer reply out.

GeminiConversationEndpoint runs the whole round trip in-process (Gemini with
inline audio, then Google TTS). HttpConversationEndpoint posts the same request
to a remote service that does it for us. Both are awaited from the event loop;
the blocking HTTP work runs in a worker thread.
"""
import asyncio
import base64
import json
import logging
from typing import Optional

import requests

from .client import VertexRestClient
from ..audio.speech import SpeechSynthesizer
from ...config import ENDPOINT_TIMEOUT
from ...interview.errors import EndpointError
from ...interview.prompts import InterviewPrompts
from ...interview.schemas import (
    ConversationRequest, EndpointReply, parse_endpoint_reply, parse_model_output
)

logger = logging.getLogger("conversation")


class GeminiConversationEndpoint:
    """In-process endpoint backed by Vertex AI Gemini and Google Cloud TTS."""

    def __init__(self,
                 client: VertexRestClient,
                 synthesizer: Optional[SpeechSynthesizer] = None):
        self.client = client
        self.synthesizer = synthesizer

    async def converse(self, request: ConversationRequest) -> EndpointReply:
        return await asyncio.to_thread(self.converse_sync, request)

    def converse_sync(self, request: ConversationRequest) -> EndpointReply:
        """
        Run one conversation turn.

        Raises:
            EndpointError: If the model call fails
            MalformedReplyError: If the model produced no usable text
        """
        try:
            context = json.loads(request.context_json) if request.context_json else {}
            logger.debug(f"Context: phase={context.get('phase')} exchanges={context.get('totalExchanges')}")
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse conversation context: {e}")

        prompt = InterviewPrompts.memory_prompt(request.system_prompt)
        try:
            raw = self.client.generate_content(prompt, audio=request.audio, mime_type=request.mime_type)
        except Exception as e:
            logger.error(f"Gemini request failed: {e}")
            raise EndpointError(f"Failed to process conversation: {e}") from e

        logger.debug(f"Raw model output: {raw!r}")
        parsed = parse_model_output(raw)

        audio_b64 = None
        mime_type = None
        if self.synthesizer is not None and parsed["text"]:
            try:
                audio = self.synthesizer.synthesize(parsed["text"])
                if audio:
                    audio_b64 = base64.b64encode(audio).decode("ascii")
                    mime_type = self.synthesizer.mime_type
            except Exception as e:
                logger.warning(f"TTS generation failed, continuing with text-only response: {e}")

        return parse_endpoint_reply({
            "text": parsed["text"],
            "transcript": parsed["transcript"],
            "audio": audio_b64,
            "mimeType": mime_type,
        })


class HttpConversationEndpoint:
    """Remote endpoint accepting the multipart form the web client sends."""

    def __init__(self, url: str, timeout: int = ENDPOINT_TIMEOUT, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    async def converse(self, request: ConversationRequest) -> EndpointReply:
        return await asyncio.to_thread(self.converse_sync, request)

    def converse_sync(self, request: ConversationRequest) -> EndpointReply:
        extension = request.mime_type.split("/")[-1].split(";")[0] or "bin"
        files = {"audio": (f"recording.{extension}", request.audio, request.mime_type)}
        data = {
            "systemPrompt": request.system_prompt,
            "context": request.context_json,
            "interviewId": request.session_ref or "",
        }

        try:
            resp = self.session.post(self.url, files=files, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Endpoint request failed: {e}")
            raise EndpointError(f"Request failed: {e}") from e

        if not resp.ok:
            raise EndpointError(f"API Error: {resp.status_code} - {resp.text}")

        return parse_endpoint_reply(resp.text)
