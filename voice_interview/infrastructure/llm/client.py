"""
Gemini on Vertex AI over plain REST, with the utterance sent as inline audio.
"""
import base64
import json
import logging
from typing import Optional, Dict, Any, List

import requests
import google.auth
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS

logger = logging.getLogger("llm_client")

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class VertexRestClient:
    """Calls `generateContent` on a Gemini model with a cached bearer token."""

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.timeout = timeout
        self._credentials = None

    @property
    def generate_url(self) -> str:
        return (
            f"https://{self.location}-aiplatform.googleapis.com/v1/"
            f"projects/{self.project}/locations/{self.location}"
            f"/publishers/google/models/{self.model}:generateContent"
        )

    def _load_credentials(self):
        if self.credentials_json:
            return service_account.Credentials.from_service_account_file(
                self.credentials_json, scopes=SCOPES,
            )
        credentials, _ = google.auth.default(scopes=SCOPES)
        return credentials

    def _bearer_token(self) -> str:
        if self._credentials is None:
            self._credentials = self._load_credentials()
        if not self._credentials.valid:
            logger.debug("Refreshing Vertex access token")
            self._credentials.refresh(google.auth.transport.requests.Request())
        return self._credentials.token

    @staticmethod
    def build_parts(prompt_text: str,
                    audio: Optional[bytes] = None,
                    mime_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Request parts: the audio clip (if any) followed by the prompt."""
        parts: List[Dict[str, Any]] = []
        if audio:
            encoded = base64.b64encode(audio).decode("ascii")
            parts.append({"inlineData": {"mimeType": mime_type or "audio/wav", "data": encoded}})
        parts.append({"text": prompt_text})
        return parts

    def generate_content(self,
                         prompt_text: str,
                         audio: Optional[bytes] = None,
                         mime_type: Optional[str] = None,
                         temperature: float = 0.7,
                         max_output_tokens: int = MAX_OUTPUT_TOKENS) -> str:
        """
        Ask the model for a reply to the prompt (and the clip, when given).

        Raises:
            RuntimeError: On an HTTP error status
            requests.RequestException: On transport failure
        """
        payload = {
            "contents": [{"role": "user", "parts": self.build_parts(prompt_text, audio, mime_type)}],
            "generationConfig": {
                "temperature": float(temperature),
                "maxOutputTokens": int(max_output_tokens),
            },
        }
        headers = {"Authorization": f"Bearer {self._bearer_token()}"}

        logger.debug(f"generateContent on {self.model} (audio={len(audio) if audio else 0} bytes)")
        resp = requests.post(self.generate_url, headers=headers, json=payload, timeout=self.timeout)
        if resp.status_code >= 400:
            raise RuntimeError(f"Vertex REST error {resp.status_code}: {resp.text}")
        return self.extract_text(resp.json())

    @staticmethod
    def extract_text(resp_json: Dict[str, Any]) -> str:
        """Concatenated text parts of the first candidate."""
        candidates = resp_json.get("candidates") or []
        first = candidates[0] if candidates and isinstance(candidates[0], dict) else {}
        content = first.get("content") or {}
        texts = [
            part["text"] for part in content.get("parts") or []
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        if texts:
            return "".join(texts)
        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]

        logger.warning("Unexpected Vertex response shape")
        return json.dumps(resp_json, separators=(",", ":"), ensure_ascii=False)
