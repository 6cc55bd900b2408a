import base64
import json

import pytest
import requests

from voice_interview.infrastructure.llm import (
    GeminiConversationEndpoint, HttpConversationEndpoint, VertexRestClient
)
from voice_interview.interview.errors import EndpointError, MalformedReplyError
from voice_interview.interview.schemas import ConversationRequest


def _request(**overrides):
    values = dict(
        audio=b"RIFF-audio",
        mime_type="audio/wav",
        system_prompt="あなたは面接官です",
        context_json=json.dumps({"phase": "introduction", "totalExchanges": 0}),
        session_ref="s1",
    )
    values.update(overrides)
    return ConversationRequest(**values)


class FakeClient:
    def __init__(self, output=None, error=None):
        self.output = output
        self.error = error
        self.calls = []

    def generate_content(self, prompt_text, audio=None, mime_type=None):
        self.calls.append({"prompt": prompt_text, "audio": audio, "mime_type": mime_type})
        if self.error is not None:
            raise self.error
        return self.output


class FakeSynthesizer:
    mime_type = "audio/wav"

    def __init__(self, error=None):
        self.error = error

    def synthesize(self, text):
        if self.error is not None:
            raise self.error
        return b"WAV:" + text.encode("utf-8")


def test_gemini_endpoint_parses_json_reply_and_synthesizes(run):
    client = FakeClient('{"text": "ありがとうございます。", "transcript": "田中です"}')
    endpoint = GeminiConversationEndpoint(client, FakeSynthesizer())

    reply = run(endpoint.converse(_request()))

    assert reply.text == "ありがとうございます。"
    assert reply.transcript == "田中です"
    assert reply.mime_type == "audio/wav"
    assert reply.audio_bytes() == "WAV:ありがとうございます。".encode("utf-8")

    call = client.calls[0]
    assert call["audio"] == b"RIFF-audio"
    assert call["prompt"].startswith("あなたは面接官です")
    assert '"transcript"' in call["prompt"]


def test_gemini_endpoint_without_tts_is_text_only():
    endpoint = GeminiConversationEndpoint(FakeClient("次の質問です。"))
    reply = endpoint.converse_sync(_request())
    assert reply.text == "次の質問です。"
    assert reply.transcript is None
    assert not reply.has_audio


def test_tts_failure_falls_back_to_text():
    endpoint = GeminiConversationEndpoint(
        FakeClient('{"text": "はい", "transcript": "hi"}'),
        FakeSynthesizer(error=RuntimeError("quota")),
    )
    reply = endpoint.converse_sync(_request())
    assert reply.text == "はい"
    assert not reply.has_audio


def test_model_failure_is_an_endpoint_error():
    endpoint = GeminiConversationEndpoint(FakeClient(error=RuntimeError("Vertex REST error 503")))
    with pytest.raises(EndpointError, match="Failed to process conversation"):
        endpoint.converse_sync(_request())


def test_blank_model_output_is_malformed():
    endpoint = GeminiConversationEndpoint(FakeClient("   "))
    with pytest.raises(MalformedReplyError):
        endpoint.converse_sync(_request())


class FakeResponse:
    def __init__(self, status_code, text):
        self.status_code = status_code
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.posts = []

    def post(self, url, files=None, data=None, timeout=None):
        self.posts.append({"url": url, "files": files, "data": data, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def test_http_endpoint_posts_multipart_form():
    body = json.dumps({"text": "Q2", "transcript": "I am Taro"})
    session = FakeSession(FakeResponse(200, body))
    endpoint = HttpConversationEndpoint("https://example.test/api", timeout=5, session=session)

    reply = endpoint.converse_sync(_request())

    assert reply.text == "Q2"
    post = session.posts[0]
    assert post["url"] == "https://example.test/api"
    assert post["timeout"] == 5
    assert post["files"]["audio"] == ("recording.wav", b"RIFF-audio", "audio/wav")
    assert post["data"]["systemPrompt"] == "あなたは面接官です"
    assert post["data"]["interviewId"] == "s1"
    assert json.loads(post["data"]["context"])["phase"] == "introduction"


def test_http_error_status_is_reported():
    endpoint = HttpConversationEndpoint("https://example.test/api", session=FakeSession(FakeResponse(500, "boom")))
    with pytest.raises(EndpointError, match="API Error: 500 - boom"):
        endpoint.converse_sync(_request())


def test_http_transport_failure_is_an_endpoint_error():
    session = FakeSession(error=requests.ConnectionError("refused"))
    endpoint = HttpConversationEndpoint("https://example.test/api", session=session)
    with pytest.raises(EndpointError):
        endpoint.converse_sync(_request())


def test_http_body_without_text_is_malformed():
    session = FakeSession(FakeResponse(200, json.dumps({"error": "nope"})))
    endpoint = HttpConversationEndpoint("https://example.test/api", session=session)
    with pytest.raises(MalformedReplyError):
        endpoint.converse_sync(_request())


def test_vertex_parts_put_audio_before_prompt():
    parts = VertexRestClient.build_parts("prompt", b"abc", "audio/wav")
    assert parts[0]["inlineData"] == {
        "mimeType": "audio/wav",
        "data": base64.b64encode(b"abc").decode("ascii"),
    }
    assert parts[1] == {"text": "prompt"}
    assert VertexRestClient.build_parts("prompt") == [{"text": "prompt"}]


def test_vertex_text_joined_from_first_candidate():
    body = {"candidates": [{"content": {"parts": [{"text": "こんにちは"}, {"inlineData": {}}, {"text": "!"}]}}]}
    assert VertexRestClient.extract_text(body) == "こんにちは!"
    assert VertexRestClient.extract_text({"text": "plain"}) == "plain"
    assert VertexRestClient.extract_text({"candidates": []}) == '{"candidates":[]}'


def test_vertex_url_points_at_the_model():
    client = VertexRestClient(project="demo", location="asia-northeast1", model="gemini-2.0-flash")
    assert client.generate_url == (
        "https://asia-northeast1-aiplatform.googleapis.com/v1/projects/demo/locations/asia-northeast1"
        "/publishers/google/models/gemini-2.0-flash:generateContent"
    )
