"""
Text-to-speech using Google Cloud TTS.
"""
import logging
from typing import Optional

from ....config import LANGUAGE_CODE, TTS_VOICE, TTS_SPEAKING_RATE, TTS_PITCH, TTS_SAMPLE_RATE

logger = logging.getLogger("speech_tts")

TTS_MIME_TYPE = "audio/wav"


class SpeechSynthesizer:
    """Google Cloud TTS wrapper returning WAV bytes for the speaker."""

    def __init__(self,
                 voice: str = TTS_VOICE,
                 language_code: str = LANGUAGE_CODE,
                 speaking_rate: float = TTS_SPEAKING_RATE,
                 pitch: float = TTS_PITCH,
                 sample_rate: int = TTS_SAMPLE_RATE,
                 credentials_json: Optional[str] = None):
        self.voice = voice
        self.language_code = language_code
        self.speaking_rate = speaking_rate
        self.pitch = pitch
        self.sample_rate = sample_rate
        self.credentials_json = credentials_json
        self._client = None

    @property
    def mime_type(self) -> str:
        return TTS_MIME_TYPE

    def _get_client(self):
        # Imported lazily: the client library is heavy and only needed with TTS on
        if self._client is None:
            from google.cloud import texttospeech
            if self.credentials_json:
                self._client = texttospeech.TextToSpeechClient.from_service_account_file(self.credentials_json)
            else:
                self._client = texttospeech.TextToSpeechClient()
        return self._client

    def synthesize(self, text: str) -> bytes:
        """
        Synthesize speech for text.

        Returns:
            WAV (LINEAR16) bytes, empty for blank text

        Raises:
            Exception: Whatever the client library raises
        """
        if not text.strip():
            return b""

        from google.cloud import texttospeech

        client = self._get_client()
        synthesis_input = texttospeech.SynthesisInput(text=text)
        voice_params = texttospeech.VoiceSelectionParams(
            language_code=self.language_code,
            name=self.voice,
        )
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            speaking_rate=self.speaking_rate,
            pitch=self.pitch,
        )

        response = client.synthesize_speech(
            input=synthesis_input, voice=voice_params, audio_config=audio_config
        )
        logger.debug(f"Synthesized {len(response.audio_content)} bytes for {len(text)} chars")
        return response.audio_content
