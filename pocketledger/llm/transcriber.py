from loguru import logger
from openai import OpenAI, OpenAIError

from pocketledger.errors import TranscriptionError


class Transcriber:
    """Speech-to-text through the OpenAI audio API."""

    def __init__(self, api_key: str, model: str = "whisper-1", base_url: str | None = None, client=None):
        self.client = client or OpenAI(api_key=api_key, base_url=base_url)
        self.model = model

    def _transcribe(self, audio: bytes, filename: str) -> str:
        result = self.client.audio.transcriptions.create(
            model=self.model,
            file=(filename, audio),
        )
        text = (getattr(result, "text", "") or "").strip()
        if not text:
            raise TranscriptionError("empty transcription")
        return text

    def transcribe(self, audio: bytes, filename: str = "voice.ogg") -> str | None:
        """Return the transcribed text, or None when the audio can't be understood."""
        if not audio:
            logger.warning("Received empty audio payload")
            return None
        try:
            text = self._transcribe(audio, filename)
        except (OpenAIError, TranscriptionError) as e:
            logger.error("Transcription failed: {}", e)
            return None
        logger.info("Transcribed {} bytes of audio: {}", len(audio), text)
        return text
