"""
Speech-to-text transcription using a hosted service.

Posts one recorded clip per request to the ElevenLabs speech-to-text API
as a multipart form and returns the transcript. No streaming or partial
transcription.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import DEFAULT_REQUEST_TIMEOUT, DEFAULT_STT_MODEL
from ..errors import MalformedResponseError, MissingCredentialError, NetworkFailureError, ProviderStatusError

logger = logging.getLogger(__name__)

ELEVENLABS_STT_URL = "https://api.elevenlabs.io/v1/speech-to-text"


@dataclass
class TranscriptionResult:
    """Transcript returned by the speech-to-text backend."""
    text: str                                 # Full transcribed text
    language: Optional[str] = None            # Detected language
    processing_time: Optional[float] = None   # Time taken to transcribe


class Transcriber(ABC):
    """Abstract base class for transcription backends."""

    @abstractmethod
    async def transcribe(self, audio_data: bytes) -> TranscriptionResult:
        """Transcribe one complete audio clip."""
        pass


class ElevenLabsTranscriber(Transcriber):
    """
    ElevenLabs speech-to-text client.

    Args:
        api_key: ElevenLabs API key, sent as the ``xi-api-key`` header
        model_id: Transcription model identifier
        timeout: Request timeout in seconds
        endpoint: Override for the speech-to-text URL
        transport: Optional httpx transport, e.g. a mock in tests
    """

    def __init__(
        self,
        api_key: Optional[str],
        model_id: str = DEFAULT_STT_MODEL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        endpoint: str = ELEVENLABS_STT_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model_id = model_id
        self.timeout = timeout
        self.endpoint = endpoint
        self.transport = transport

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def transcribe(self, audio_data: bytes) -> TranscriptionResult:
        """
        Transcribe a WAV clip.

        Args:
            audio_data: Complete WAV file bytes

        Returns:
            TranscriptionResult with the stripped transcript (possibly empty).

        Raises:
            MissingCredentialError: If no API key is configured
            NetworkFailureError: If the service is unreachable or answers non-2xx
            MalformedResponseError: If the response carries no ``text`` field
        """
        if not self.api_key:
            raise MissingCredentialError("ELEVENLABS_API_KEY is not set; voice commands are unavailable")

        start_time = time.time()
        files = {"file": ("recording.wav", audio_data, "audio/wav")}
        data = {"model_id": self.model_id}
        headers = {"xi-api-key": self.api_key}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.endpoint, data=data, files=files, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderStatusError(
                f"Transcription failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkFailureError(f"Could not reach the transcription service: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError("Transcription response is not JSON") from e

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise MalformedResponseError("Transcription response has no text field")

        processing_time = time.time() - start_time
        logger.info(f"Transcribed {len(audio_data)} bytes in {processing_time:.2f}s")
        return TranscriptionResult(
            text=text.strip(),
            language=payload.get("language_code"),
            processing_time=processing_time,
        )
