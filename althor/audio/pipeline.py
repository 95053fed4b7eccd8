"""
Voice command pipeline.

Records a spoken request, transcribes it, and either returns the raw
transcript (chat input) or asks a provider to extract structured form
fields from it (form input). Extraction output that is not valid JSON
falls back to using the transcript as the topic.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from ..config import ModelConfig
from ..errors import (
    AlthorError,
    DeviceUnavailableError,
    EmptyTranscriptError,
    JSONParseFailure,
    NetworkFailureError,
    PipelineStateError,
)
from ..providers.base import GenerationRequest
from ..providers.prompts import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_TONE,
    VOICE_EXTRACTION_INSTRUCTION,
    ContentRequest,
)
from ..providers.registry import ProviderRegistry
from .recorder import AudioRecorder
from .transcriber import Transcriber

logger = logging.getLogger(__name__)


class VoiceState(str, Enum):
    """States of one voice command attempt."""
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ExtractedVoiceCommand:
    """Form fields extracted from a spoken request."""
    topic: str = ""
    content_type: str = DEFAULT_CONTENT_TYPE
    tone: str = DEFAULT_TONE
    keywords: str = ""
    additional_info: str = ""

    def to_content_request(self) -> ContentRequest:
        return ContentRequest(
            topic=self.topic,
            content_type=self.content_type,
            tone=self.tone,
            keywords=self.keywords,
            additional_info=self.additional_info,
        )


@dataclass(frozen=True)
class Parsed:
    """Extraction output decoded successfully."""
    command: ExtractedVoiceCommand


@dataclass(frozen=True)
class Fallback:
    """Extraction output was unusable; the command holds the defaults."""
    command: ExtractedVoiceCommand
    error: JSONParseFailure


DecodedCommand = Union[Parsed, Fallback]

# JSON keys requested from the model, mapped to command fields
_FIELD_KEYS = {
    "topic": "topic",
    "contentType": "content_type",
    "tone": "tone",
    "keywords": "keywords",
    "additionalInfo": "additional_info",
}

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def _coerce_field(value: Any) -> Optional[str]:
    """A usable string for one field, or None to keep the default."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        joined = ", ".join(item.strip() for item in value if item.strip())
        return joined or None
    return None


def decode_voice_command(text: str, transcript: str) -> DecodedCommand:
    """
    Decode extraction output into a command. Never raises.

    Args:
        text: The provider's reply, expected to be a JSON object
        transcript: The raw transcript, used as the topic on fallback

    Returns:
        ``Parsed`` with fields merged over the defaults, or ``Fallback``
        with ``topic = transcript`` and every other field defaulted.
    """
    candidate = text.strip()
    fenced = _CODE_FENCE.match(candidate)
    if fenced:
        candidate = fenced.group(1)

    try:
        data = json.loads(candidate)
    except ValueError as e:
        return Fallback(ExtractedVoiceCommand(topic=transcript), JSONParseFailure(str(e)))

    if not isinstance(data, dict):
        failure = JSONParseFailure(f"expected a JSON object, got {type(data).__name__}")
        return Fallback(ExtractedVoiceCommand(topic=transcript), failure)

    fields = {}
    for key, attr in _FIELD_KEYS.items():
        value = _coerce_field(data.get(key, data.get(attr)))
        if value is not None:
            fields[attr] = value
    return Parsed(ExtractedVoiceCommand(**fields))


class VoiceCommandPipeline:
    """
    State machine for one voice command at a time.

    ``IDLE -> RECORDING -> TRANSCRIBING -> (EXTRACTING) -> DONE | FAILED``

    ``DONE`` and ``FAILED`` are terminal for an attempt; call ``reset()``
    before the next ``start()``. Stopping when not recording is a no-op.

    Args:
        recorder: Microphone recorder, owned by this pipeline while recording
        transcriber: Speech-to-text backend
        registry: Provider lookup table used for extraction
        config_provider: Returns the current model configuration
    """

    def __init__(
        self,
        recorder: AudioRecorder,
        transcriber: Transcriber,
        registry: ProviderRegistry,
        config_provider: Callable[[], ModelConfig],
    ):
        self.recorder = recorder
        self.transcriber = transcriber
        self.registry = registry
        self.config_provider = config_provider
        self.state = VoiceState.IDLE
        self.last_error: Optional[AlthorError] = None
        self.last_transcript: Optional[str] = None

    def _transition(self, new_state: VoiceState) -> None:
        logger.info(f"Voice pipeline: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _fail(self, error: AlthorError) -> None:
        self.last_error = error
        self._transition(VoiceState.FAILED)

    async def start(self) -> None:
        """
        Acquire the microphone and start recording.

        Raises:
            PipelineStateError: If the pipeline is not idle
            DeviceUnavailableError: If the microphone cannot be acquired;
                the pipeline stays idle
        """
        if self.state != VoiceState.IDLE:
            raise PipelineStateError(f"Cannot start recording while {self.state.value}")

        self.last_error = None
        self.last_transcript = None
        try:
            await self.recorder.start_recording()
        except DeviceUnavailableError as e:
            self.last_error = e
            logger.warning(f"Microphone unavailable: {e}")
            raise
        self._transition(VoiceState.RECORDING)

    async def stop_and_transcribe(self) -> Optional[str]:
        """
        Stop recording and return the transcript.

        Returns:
            The transcript, or None if the pipeline was not recording.
        """
        if self.state != VoiceState.RECORDING:
            logger.debug(f"Stop ignored while {self.state.value}")
            return None

        transcript = await self._transcribe()
        self._transition(VoiceState.DONE)
        return transcript

    async def stop_and_extract(self) -> Optional[ExtractedVoiceCommand]:
        """
        Stop recording, transcribe, and extract structured form fields.

        Malformed extraction output never raises; it yields the fallback
        command built from the transcript.

        Returns:
            The extracted command, or None if the pipeline was not recording.

        Raises:
            EmptyTranscriptError: If no speech was recognized (no extraction call)
            NetworkFailureError: If transcription or extraction cannot reach its service
        """
        if self.state != VoiceState.RECORDING:
            logger.debug(f"Stop ignored while {self.state.value}")
            return None

        transcript = await self._transcribe()
        self._transition(VoiceState.EXTRACTING)

        request = GenerationRequest.from_config(
            self.config_provider(),
            new_user_text=transcript,
            system_preamble=VOICE_EXTRACTION_INSTRUCTION,
        )
        try:
            result = await self.registry.generate(request)
        except AlthorError as e:
            self._fail(e)
            raise

        decoded = decode_voice_command(result.text, transcript)
        if isinstance(decoded, Fallback):
            logger.warning(f"Extraction output was not usable JSON, using transcript as topic: {decoded.error}")
        self._transition(VoiceState.DONE)
        return decoded.command

    async def _transcribe(self) -> str:
        self._transition(VoiceState.TRANSCRIBING)
        try:
            clip = await self.recorder.stop_recording()
            result = await self.transcriber.transcribe(clip)
        except AlthorError as e:
            self._fail(e)
            raise
        except Exception as e:
            error = NetworkFailureError(f"Transcription failed: {e}")
            self._fail(error)
            raise error from e
        finally:
            # Stop normally releases the device; make sure of it on errors too
            await self.recorder.release()

        if not result.text.strip():
            error = EmptyTranscriptError("No speech detected. Please try again.")
            self._fail(error)
            raise error

        self.last_transcript = result.text
        return result.text

    async def cancel(self) -> None:
        """Abandon a recording in progress, releasing the microphone."""
        if self.state == VoiceState.RECORDING:
            await self.recorder.release()
            self._transition(VoiceState.IDLE)

    async def reset(self) -> None:
        """Return to ``IDLE`` so a new attempt can start."""
        if self.state == VoiceState.RECORDING:
            await self.recorder.release()
        if self.state != VoiceState.IDLE:
            self._transition(VoiceState.IDLE)
        self.last_error = None
