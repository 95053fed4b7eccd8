"""
Conversational content agent.

Coordinates the transcript, the provider registry and regeneration to
implement the chat flow: a user turn is appended and visible before its
request is dispatched, and the assistant turn is appended only when the
reply arrives.
"""

import logging
from typing import TYPE_CHECKING, Callable, Optional

from ..config import ModelConfig
from ..errors import AlthorError
from ..providers.base import GenerationRequest
from ..providers.prompts import WELCOME_MESSAGE, conversation_preamble, detect_content_request
from ..providers.registry import ProviderRegistry
from .models import ConversationTurn, Feedback, Role
from .regeneration import RegenerationController
from .store import ConversationStore

if TYPE_CHECKING:
    from ..audio.pipeline import VoiceCommandPipeline

logger = logging.getLogger(__name__)

WELCOME_TURN_ID = "welcome-message"


class ContentAgent:
    """
    Chat-style content assistant.

    Args:
        registry: Provider lookup table
        config_provider: Returns the current model configuration
        store: Transcript to use; a new one opened with a welcome turn by default
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config_provider: Callable[[], ModelConfig],
        store: Optional[ConversationStore] = None,
    ):
        self.registry = registry
        self.config_provider = config_provider
        if store is None:
            store = ConversationStore()
            store.append(ConversationTurn(Role.ASSISTANT, WELCOME_MESSAGE, id=WELCOME_TURN_ID))
        self.store = store
        self.regenerator = RegenerationController(store, registry, config_provider)

    async def submit(self, text: str) -> Optional[ConversationTurn]:
        """
        Send a user message and append the assistant's reply.

        Blank input is ignored. If generation fails the user turn stays in
        the transcript and the error propagates.

        Args:
            text: The user's message

        Returns:
            The appended assistant turn, or None for blank input.
        """
        if not text.strip():
            return None

        is_content_request = detect_content_request(text)
        history = self.store.turns
        self.store.append(ConversationTurn(Role.USER, text))

        request = GenerationRequest.from_config(
            self.config_provider(),
            new_user_text=text,
            prior_turns=history,
            system_preamble=conversation_preamble(is_content_request),
        )
        result = await self.registry.generate(request)

        return self.store.append(ConversationTurn(
            role=Role.ASSISTANT,
            content=result.text,
            is_generated_content=is_content_request,
        ))

    async def submit_voice(self, pipeline: "VoiceCommandPipeline") -> Optional[ConversationTurn]:
        """
        Stop an active recording and submit its transcript as a message.

        Returns:
            The assistant turn, or None if the pipeline was not recording.
        """
        transcript = await pipeline.stop_and_transcribe()
        if transcript is None:
            return None
        return await self.submit(transcript)

    def give_feedback(self, turn_id: str, value: Feedback) -> bool:
        """Rate an assistant turn once; returns False if rejected."""
        applied = self.store.set_feedback(turn_id, value)
        if applied:
            logger.info(f"Recorded {value.value} feedback on {turn_id}")
        return applied

    async def regenerate(self, turn_id: str) -> ConversationTurn:
        return await self.regenerator.regenerate(turn_id)

    def copy_text(self, turn_id: str) -> str:
        """Plain text of a turn for the clipboard."""
        turn = self.store.get(turn_id)
        if turn is None:
            raise AlthorError(f"No turn with id {turn_id}")
        return self.store.extract_plain_text(turn)
