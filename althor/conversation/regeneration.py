"""
Feedback-driven regeneration of assistant turns.
"""

import logging
from typing import Callable, Set

from ..config import ModelConfig
from ..errors import InvalidRegenerationTargetError, RegenerationInProgressError
from ..providers.base import GenerationRequest
from ..providers.prompts import regeneration_preamble
from ..providers.registry import ProviderRegistry
from .models import ConversationTurn, Role
from .store import ConversationStore

logger = logging.getLogger(__name__)


class RegenerationController:
    """
    Produces a replacement for one assistant turn without touching the rest
    of the transcript.

    The history sent to the provider stops before the user turn that
    prompted the target, the user turn's text is re-sent, and the system
    instruction is strengthened. At most one regeneration per turn id runs
    at a time.

    Args:
        store: Transcript holding the target turn
        registry: Provider lookup table
        config_provider: Returns the current model configuration
    """

    def __init__(
        self,
        store: ConversationStore,
        registry: ProviderRegistry,
        config_provider: Callable[[], ModelConfig],
    ):
        self.store = store
        self.registry = registry
        self.config_provider = config_provider
        self._in_flight: Set[str] = set()

    def is_regenerating(self, turn_id: str) -> bool:
        return turn_id in self._in_flight

    def build_request(self, target_id: str) -> GenerationRequest:
        """
        Validate the target and build its regeneration request.

        Raises:
            InvalidRegenerationTargetError: If the target is missing, is not
                an assistant turn, or does not directly follow a user turn.
        """
        turns = self.store.turns
        index = self.store.index_of(target_id)
        if index is None:
            raise InvalidRegenerationTargetError(f"No turn with id {target_id}")

        target = turns[index]
        if target.role != Role.ASSISTANT:
            raise InvalidRegenerationTargetError("Only assistant responses can be regenerated")
        if index == 0 or turns[index - 1].role != Role.USER:
            raise InvalidRegenerationTargetError("Cannot find the user request for this response")

        user_turn = turns[index - 1]
        return GenerationRequest.from_config(
            self.config_provider(),
            new_user_text=self.store.extract_plain_text(user_turn),
            prior_turns=turns[:index - 1],
            system_preamble=regeneration_preamble(target.is_generated_content),
        )

    async def regenerate(self, target_id: str) -> ConversationTurn:
        """
        Replace an assistant turn with a freshly generated one.

        The new turn keeps the original's ``is_generated_content`` flag and
        gets a new id, a new timestamp and no feedback. On any failure the
        original turn is left in place and the error propagates.

        Returns:
            The replacement turn.

        Raises:
            RegenerationInProgressError: If this turn is already regenerating
            InvalidRegenerationTargetError: If the target is not regenerable
        """
        if target_id in self._in_flight:
            raise RegenerationInProgressError("This response is already being regenerated")

        request = self.build_request(target_id)
        target = self.store.get(target_id)

        self._in_flight.add(target_id)
        try:
            result = await self.registry.generate(request)
        finally:
            self._in_flight.discard(target_id)

        new_turn = ConversationTurn(
            role=Role.ASSISTANT,
            content=result.text,
            is_generated_content=target.is_generated_content,
        )
        if not self.store.replace_at(target_id, new_turn):
            raise InvalidRegenerationTargetError(f"Turn {target_id} disappeared during regeneration")

        logger.info(f"Regenerated turn {target_id} as {new_turn.id}")
        return new_turn
