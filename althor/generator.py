"""
Form-based content generation.

Turns the fields of the content form (or a spoken command extracted into
the same fields) into one instruction and asks the selected provider for
the finished piece.
"""

import logging
from typing import TYPE_CHECKING, Callable

from .config import ModelConfig
from .errors import InvalidContentRequestError
from .providers.base import GenerationRequest, GenerationResult
from .providers.prompts import SYSTEM_PREAMBLE, ContentRequest, build_content_prompt
from .providers.registry import ProviderRegistry

if TYPE_CHECKING:
    from .audio.pipeline import ExtractedVoiceCommand

logger = logging.getLogger(__name__)


class ContentGenerator:
    """
    Generates standalone content from form fields.

    Example:
        >>> generator = ContentGenerator(registry, lambda: config_store.config)
        >>> result = await generator.generate(ContentRequest(topic="coffee"))
        >>> result.text[:20]
        '# The Art of Coffee'
    """

    def __init__(self, registry: ProviderRegistry, config_provider: Callable[[], ModelConfig]):
        self.registry = registry
        self.config_provider = config_provider

    async def generate(self, content_request: ContentRequest) -> GenerationResult:
        """
        Generate content for a filled-in form.

        Raises:
            InvalidContentRequestError: If the topic is blank (no call is made)
        """
        if not content_request.topic.strip():
            raise InvalidContentRequestError("Please enter a topic for your content")

        prompt = build_content_prompt(content_request)
        logger.debug(f"Content prompt: {prompt}")
        request = GenerationRequest.from_config(
            self.config_provider(),
            new_user_text=prompt,
            system_preamble=SYSTEM_PREAMBLE,
        )
        return await self.registry.generate(request)

    async def generate_from_voice(self, command: "ExtractedVoiceCommand") -> GenerationResult:
        return await self.generate(command.to_content_request())
