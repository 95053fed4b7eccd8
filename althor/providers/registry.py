"""
Provider lookup table.

Callers never branch on provider names: they hand a request to the
registry, which dispatches to the adapter registered for
``request.provider``. Adding a provider means registering one more
adapter here.
"""

import logging
from typing import Dict, List

from ..config import Environment, Provider
from ..errors import UnknownProviderError
from .base import GenerationRequest, GenerationResult, ProviderAdapter, coerce_provider
from .claude import ClaudeProvider
from .openai_compat import GROQ_BASE_URL, MISTRAL_BASE_URL, OpenAICompatibleProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Dispatches generation requests to provider adapters."""

    def __init__(self, adapters: Dict[Provider, ProviderAdapter]):
        self._adapters = dict(adapters)

    def get(self, provider) -> ProviderAdapter:
        """
        Get the adapter for a provider.

        Raises:
            UnknownProviderError: If the provider is not registered.
        """
        adapter = self._adapters.get(coerce_provider(provider))
        if adapter is None:
            raise UnknownProviderError(f"No adapter registered for provider '{provider}'")
        return adapter

    def get_available_providers(self) -> List[str]:
        return [provider.value for provider in self._adapters]

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate with the adapter selected by ``request.provider``."""
        return await self.get(request.provider).generate(request)


def build_default_registry(environment: Environment) -> ProviderRegistry:
    """Build the lookup table of built-in providers at startup."""
    timeout = environment.request_timeout
    registry = ProviderRegistry({
        Provider.MISTRAL: OpenAICompatibleProvider(
            Provider.MISTRAL,
            base_url=MISTRAL_BASE_URL,
            default_api_key=environment.mistral_api_key,
            timeout=timeout,
        ),
        Provider.OPENAI: OpenAICompatibleProvider(Provider.OPENAI, timeout=timeout),
        Provider.ANTHROPIC: ClaudeProvider(timeout=timeout),
        Provider.GROQ: OpenAICompatibleProvider(
            Provider.GROQ,
            base_url=GROQ_BASE_URL,
            timeout=timeout,
        ),
    })
    logger.debug(f"Registered providers: {', '.join(registry.get_available_providers())}")
    return registry
