"""
LLM provider abstractions for content generation.

Provides a unified interface for different LLM services so callers hand
over one ``GenerationRequest`` shape and always get back plain text,
whatever payload shape the vendor uses.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import (
    DEFAULT_PROVIDER,
    DEFAULT_REQUEST_TIMEOUT,
    PROVIDER_MODELS,
    ModelConfig,
    Provider,
    parse_provider,
    validate_model,
)
from ..conversation.models import Content, ConversationTurn, Role, flatten_content
from ..errors import AlthorError, MissingCredentialError
from .prompts import SYSTEM_PREAMBLE

logger = logging.getLogger(__name__)


@dataclass
class GenerationRequest:
    """Provider-independent description of one generation call."""
    provider: Provider
    model: str
    new_user_text: str
    system_preamble: str = SYSTEM_PREAMBLE
    prior_turns: List[ConversationTurn] = field(default_factory=list)
    api_key_override: Optional[str] = None

    @classmethod
    def from_config(
        cls,
        config: ModelConfig,
        new_user_text: str,
        prior_turns: Optional[List[ConversationTurn]] = None,
        system_preamble: str = SYSTEM_PREAMBLE,
    ) -> "GenerationRequest":
        """Build a request for the currently selected provider and model."""
        return cls(
            provider=config.provider,
            model=config.model,
            new_user_text=new_user_text,
            system_preamble=system_preamble,
            prior_turns=list(prior_turns or []),
            api_key_override=config.credential_override(),
        )


@dataclass
class GenerationResult:
    """Result from a successful generation call."""
    text: str
    provider: str
    model: str
    processing_time: float = 0.0


class ProviderAdapter(ABC):
    """
    Abstract base class for LLM providers.

    Subclasses build the vendor wire payload and issue the blocking SDK
    call; this class validates the request, resolves the credential and
    reduces the vendor content to a string. No caching, no retries.

    Args:
        provider: Which built-in provider this adapter serves
        default_api_key: Key used when the request carries no override
        timeout: Per-request timeout in seconds, handed to the SDK client
    """

    display_name = "Provider"

    def __init__(
        self,
        provider: Provider,
        default_api_key: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.provider = provider
        self.default_api_key = default_api_key
        self.timeout = timeout
        self.usage_stats = {
            'requests': 0,
            'successful': 0,
            'failed': 0,
        }

    @property
    def models(self) -> tuple:
        """Models advertised for this provider."""
        return PROVIDER_MODELS[self.provider]

    @property
    def is_default(self) -> bool:
        return self.provider == DEFAULT_PROVIDER

    def get_provider_name(self) -> str:
        """Get the display name of this provider."""
        return self.display_name

    def resolve_api_key(self, request: GenerationRequest) -> str:
        """
        Pick the key for a request: the override, else the adapter default.

        Raises:
            MissingCredentialError: If neither is a non-empty string.
        """
        key = (request.api_key_override or "").strip() or (self.default_api_key or "").strip()
        if not key:
            raise MissingCredentialError(
                f"{self.display_name} requires an API key. Add your key in the model settings."
            )
        return key

    def build_messages(self, request: GenerationRequest) -> List[Dict[str, str]]:
        """System preamble, prior history (system turns skipped), then the new user text."""
        messages = [{"role": Role.SYSTEM.value, "content": request.system_preamble}]
        for turn in request.prior_turns:
            if turn.role == Role.SYSTEM:
                continue
            messages.append({"role": turn.role.value, "content": flatten_content(turn.content)})
        messages.append({"role": Role.USER.value, "content": request.new_user_text})
        return messages

    def build_payload(self, request: GenerationRequest) -> Dict[str, Any]:
        """Vendor wire payload; subclasses add or reshape fields."""
        return {"model": request.model, "messages": self.build_messages(request)}

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Generate a reply for the request.

        Args:
            request: The uniform generation request

        Returns:
            GenerationResult holding the reduced plain text.

        Raises:
            UnsupportedModelError: If the model is not advertised for this provider
            MissingCredentialError: If no key is available (no network call is made)
            NetworkFailureError: If the service is unreachable or answers non-2xx
            MalformedResponseError: If the response has no usable content
        """
        validate_model(self.provider, request.model)
        api_key = self.resolve_api_key(request)
        payload = self.build_payload(request)

        start_time = time.time()
        try:
            # Run the synchronous SDK call off the event loop
            loop = asyncio.get_running_loop()
            content = await loop.run_in_executor(None, self._sync_generate, payload, api_key)
        except AlthorError as e:
            self.update_usage_stats(success=False)
            logger.warning(f"{self.display_name} generation failed: {e}")
            raise

        processing_time = time.time() - start_time
        self.update_usage_stats(success=True)
        logger.info(f"{self.display_name} ({request.model}) replied in {processing_time:.2f}s")
        return GenerationResult(
            text=flatten_content(content),
            provider=self.provider.value,
            model=request.model,
            processing_time=processing_time,
        )

    @abstractmethod
    def _sync_generate(self, payload: Dict[str, Any], api_key: str) -> Content:
        """Issue the blocking vendor call and return the raw message content."""
        pass

    def update_usage_stats(self, success: bool) -> None:
        """Update usage statistics."""
        self.usage_stats['requests'] += 1
        if success:
            self.usage_stats['successful'] += 1
        else:
            self.usage_stats['failed'] += 1

    def get_usage_stats(self) -> Dict[str, int]:
        """Get current usage statistics."""
        return self.usage_stats.copy()


def coerce_provider(provider: Any) -> Provider:
    return provider if isinstance(provider, Provider) else parse_provider(provider)
