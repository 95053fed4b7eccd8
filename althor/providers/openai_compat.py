"""
Chat-completions providers speaking the OpenAI wire format.

OpenAI itself, Mistral and Groq all accept ``{model, messages}`` on a
``/chat/completions`` endpoint, so one adapter built on the ``openai`` SDK
serves all three with a different base URL.
"""

import logging
from typing import Any, Dict, Optional

import openai

from ..config import DEFAULT_REQUEST_TIMEOUT, Provider
from ..conversation.models import Content
from ..errors import MalformedResponseError, NetworkFailureError, ProviderStatusError
from .base import ProviderAdapter

logger = logging.getLogger(__name__)

MISTRAL_BASE_URL = "https://api.mistral.ai/v1"
GROQ_BASE_URL = "https://api.groq.com/openai/v1"

DISPLAY_NAMES = {
    Provider.MISTRAL: "Mistral AI",
    Provider.OPENAI: "OpenAI",
    Provider.GROQ: "Groq",
}


class OpenAICompatibleProvider(ProviderAdapter):
    """Provider for any OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        provider: Provider,
        base_url: Optional[str] = None,
        default_api_key: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        temperature: float = 0.7,
    ):
        super().__init__(provider, default_api_key=default_api_key, timeout=timeout)
        self.display_name = DISPLAY_NAMES.get(provider, provider.value)
        self.base_url = base_url
        self.temperature = temperature
        self._clients: Dict[str, openai.OpenAI] = {}

    def build_payload(self, request) -> Dict[str, Any]:
        payload = super().build_payload(request)
        payload["temperature"] = self.temperature
        return payload

    def _get_client(self, api_key: str) -> openai.OpenAI:
        client = self._clients.get(api_key)
        if client is None:
            # Retries are disabled; every retry is user-triggered
            client = openai.OpenAI(
                api_key=api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
            self._clients[api_key] = client
        return client

    def _sync_generate(self, payload: Dict[str, Any], api_key: str) -> Content:
        """Synchronous completion call to be run in executor."""
        try:
            response = self._get_client(api_key).chat.completions.create(**payload)
        except openai.APIStatusError as e:
            raise ProviderStatusError(
                f"{self.display_name} returned HTTP {e.status_code}: {e.message}",
                status_code=e.status_code,
            ) from e
        except openai.APIConnectionError as e:
            raise NetworkFailureError(f"Could not reach {self.display_name}: {e}") from e
        except openai.APIError as e:
            raise MalformedResponseError(f"Unexpected response from {self.display_name}: {e}") from e

        choices = getattr(response, "choices", None)
        if not choices:
            raise MalformedResponseError(f"{self.display_name} returned no choices")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if content is None:
            raise MalformedResponseError(f"{self.display_name} returned a choice without content")
        return content
