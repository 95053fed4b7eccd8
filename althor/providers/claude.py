"""
Anthropic Claude provider.

The Messages API differs from chat completions: the system prompt is a
separate field, the conversation must open with a user message and
alternate roles, ``max_tokens`` is mandatory, and the reply is a list of
typed content blocks.
"""

import logging
from typing import Any, Dict, List, Optional

import anthropic
from anthropic import Anthropic

from ..config import DEFAULT_REQUEST_TIMEOUT, Provider
from ..conversation.models import Content
from ..errors import MalformedResponseError, NetworkFailureError, ProviderStatusError
from .base import GenerationRequest, ProviderAdapter

logger = logging.getLogger(__name__)


class ClaudeProvider(ProviderAdapter):
    """Anthropic Claude provider for content generation."""

    display_name = "Claude"

    def __init__(
        self,
        default_api_key: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ):
        super().__init__(Provider.ANTHROPIC, default_api_key=default_api_key, timeout=timeout)
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._clients: Dict[str, Anthropic] = {}

    def build_payload(self, request: GenerationRequest) -> Dict[str, Any]:
        messages = self.build_messages(request)
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        return {
            "model": request.model,
            "system": system,
            "messages": self._normalize_messages(messages),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    @staticmethod
    def _normalize_messages(messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        """
        Reshape chat history for the Messages API.

        Drops system and blank messages, skips assistant messages before
        the first user message, and merges consecutive same-role messages.
        """
        normalized: List[Dict[str, str]] = []
        for message in messages:
            if message["role"] == "system" or not message["content"].strip():
                continue
            if not normalized and message["role"] != "user":
                continue
            if normalized and normalized[-1]["role"] == message["role"]:
                merged = normalized[-1]["content"] + "\n\n" + message["content"]
                normalized[-1] = {"role": message["role"], "content": merged}
            else:
                normalized.append({"role": message["role"], "content": message["content"]})
        return normalized

    def _get_client(self, api_key: str) -> Anthropic:
        client = self._clients.get(api_key)
        if client is None:
            client = Anthropic(api_key=api_key, timeout=self.timeout, max_retries=0)
            self._clients[api_key] = client
        return client

    def _sync_generate(self, payload: Dict[str, Any], api_key: str) -> Content:
        """Synchronous Messages API call to be run in executor."""
        try:
            response = self._get_client(api_key).messages.create(**payload)
        except anthropic.APIStatusError as e:
            raise ProviderStatusError(
                f"Claude returned HTTP {e.status_code}: {e.message}",
                status_code=e.status_code,
            ) from e
        except anthropic.APIConnectionError as e:
            raise NetworkFailureError(f"Could not reach Claude: {e}") from e
        except anthropic.APIError as e:
            raise MalformedResponseError(f"Unexpected response from Claude: {e}") from e

        # Content blocks play the role of the choice array
        content = getattr(response, "content", None)
        if not content:
            raise MalformedResponseError("Claude returned no content blocks")
        return content
