"""
Shared fixtures for the Althor test suite.

No test reaches the network or a microphone: SDK clients are patched,
the recorder and transcriber are mocked, and the transcription HTTP call
goes through ``httpx.MockTransport``.
"""

import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from althor.config import Environment, ModelConfig, ModelConfigStore, Provider
from althor.providers.base import GenerationResult
from althor.providers.registry import ProviderRegistry, build_default_registry


def make_completion(content):
    """Chat-completions response object as returned by the openai SDK."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_claude_message(blocks):
    """Messages API response object as returned by the anthropic SDK."""
    return SimpleNamespace(content=[SimpleNamespace(**block) for block in blocks])


def make_result(text: str) -> GenerationResult:
    return GenerationResult(text=text, provider="mistral", model="mistral-large-latest")


@pytest.fixture
def environment(tmp_path):
    return Environment(
        mistral_api_key="test-mistral-key",
        elevenlabs_api_key="test-elevenlabs-key",
        config_dir=tmp_path,
        request_timeout=5.0,
    )


@pytest.fixture
def config_store(tmp_path):
    return ModelConfigStore.load(tmp_path)


@pytest.fixture
def registry(environment):
    """The real provider lookup table (SDK clients still need patching)."""
    return build_default_registry(environment)


@pytest.fixture
def mock_registry():
    """Registry whose generate() is an AsyncMock returning 'generated text'."""
    mock = AsyncMock(spec=ProviderRegistry)
    mock.generate.return_value = make_result("generated text")
    return mock


@pytest.fixture
def default_config():
    return ModelConfig()


@pytest.fixture
def openai_config():
    return ModelConfig(provider=Provider.OPENAI, model="gpt-4o-mini", api_key="sk-test")
