"""
Application configuration.

Two layers:

- ``Environment``: default API keys and knobs read once from the process
  environment at startup. A missing default-provider key is fatal.
- ``ModelConfig`` / ``ModelConfigStore``: the user's provider selection,
  persisted as JSON in local storage, loaded at init and saved on every
  mutation.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple

from .errors import ConfigurationError, UnknownProviderError, UnsupportedModelError

logger = logging.getLogger(__name__)


class Provider(str, Enum):
    """Built-in LLM providers."""
    MISTRAL = "mistral"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROQ = "groq"


DEFAULT_PROVIDER = Provider.MISTRAL

# Models advertised per provider; the first entry is the provider default.
PROVIDER_MODELS: Dict[Provider, Tuple[str, ...]] = {
    Provider.MISTRAL: (
        "mistral-large-latest",
        "mistral-medium-latest",
        "mistral-small-latest",
        "open-mistral-nemo",
    ),
    Provider.OPENAI: (
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4-turbo",
        "gpt-3.5-turbo",
    ),
    Provider.ANTHROPIC: (
        "claude-3-5-sonnet-latest",
        "claude-3-5-haiku-latest",
        "claude-3-opus-latest",
    ),
    Provider.GROQ: (
        "llama-3.3-70b-versatile",
        "llama-3.1-8b-instant",
        "mixtral-8x7b-32768",
    ),
}

DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_STT_MODEL = "scribe_v1"
CONFIG_FILENAME = "model_config.json"


def parse_provider(name: str) -> Provider:
    """Look up a provider by name, raising ``UnknownProviderError``."""
    try:
        return Provider(str(name).lower())
    except ValueError:
        raise UnknownProviderError(f"Unknown provider '{name}'") from None


def default_model(provider: Provider) -> str:
    return PROVIDER_MODELS[provider][0]


def validate_model(provider: Provider, model: str) -> None:
    if model not in PROVIDER_MODELS[provider]:
        raise UnsupportedModelError(
            f"Model '{model}' is not available for {provider.value} "
            f"(choose from: {', '.join(PROVIDER_MODELS[provider])})"
        )


def resolve_config_dir() -> Path:
    """Local storage directory for persisted settings."""
    config_dir = os.environ.get("ALTHOR_CONFIG_DIR")
    return Path(config_dir) if config_dir else Path.home() / ".althor"


def _env_float(name: str, default: float) -> float:
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


@dataclass(frozen=True)
class Environment:
    """Process environment, read once at startup."""
    mistral_api_key: str
    elevenlabs_api_key: Optional[str] = None
    config_dir: Path = Path.home() / ".althor"
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    stt_model: str = DEFAULT_STT_MODEL

    @classmethod
    def from_env(cls) -> "Environment":
        """
        Build the environment from ``os.environ``.

        Raises:
            ConfigurationError: If the default provider's key is absent.
        """
        mistral_key = os.environ.get("MISTRAL_API_KEY", "").strip()
        if not mistral_key:
            raise ConfigurationError(
                "MISTRAL_API_KEY is not set; the default provider cannot be used"
            )
        return cls(
            mistral_api_key=mistral_key,
            elevenlabs_api_key=os.environ.get("ELEVENLABS_API_KEY", "").strip() or None,
            config_dir=resolve_config_dir(),
            request_timeout=_env_float("ALTHOR_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            stt_model=os.environ.get("ALTHOR_STT_MODEL", DEFAULT_STT_MODEL),
        )


@dataclass(frozen=True)
class ModelConfig:
    """User-selected provider settings."""
    provider: Provider = DEFAULT_PROVIDER
    model: str = default_model(DEFAULT_PROVIDER)
    api_key: str = ""
    use_custom_key: bool = False

    def credential_override(self) -> Optional[str]:
        """
        The caller-supplied key to send with requests, if any.

        The default provider only uses a stored key when ``use_custom_key``
        is on; every other provider always uses the stored key.
        """
        if self.provider == DEFAULT_PROVIDER and not self.use_custom_key:
            return None
        return self.api_key.strip() or None

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["provider"] = self.provider.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "ModelConfig":
        provider = parse_provider(str(data.get("provider", DEFAULT_PROVIDER.value)))
        model = str(data.get("model") or default_model(provider))
        validate_model(provider, model)
        return cls(
            provider=provider,
            model=model,
            api_key=str(data.get("api_key") or ""),
            use_custom_key=data.get("use_custom_key") is True,
        )


class ModelConfigStore:
    """
    Accessor for the process-wide ``ModelConfig``.

    Loads once from ``<config_dir>/model_config.json`` and writes the file
    back after every mutation. An unreadable file falls back to defaults.
    """

    def __init__(self, path: Path):
        self.path = path
        self._config = ModelConfig()

    @classmethod
    def load(cls, config_dir: Path) -> "ModelConfigStore":
        store = cls(Path(config_dir) / CONFIG_FILENAME)
        store._config = store._read()
        return store

    @property
    def config(self) -> ModelConfig:
        return self._config

    def update(self, **changes) -> ModelConfig:
        """
        Apply changes, validate them and persist the result.

        Switching provider without naming a model selects the new
        provider's default model.
        """
        if "provider" in changes:
            changes["provider"] = parse_provider(changes["provider"])
            if "model" not in changes and changes["provider"] != self._config.provider:
                changes["model"] = default_model(changes["provider"])
        new_config = replace(self._config, **changes)
        validate_model(new_config.provider, new_config.model)
        self._save(new_config)
        self._config = new_config
        return new_config

    def set_provider(self, provider: str) -> ModelConfig:
        return self.update(provider=provider)

    def set_model(self, model: str) -> ModelConfig:
        return self.update(model=model)

    def set_api_key(self, api_key: str) -> ModelConfig:
        return self.update(api_key=api_key.strip())

    def set_use_custom_key(self, enabled: bool) -> ModelConfig:
        return self.update(use_custom_key=enabled)

    def _read(self) -> ModelConfig:
        if not self.path.exists():
            return ModelConfig()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            return ModelConfig.from_dict(data)
        except (OSError, ValueError, ConfigurationError) as e:
            logger.warning(f"Ignoring unreadable model config at {self.path}: {e}")
            return ModelConfig()

    def _save(self, config: ModelConfig) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Could not save model config to {self.path}: {e}") from e
        logger.debug(f"Saved model config to {self.path}")
