"""Configuration management for dirscribe."""

import json
import logging
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict
from rich import print

logger = logging.getLogger(__name__)

MAX_RETRIES = 6
INITIAL_BACKOFF_MS = 1000
DEFAULT_TIMEOUT = 120.0


class DirscribeError(Exception):
    """Base exception for dirscribe errors."""


class ConfigurationError(DirscribeError):
    """Raised when the run environment is misconfigured."""


class ProviderName(str, Enum):
    """Supported LLM providers."""

    DEEPSEEK = "deepseek"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


class ProviderDefaults(BaseModel):
    """Built-in endpoint, model and key settings for a provider."""

    base_url: str
    model: str
    api_key_env: str | None
    max_concurrent_requests: int


PROVIDER_DEFAULTS: dict[ProviderName, ProviderDefaults] = {
    ProviderName.DEEPSEEK: ProviderDefaults(
        base_url="https://api.deepseek.com/v1/chat/completions",
        model="deepseek-chat",
        api_key_env="DEEPSEEK_API_KEY",
        max_concurrent_requests=1,
    ),
    ProviderName.ANTHROPIC: ProviderDefaults(
        base_url="https://api.anthropic.com/v1/messages",
        model="claude-3-sonnet-20240229",
        api_key_env="ANTHROPIC_API_KEY",
        max_concurrent_requests=1,
    ),
    ProviderName.OLLAMA: ProviderDefaults(
        base_url="http://localhost:11434/api/generate",
        model="deepseek-r1:8b",
        api_key_env=None,
        max_concurrent_requests=4,
    ),
}

KEYED_PROVIDERS = [
    provider.value
    for provider, defaults in PROVIDER_DEFAULTS.items()
    if defaults.api_key_env
]


class Config:
    """Manage dirscribe configuration and API key storage."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize config with default paths.

        Args:
            config_dir: Override for the config directory (defaults to ~/.dirscribe)
        """
        self.config_dir = config_dir or Path.home() / ".dirscribe"
        self.config_file = self.config_dir / "config.json"
        self._ensure_config_dir()

    def _ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.chmod(0o700)

    def get_ai_api_key(self, provider: str) -> str | None:
        """Get stored API key for a provider.

        Args:
            provider: Provider name (deepseek, anthropic)

        Returns:
            API key if stored, None otherwise
        """
        keys = self._load_config().get("ai_api_keys", {})
        return keys.get(provider.lower()) if isinstance(keys, dict) else None

    def set_ai_api_key(self, provider: str, api_key: str) -> None:
        """Store an API key for a provider.

        Args:
            provider: Provider name
            api_key: Key to store
        """
        config_data = self._load_config()
        config_data.setdefault("ai_api_keys", {})[provider.lower()] = api_key
        self._save_config(config_data)
        print(f"[green]✓[/green] {provider.title()} API key stored in {self.config_file}")

    def remove_ai_api_key(self, provider: str) -> None:
        """Remove a stored API key."""
        config_data = self._load_config()
        keys = config_data.get("ai_api_keys", {})
        keys.pop(provider.lower(), None)
        if not keys:
            config_data.pop("ai_api_keys", None)

        if config_data:
            self._save_config(config_data)
        else:
            self.config_file.unlink(missing_ok=True)

        print(f"[green]✓[/green] {provider.title()} API key removed from local storage")

    def list_ai_api_keys(self) -> dict[str, bool]:
        """Report which keyed providers have a stored API key."""
        return {
            provider: self.get_ai_api_key(provider) is not None
            for provider in KEYED_PROVIDERS
        }

    def _load_config(self) -> dict[str, Any]:
        """Load existing config or return empty dict."""
        if not self.config_file.exists():
            return {}

        try:
            with self.config_file.open() as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save_config(self, config_data: dict[str, Any]) -> None:
        with self.config_file.open("w") as f:
            json.dump(config_data, f, indent=2)
        self.config_file.chmod(0o600)

    def get_config_info(self) -> dict[str, Any]:
        """Get information about current configuration.

        Returns:
            Dictionary with config status information
        """
        config_exists = self.config_file.exists()

        return {
            "config_file": str(self.config_file),
            "config_exists": config_exists,
            "ai_api_keys": self.list_ai_api_keys(),
            "config_dir_permissions": oct(self.config_dir.stat().st_mode)[-3:]
            if self.config_dir.exists()
            else None,
            "config_file_permissions": oct(self.config_file.stat().st_mode)[-3:]
            if config_exists
            else None,
        }


class Settings(BaseModel):
    """Immutable configuration for one summarization run."""

    model_config = ConfigDict(frozen=True)

    provider: ProviderName = ProviderName.OLLAMA
    model: str
    base_url: str
    api_key: str | None = None
    max_concurrent_requests: int = 1
    max_retries: int = MAX_RETRIES
    initial_backoff_ms: int = INITIAL_BACKOFF_MS
    timeout: float = DEFAULT_TIMEOUT
    temperature: float | None = None
    max_tokens: int | None = None

    @classmethod
    def for_provider(cls, provider: ProviderName | str, **overrides: Any) -> "Settings":
        """Build settings from a provider's defaults plus explicit overrides.

        Raises:
            ConfigurationError: If the provider name is unknown
        """
        name = _parse_provider(provider)
        defaults = PROVIDER_DEFAULTS[name]
        values: dict[str, Any] = {
            "provider": name,
            "model": defaults.model,
            "base_url": defaults.base_url,
            "max_concurrent_requests": defaults.max_concurrent_requests,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        config: Config | None = None,
    ) -> "Settings":
        """Build settings from environment variables.

        API keys come from the provider's environment variable, falling back
        to the key stored in ``config`` when one is given.

        Args:
            environ: Environment mapping (defaults to os.environ)
            config: Optional key store to consult for missing API keys

        Returns:
            Settings for this run

        Raises:
            ConfigurationError: If a value is invalid
        """
        env = os.environ if environ is None else environ
        provider = _parse_provider(env.get("DIRSCRIBE_PROVIDER", ProviderName.OLLAMA.value))
        defaults = PROVIDER_DEFAULTS[provider]

        api_key = None
        if defaults.api_key_env:
            api_key = env.get(defaults.api_key_env)
            if not api_key and config is not None:
                api_key = config.get_ai_api_key(provider.value)
                if api_key:
                    logger.debug(f"Using stored {provider.value} API key from config")

        return cls.for_provider(
            provider,
            model=env.get("DIRSCRIBE_MODEL") or None,
            base_url=env.get("DIRSCRIBE_BASE_URL") or None,
            api_key=api_key or None,
            max_concurrent_requests=_parse_positive_int(
                env.get("DIRSCRIBE_MAX_CONCURRENT_REQUESTS"),
                "DIRSCRIBE_MAX_CONCURRENT_REQUESTS",
            ),
            timeout=_parse_positive_float(env.get("DIRSCRIBE_TIMEOUT"), "DIRSCRIBE_TIMEOUT"),
        )


def _parse_provider(value: ProviderName | str) -> ProviderName:
    try:
        return ProviderName(value.lower() if isinstance(value, str) else value)
    except ValueError:
        choices = ", ".join(p.value for p in ProviderName)
        raise ConfigurationError(
            f"Unknown provider '{value}'. Use one of: {choices}"
        ) from None


def _parse_positive_int(raw: str | None, name: str) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from None
    if value < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {value}")
    return value


def _parse_positive_float(raw: str | None, name: str) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value
