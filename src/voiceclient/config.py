"""Configuration management for voiceclient.

Two kinds of configuration live here:

- the *session* configuration sent to the bot (LLM, TTS, ...), which the
  client keeps as a plain nested dict and merges on every update;
- the *client* settings (base URL, timeout, device defaults) read from the
  environment.
"""
import copy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMMessage(BaseModel):
    """A single LLM context message."""

    model_config = ConfigDict(extra="allow")

    role: str
    content: str


class LLMConfig(BaseModel):
    """LLM service configuration."""

    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    messages: Optional[List[LLMMessage]] = None


class TTSConfig(BaseModel):
    """TTS service configuration."""

    model_config = ConfigDict(extra="allow")

    voice: Optional[str] = None


class SessionConfig(BaseModel):
    """Service configuration sent to the bot when the session starts.

    Every section is optional and unknown keys are kept, so a backend can
    accept settings this model does not know about.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    llm: Optional[LLMConfig] = None
    tts: Optional[TTSConfig] = None
    stt: Optional[Dict[str, Any]] = None
    idle_timeout: Optional[float] = Field(default=None, alias="idleTimeout")
    idle_prompt: Optional[str] = Field(default=None, alias="idlePrompt")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the dict form retained and sent by the client."""
        return self.model_dump(by_alias=True, exclude_none=True)


ConfigLike = Union[SessionConfig, Mapping[str, Any]]
LLMConfigLike = Union[LLMConfig, Mapping[str, Any]]


def as_config_dict(config: Optional[Union[BaseModel, Mapping[str, Any]]]) -> Dict[str, Any]:
    """Normalize a model or mapping into a fresh nested dict."""
    if config is None:
        return {}
    if isinstance(config, BaseModel):
        return config.model_dump(by_alias=True, exclude_none=True)
    if not isinstance(config, Mapping):
        raise TypeError(f"Expected a mapping or config model, got {type(config).__name__}")
    return copy.deepcopy(dict(config))


def deep_merge(base: Mapping[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``update`` into ``base`` without mutating either.

    Nested mappings are merged key by key. Any other value in ``update``,
    lists included, replaces the value in ``base`` as a whole.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in update.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def merge_config(
    current: Mapping[str, Any],
    update: Mapping[str, Any],
    use_deep_merge: bool = False
) -> Dict[str, Any]:
    """Apply a configuration update.

    Args:
        current: The retained configuration
        update: The (possibly partial) new configuration
        use_deep_merge: Merge nested sections instead of replacing wholesale

    Returns:
        The new configuration. Without deep merge this equals ``update``.
    """
    if use_deep_merge:
        return deep_merge(current, update)
    return copy.deepcopy(dict(update))


class ClientSettings(BaseSettings):
    """Client settings read from ``VOICECLIENT_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="VOICECLIENT_", extra="ignore")

    base_url: Optional[str] = None
    timeout: Optional[float] = None
    enable_mic: bool = True
    enable_cam: bool = False
    log_level: str = "INFO"

    @classmethod
    def load(cls, env_path: Optional[Path] = None) -> "ClientSettings":
        """Load settings from the environment, reading a .env file first."""
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        return cls()


# Global settings instance
_settings: Optional[ClientSettings] = None


def get_settings() -> ClientSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = ClientSettings.load()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
