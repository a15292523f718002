"""
linkagent Config Models - Settings dataclasses for every component

Each section of the YAML config maps to one dataclass with a ``from_dict``
constructor. Missing keys fall back to the defaults below.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..constants import DEFAULT_FALLBACK_MESSAGE


@dataclass
class LLMSettings:
    """
    Model inference settings.

    Attributes:
        provider: litellm provider name (anthropic, openai, gemini, ...)
        model: Raw model name
        api_key: Optional explicit key (falls back to the provider env var)
        base_url: Optional API base override
        max_tokens: Maximum tokens per model response
        temperature: Sampling temperature
    """
    provider: str = "anthropic"
    model: str = "claude-haiku-4-5"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = 1024
    temperature: float = 0.7

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LLMSettings":
        """Create from dictionary"""
        return cls(
            provider=data.get("provider", "anthropic"),
            model=data.get("model", "claude-haiku-4-5"),
            api_key=data.get("api_key"),
            base_url=data.get("base_url"),
            max_tokens=int(data.get("max_tokens", 1024)),
            temperature=float(data.get("temperature", 0.7)),
        )


@dataclass
class AgentSettings:
    """
    Agent loop settings.

    Attributes:
        system_prompt: Inline system prompt (overridden by the profile file)
        max_rounds: Maximum model rounds per run
        profile_path: Optional JSON file holding the editable agent profile
    """
    system_prompt: Optional[str] = None
    max_rounds: int = 10
    profile_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentSettings":
        """Create from dictionary"""
        return cls(
            system_prompt=data.get("system_prompt"),
            max_rounds=int(data.get("max_rounds", 10)),
            profile_path=data.get("profile_path"),
        )


@dataclass
class ConnectionSettings:
    """
    Connection lifecycle settings. Delays are in seconds.

    Attributes:
        auth_dir: Directory holding the device-link credentials
        base_reconnect_delay: First backoff delay
        max_reconnect_delay: Backoff cap
        max_reconnect_attempts: Attempts before a full reset
        reset_delay: Pause between credential wipe and reconnect
        reset_retry_delay: Delay before retrying a failed full reset
        logout_reconnect_delay: Pause between logout and reconnect
    """
    auth_dir: str = "auth_info"
    base_reconnect_delay: float = 5.0
    max_reconnect_delay: float = 30.0
    max_reconnect_attempts: int = 10
    reset_delay: float = 2.0
    reset_retry_delay: float = 5.0
    logout_reconnect_delay: float = 0.5

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionSettings":
        """Create from dictionary"""
        return cls(
            auth_dir=data.get("auth_dir", "auth_info"),
            base_reconnect_delay=float(data.get("base_reconnect_delay", 5.0)),
            max_reconnect_delay=float(data.get("max_reconnect_delay", 30.0)),
            max_reconnect_attempts=int(data.get("max_reconnect_attempts", 10)),
            reset_delay=float(data.get("reset_delay", 2.0)),
            reset_retry_delay=float(data.get("reset_retry_delay", 5.0)),
            logout_reconnect_delay=float(data.get("logout_reconnect_delay", 0.5)),
        )


@dataclass
class HistorySettings:
    """Conversation history file settings."""
    path: str = "threads.json"
    max_turns: int = 50
    model_context_turns: int = 20

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistorySettings":
        """Create from dictionary"""
        return cls(
            path=data.get("path", "threads.json"),
            max_turns=int(data.get("max_turns", 50)),
            model_context_turns=int(data.get("model_context_turns", 20)),
        )


@dataclass
class ProviderSettings:
    """
    Settings for one external provider (TTS, email or media).

    ``options`` keeps every key besides ``provider`` so each provider can
    read what it needs (voice_id, from_email, model, ...).
    """
    provider: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def enabled(self) -> bool:
        return bool(self.provider)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ProviderSettings":
        """Create from dictionary"""
        data = dict(data or {})
        provider = data.pop("provider", None)
        return cls(provider=provider, options=data)


@dataclass
class TransportSettings:
    """
    Device transport settings.

    Attributes:
        class_path: ``module:ClassName`` of the DeviceTransport implementation
        options: Keyword arguments for the transport constructor
    """
    class_path: str = "linkagent.transport.console:ConsoleTransport"
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransportSettings":
        """Create from dictionary"""
        return cls(
            class_path=data.get("class", "linkagent.transport.console:ConsoleTransport"),
            options=dict(data.get("options") or {}),
        )


@dataclass
class LinkAgentConfig:
    """Complete application configuration."""
    llm: LLMSettings = field(default_factory=LLMSettings)
    agent: AgentSettings = field(default_factory=AgentSettings)
    connection: ConnectionSettings = field(default_factory=ConnectionSettings)
    history: HistorySettings = field(default_factory=HistorySettings)
    accumulator_window: float = 7.0
    delivery: Dict[str, Any] = field(default_factory=dict)
    tts: ProviderSettings = field(default_factory=ProviderSettings)
    email: ProviderSettings = field(default_factory=ProviderSettings)
    media: ProviderSettings = field(default_factory=ProviderSettings)
    transport: TransportSettings = field(default_factory=TransportSettings)
    fallback_message: str = DEFAULT_FALLBACK_MESSAGE

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LinkAgentConfig":
        """Create from the parsed YAML document"""
        data = data or {}
        accumulator = data.get("accumulator") or {}
        return cls(
            llm=LLMSettings.from_dict(data.get("llm") or {}),
            agent=AgentSettings.from_dict(data.get("agent") or {}),
            connection=ConnectionSettings.from_dict(data.get("connection") or {}),
            history=HistorySettings.from_dict(data.get("history") or {}),
            accumulator_window=float(accumulator.get("window_seconds", 7.0)),
            delivery=dict(data.get("delivery") or {}),
            tts=ProviderSettings.from_dict(data.get("tts")),
            email=ProviderSettings.from_dict(data.get("email")),
            media=ProviderSettings.from_dict(data.get("media")),
            transport=TransportSettings.from_dict(data.get("transport") or {}),
            fallback_message=data.get("fallback_message") or DEFAULT_FALLBACK_MESSAGE,
        )
