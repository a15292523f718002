"""
linkagent LLM Client Base - Base class and common types for LLM clients

This module provides:
- BaseLLMClient: Abstract base class for model inference clients
- LLMConfig: Configuration dataclass
- LLMResponse: Standardized response format
- ToolCall: One tool invocation requested by the model
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StopReason(str, Enum):
    """Reason why the LLM stopped generating"""
    END_TURN = "end_turn"           # Natural completion
    MAX_TOKENS = "max_tokens"       # Hit token limit
    TOOL_USE = "tool_use"           # Model wants to use a tool
    CONTENT_FILTER = "content_filter"
    ERROR = "error"


@dataclass
class LLMConfig:
    """
    Configuration for LLM clients.

    Attributes:
        api_key: API key for the provider
        model: Model name (e.g., "claude-haiku-4-5", "gpt-4o")
        base_url: Optional base URL override for API
        temperature: Sampling temperature (0.0 - 2.0)
        max_tokens: Maximum tokens in response
        timeout: Request timeout in seconds (None waits indefinitely)
        extra: Extra provider-specific params
    """
    api_key: Optional[str] = None
    model: str = "claude-haiku-4-5"
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolCall:
    """A tool call from the LLM"""
    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass
class Usage:
    """Token usage information"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMResponse:
    """
    Standardized LLM response format.

    Either terminal text (``content``) or a list of tool calls.
    """
    content: str
    tool_calls: Optional[List[ToolCall]] = None
    stop_reason: StopReason = StopReason.END_TURN
    usage: Optional[Usage] = None
    model: Optional[str] = None

    # Raw response for debugging
    raw_response: Optional[Any] = None

    @property
    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls"""
        return self.tool_calls is not None and len(self.tool_calls) > 0


class BaseLLMClient(ABC):
    """
    Abstract base class for model inference clients.

    Subclasses implement ``_call_api``; callers use ``chat_completion``.

    Example:
        class MyClient(BaseLLMClient):
            async def _call_api(self, messages, tools=None, **kwargs):
                ...
    """

    provider: str = "unknown"

    def __init__(self, config: Optional[LLMConfig] = None, **kwargs):
        if config is None:
            config = LLMConfig(**kwargs)
        else:
            for key, value in kwargs.items():
                if hasattr(config, key):
                    setattr(config, key, value)
        self.config = config

    @abstractmethod
    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Make the actual API call (provider-specific).

        Args:
            messages: List of message dicts in OpenAI chat format
            tools: Optional list of tool schemas in OpenAI function format
            **kwargs: Additional provider-specific params

        Returns:
            LLMResponse with standardized format
        """
        pass

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            tools: Optional list of tool schemas
            config: Optional per-call overrides (max_tokens, temperature, model)
            **kwargs: Additional parameters

        Returns:
            LLMResponse with content or tool_calls
        """
        merged_kwargs = {**kwargs}
        if config:
            merged_kwargs.update(config)
        return await self._call_api(messages, tools or None, **merged_kwargs)

    async def close(self) -> None:
        """Release client resources (no-op by default)."""
        return None
