"""
linkagent LLM Client - model inference via litellm

Usage:
    from linkagent.llm import LiteLLMClient, LLMConfig

    config = LLMConfig(model="claude-haiku-4-5")
    client = LiteLLMClient(config=config, provider_name="anthropic")
    response = await client.chat_completion(messages=[...], tools=[...])
"""

from .base import BaseLLMClient, LLMConfig, LLMResponse, StopReason, ToolCall, Usage
from .litellm_client import LiteLLMClient, build_litellm_model_string

__all__ = [
    "BaseLLMClient",
    "LLMConfig",
    "LLMResponse",
    "StopReason",
    "ToolCall",
    "Usage",
    "LiteLLMClient",
    "build_litellm_model_string",
]
