"""linkagent configuration - settings dataclasses and the agent profile store"""

from .models import (
    AgentSettings,
    ConnectionSettings,
    HistorySettings,
    LinkAgentConfig,
    LLMSettings,
    ProviderSettings,
    TransportSettings,
)
from .profile import AgentProfile, AgentProfileStore

__all__ = [
    "AgentSettings",
    "ConnectionSettings",
    "HistorySettings",
    "LinkAgentConfig",
    "LLMSettings",
    "ProviderSettings",
    "TransportSettings",
    "AgentProfile",
    "AgentProfileStore",
]
