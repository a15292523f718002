"""
linkagent Agent - bounded tool-calling loop

Usage:
    from linkagent.agent import AgentLoop, AgentToolbox

    loop = AgentLoop(llm_client=client, toolbox=AgentToolbox(tts_provider=tts))
    result = await loop.run(prior_turns, "Hello!")
"""

from .errors import AgentError, InvalidInputError, MaxIterationsExceededError
from .loop import AgentLoop
from .models import AgentLoopConfig, AgentTurnResult, ToolCallRecord
from .tools import (
    AgentToolbox,
    EmailResult,
    EmailSkippedResult,
    SpeechResult,
    ToolFailure,
    ToolResult,
)

__all__ = [
    "AgentError",
    "InvalidInputError",
    "MaxIterationsExceededError",
    "AgentLoop",
    "AgentLoopConfig",
    "AgentTurnResult",
    "ToolCallRecord",
    "AgentToolbox",
    "EmailResult",
    "EmailSkippedResult",
    "SpeechResult",
    "ToolFailure",
    "ToolResult",
]
