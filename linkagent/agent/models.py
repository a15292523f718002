"""Agent loop configuration and result dataclasses."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..payload import DeliverablePayload


@dataclass
class AgentLoopConfig:
    """Tunable parameters for the tool-calling loop."""

    max_rounds: int = 10
    """Model calls allowed per run before giving up."""
    system_prompt: Optional[str] = None
    """Static system prompt. An AgentProfileStore, when given, takes precedence."""
    max_tokens: Optional[int] = None
    """Per-call max_tokens override."""
    model: Optional[str] = None
    """Per-call model override."""


@dataclass
class ToolCallRecord:
    """Record of a single tool call within a run."""

    name: str
    tool_call_id: str
    round: int
    success: bool
    skipped: bool = False


@dataclass
class AgentTurnResult:
    """Final output of one agent run."""

    payload: DeliverablePayload
    """Parts to deliver, in order."""
    history_summary: str
    """Blob-free text persisted as the assistant turn."""
    content: str = ""
    """Final content: model text, or the audio override JSON."""
    audio_override: bool = False
    rounds: int = 0
    tool_calls: List[ToolCallRecord] = field(default_factory=list)
