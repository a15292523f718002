"""linkagent control plane - operator commands and the pause gate"""

from .commands import ControlCommand, parse_command
from .pause import GateDecision, PauseController, PausedConversation, PauseStatus

__all__ = [
    "ControlCommand",
    "parse_command",
    "GateDecision",
    "PauseController",
    "PausedConversation",
    "PauseStatus",
]
