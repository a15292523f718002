"""In-band operator commands sent from the linked device."""

import re
from enum import Enum
from typing import Optional


class ControlCommand(str, Enum):
    """Commands recognised at the start of an operator-authored message"""
    STOP = "stop"            # global pause
    PLAY = "play"            # global resume
    CONTINUE = "continue"    # resume this conversation
    CLEAN = "clean"          # wipe this conversation's history

    @property
    def is_global(self) -> bool:
        return self in (ControlCommand.STOP, ControlCommand.PLAY)


_COMMAND_PATTERN = re.compile(r"^@(stop|play|continue|clean)\b", re.IGNORECASE)


def parse_command(text: Optional[str]) -> Optional[ControlCommand]:
    """Return the command a manual message starts with, if any.

    >>> parse_command("@STOP now")
    <ControlCommand.STOP: 'stop'>
    >>> parse_command("@stopped") is None
    True
    """
    if not text:
        return None
    match = _COMMAND_PATTERN.match(text.strip())
    if not match:
        return None
    return ControlCommand(match.group(1).lower())
