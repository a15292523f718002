"""
linkagent Pause Controller - arbitrates automated vs. manual control

State is one global flag, a map of paused conversations and a map of
resume cutoffs. All mutations happen synchronously before the first
await, so interleaved handlers always observe a consistent state.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..constants import MANUAL_OVERRIDE_REASON
from ..events import EventBus, EventType
from ..history.models import now_ms

logger = logging.getLogger(__name__)


class GateDecision(str, Enum):
    """Outcome of the processing gate for a flushed turn"""
    ALLOW = "allow"
    GLOBAL_PAUSE = "global_pause"
    CONVERSATION_PAUSED = "conversation_paused"
    BEFORE_CUTOFF = "before_cutoff"

    @property
    def allowed(self) -> bool:
        return self is GateDecision.ALLOW


@dataclass
class PausedConversation:
    """A conversation taken over by the operator."""
    conversation_id: str
    name: str
    reason: str = MANUAL_OVERRIDE_REASON
    paused_at: int = field(default_factory=now_ms)


@dataclass
class PauseStatus:
    """Snapshot returned to dashboards."""
    global_pause: bool
    paused_conversations: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "global_pause": self.global_pause,
            "paused_conversations": list(self.paused_conversations),
        }


class PauseController:
    """
    Global and per-conversation suppression of automated replies.

    Example:
        controller = PauseController(event_bus)
        await controller.pause_conversation(cid, "Alice")
        controller.check(cid, instant)  # GateDecision.CONVERSATION_PAUSED
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        self.event_bus = event_bus
        self.global_paused = False
        self._paused: Dict[str, PausedConversation] = {}
        self._resume_cutoffs: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------

    def check(self, conversation_id: str, instant: int) -> GateDecision:
        """Decide whether a turn observed at ``instant`` may be processed."""
        if self.global_paused:
            return GateDecision.GLOBAL_PAUSE
        if conversation_id in self._paused:
            return GateDecision.CONVERSATION_PAUSED
        cutoff = self._resume_cutoffs.get(conversation_id)
        if cutoff is not None and instant <= cutoff:
            return GateDecision.BEFORE_CUTOFF
        return GateDecision.ALLOW

    def is_paused(self, conversation_id: str) -> bool:
        return conversation_id in self._paused

    def resume_cutoff(self, conversation_id: str) -> Optional[int]:
        return self._resume_cutoffs.get(conversation_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def set_global_pause(self, paused: bool) -> None:
        self.global_paused = paused
        logger.info(f"[Pause] Bot {'paused' if paused else 'resumed'} globally")
        await self._emit_status()

    async def pause_conversation(
        self,
        conversation_id: str,
        name: str,
        reason: str = MANUAL_OVERRIDE_REASON,
    ) -> PausedConversation:
        """Take a conversation over manually."""
        entry = PausedConversation(conversation_id=conversation_id, name=name, reason=reason)
        self._paused[conversation_id] = entry
        logger.info(f"[Pause] Conversation {conversation_id} paused ({reason})")

        if self.event_bus:
            await self.event_bus.emit(
                EventType.MESSAGE_SENT_MANUALLY,
                chat_id=conversation_id,
                name=name,
            )
        await self._emit_status()
        return entry

    async def resume_conversation(self, conversation_id: str, cutoff: Optional[int] = None) -> bool:
        """Hand a conversation back to the agent.

        With ``cutoff`` set, turns observed at or before it stay dropped.
        Returns True if the conversation was paused.
        """
        was_paused = self._paused.pop(conversation_id, None) is not None
        if cutoff is not None:
            self._resume_cutoffs[conversation_id] = cutoff
            logger.info(f"[Pause] Conversation {conversation_id} resumed, ignoring turns at or before {cutoff}")
        elif was_paused:
            logger.info(f"[Pause] Conversation {conversation_id} resumed")

        if was_paused or cutoff is not None:
            await self._emit_status()
        return was_paused

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> PauseStatus:
        return PauseStatus(
            global_pause=self.global_paused,
            paused_conversations=list(self._paused.keys()),
        )

    def get_paused_conversations(self) -> List[PausedConversation]:
        return list(self._paused.values())

    async def _emit_status(self) -> None:
        if not self.event_bus:
            return
        status = self.get_status()
        await self.event_bus.emit(EventType.PAUSE_STATUS_UPDATE, **status.to_dict())
