"""History data models."""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


def now_ms() -> int:
    return int(time.time() * 1000)


def coerce_timestamp_ms(value: Any) -> int:
    """Best-effort epoch milliseconds from a stored timestamp, 0 if unusable."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        try:
            return int(value)
        except (ValueError, OverflowError):
            return 0
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            pass
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return 0
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    return 0


@dataclass(frozen=True)
class Turn:
    """One persisted conversational turn."""
    role: str
    content: str
    created_at: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.created_at,
        }

    def to_message(self) -> Dict[str, str]:
        """Chat-completion message form (role + content)."""
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        content = data.get("content", "")
        if isinstance(content, list):
            # Older files stored content as a list of input_text/output_text items
            content = "\n".join(
                item.get("text", "")
                for item in content
                if isinstance(item, dict)
                and item.get("type") in ("input_text", "output_text")
                and str(item.get("text", "")).strip()
            )
        return cls(
            role=str(data.get("role", "")),
            content=content if isinstance(content, str) else "",
            created_at=coerce_timestamp_ms(data.get("timestamp")),
        )


@dataclass
class ContactStats:
    """Per-conversation counters."""
    conversation_id: str
    turn_count: int
    last_update: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "turn_count": self.turn_count,
            "last_update": self.last_update or None,
        }


@dataclass
class ConversationStats:
    """Aggregate counters across every stored conversation."""
    total_conversations: int = 0
    total_turns: int = 0
    contacts: List[ContactStats] = field(default_factory=list)

    @property
    def average_turns(self) -> float:
        if not self.total_conversations:
            return 0.0
        return round(self.total_turns / self.total_conversations, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_conversations": self.total_conversations,
            "total_turns": self.total_turns,
            "average_turns": self.average_turns,
            "contacts": [c.to_dict() for c in self.contacts],
        }
