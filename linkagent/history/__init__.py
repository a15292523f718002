"""linkagent history - durable per-conversation turn log"""

from .models import ContactStats, ConversationStats, Turn
from .store import ConversationHistoryStore, sanitize_content

__all__ = [
    "ContactStats",
    "ConversationStats",
    "Turn",
    "ConversationHistoryStore",
    "sanitize_content",
]
