"""
linkagent History Store - per-conversation turn log in a flat JSON file

The whole file is rewritten on every mutation. Each conversation keeps at
most ``max_turns`` turns (oldest dropped first), and any audio payload is
reduced to a placeholder before it reaches disk.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from ..constants import VALID_TURN_ROLES
from ..payload import build_history_summary, strip_audio_blobs
from .models import ContactStats, ConversationStats, Turn, now_ms

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 50
DEFAULT_MODEL_CONTEXT_TURNS = 20


def sanitize_content(content: str) -> str:
    """Drop base64 audio from stored content, keeping a readable summary."""
    trimmed = (content or "").strip()
    if not trimmed:
        return ""
    if "audio_base64" not in trimmed:
        return trimmed

    summary = build_history_summary(trimmed)
    if "audio_base64" not in summary:
        return summary
    return strip_audio_blobs(trimmed)


class ConversationHistoryStore:
    """
    Durable per-contact ordered log of turns.

    Example:
        store = ConversationHistoryStore("threads.json")
        store.add_turn("5511999999999@s.whatsapp.net", "user", "Hi!")
        messages = store.get_history_for_model("5511999999999@s.whatsapp.net")
    """

    def __init__(self, path: str = "threads.json", max_turns: int = DEFAULT_MAX_TURNS):
        self.path = Path(path)
        self.max_turns = max_turns
        self._histories: Dict[str, List[Turn]] = {}
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Load every conversation from disk. Unreadable files start empty."""
        self._histories = {}
        if not self.path.exists():
            logger.info(f"No conversation file at {self.path}, starting fresh")
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading conversation histories from {self.path}: {e}")
            return

        if not isinstance(raw, dict):
            logger.info(f"Conversation file {self.path} holds no valid data, starting fresh")
            return

        for conversation_id, turns in raw.items():
            if not isinstance(turns, list):
                self._histories[conversation_id] = []
                continue
            loaded = []
            for entry in turns:
                if not isinstance(entry, dict):
                    continue
                try:
                    loaded.append(Turn.from_dict(entry))
                except (TypeError, ValueError, AttributeError) as e:
                    logger.error(f"Dropping unreadable turn in {conversation_id}: {e}")
            self._histories[conversation_id] = loaded
        logger.info(f"Loaded {len(self._histories)} conversation(s) from {self.path}")

    def save(self) -> None:
        """Write the whole mapping atomically."""
        data = {
            conversation_id: [turn.to_dict() for turn in turns]
            for conversation_id, turns in self._histories.items()
        }
        content = json.dumps(data, indent=2, ensure_ascii=False)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: temp file in same directory, then rename
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".threads-", suffix=".tmp", dir=str(self.path.parent))
            try:
                os.write(fd, content.encode("utf-8"))
            finally:
                os.close(fd)
            os.replace(tmp_path, str(self.path))
        except OSError as e:
            logger.error(f"Error saving conversation histories to {self.path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_history(self, conversation_id: str) -> List[Turn]:
        return list(self._histories.get(conversation_id, []))

    def get_history_for_model(
        self,
        conversation_id: str,
        max_turns: int = DEFAULT_MODEL_CONTEXT_TURNS,
    ) -> List[Dict[str, str]]:
        """Most recent turns as chat messages, sanitized and non-empty."""
        recent = self.get_history(conversation_id)[-max_turns:] if max_turns > 0 else []
        messages = []
        for turn in recent:
            if turn.role not in VALID_TURN_ROLES:
                continue
            content = sanitize_content(turn.content)
            if content:
                messages.append({"role": turn.role, "content": content})
        return messages

    def conversation_ids(self) -> List[str]:
        return list(self._histories.keys())

    def get_stats(self) -> ConversationStats:
        stats = ConversationStats()
        for conversation_id, turns in self._histories.items():
            stats.total_conversations += 1
            stats.total_turns += len(turns)
            stats.contacts.append(ContactStats(
                conversation_id=conversation_id,
                turn_count=len(turns),
                last_update=turns[-1].created_at if turns else 0,
            ))
        return stats

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_history(self, conversation_id: str, turns: List[Turn]) -> None:
        """Replace a conversation's turns, trimming and sanitizing first."""
        if len(turns) > self.max_turns:
            turns = turns[-self.max_turns:]
        self._histories[conversation_id] = [
            Turn(role=t.role, content=sanitize_content(t.content), created_at=t.created_at)
            for t in turns
        ]
        self.save()

    def add_turn(self, conversation_id: str, role: str, content: str,
                 created_at: Optional[int] = None) -> Turn:
        turn = Turn(role=role, content=content, created_at=created_at or now_ms())
        history = self.get_history(conversation_id)
        history.append(turn)
        self.set_history(conversation_id, history)
        return turn

    def clear(self, conversation_id: str) -> bool:
        """Forget one conversation. Returns False if nothing was stored."""
        if conversation_id not in self._histories:
            return False
        del self._histories[conversation_id]
        self.save()
        return True

    def clear_all(self) -> None:
        self._histories = {}
        self.save()
