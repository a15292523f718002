"""
linkagent Message Accumulator - per-conversation trailing debounce

A user typing several quick messages produces one turn: every new message
restarts the conversation's window timer, and when the window passes with
no new input the buffered texts are joined and handed to the flush
callback.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 7.0
TEXT_SEPARATOR = "\n\n"


@dataclass
class AccumulatorEntry:
    """Buffered input for one conversation."""
    conversation_id: str
    contact_label: str
    buffered_texts: List[str] = field(default_factory=list)
    last_message_at: int = 0
    timer: Optional[asyncio.Task] = None


@dataclass
class AccumulatedTurn:
    """A flushed burst of messages, ready for the gate."""
    conversation_id: str
    contact_label: str
    text: str
    last_message_at: int
    message_count: int


FlushCallback = Callable[[AccumulatedTurn], Awaitable[None]]


class MessageAccumulator:
    """
    Coalesces message bursts per conversation.

    Example:
        accumulator = MessageAccumulator(on_flush=orchestrator.process_turn)
        accumulator.add(cid, "hi", instant=1700000000000, contact_label="Alice")
    """

    def __init__(self, on_flush: FlushCallback, window_seconds: float = DEFAULT_WINDOW_SECONDS):
        self.on_flush = on_flush
        self.window_seconds = window_seconds
        self._entries: Dict[str, AccumulatorEntry] = {}
        # Flushes in progress; kept so the tasks are not garbage collected
        self._flushing: Set[asyncio.Task] = set()

    def add(self, conversation_id: str, text: str, instant: int, contact_label: str = "") -> AccumulatorEntry:
        """Buffer one message and restart the conversation's window."""
        entry = self._entries.get(conversation_id)
        if entry is None:
            entry = AccumulatorEntry(
                conversation_id=conversation_id,
                contact_label=contact_label or conversation_id,
            )
            self._entries[conversation_id] = entry
        elif entry.timer is not None:
            entry.timer.cancel()

        entry.buffered_texts.append(text)
        entry.last_message_at = instant
        entry.timer = asyncio.create_task(self._expire(conversation_id, entry))

        logger.info(
            f"[Accumulator] {conversation_id}: {len(entry.buffered_texts)} message(s) buffered, "
            f"waiting {self.window_seconds}s for more"
        )
        return entry

    async def _expire(self, conversation_id: str, entry: AccumulatorEntry) -> None:
        await asyncio.sleep(self.window_seconds)

        # The entry may have been flushed or replaced meanwhile
        if self._entries.get(conversation_id) is not entry:
            return
        del self._entries[conversation_id]
        entry.timer = None

        if not entry.buffered_texts:
            return

        turn = AccumulatedTurn(
            conversation_id=conversation_id,
            contact_label=entry.contact_label,
            text=TEXT_SEPARATOR.join(entry.buffered_texts),
            last_message_at=entry.last_message_at,
            message_count=len(entry.buffered_texts),
        )

        task = asyncio.current_task()
        if task is not None:
            self._flushing.add(task)
        try:
            logger.info(f"[Accumulator] Flushing {turn.message_count} message(s) for {turn.contact_label}")
            await self.on_flush(turn)
        except Exception as e:
            logger.error(f"[Accumulator] Flush failed for {conversation_id}: {e}", exc_info=True)
        finally:
            if task is not None:
                self._flushing.discard(task)

    def pending_conversations(self) -> List[str]:
        return list(self._entries.keys())

    def buffered_count(self, conversation_id: str) -> int:
        entry = self._entries.get(conversation_id)
        return len(entry.buffered_texts) if entry else 0

    async def close(self) -> None:
        """Cancel pending windows and in-flight flushes."""
        tasks = [e.timer for e in self._entries.values() if e.timer is not None]
        tasks.extend(self._flushing)
        self._entries.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._flushing.clear()
