"""
linkagent Delivery Pipeline - paced, presence-annotated sends

Each part of a reply is sent the way a person would: read, think, show
"typing..." (or "recording..."), send, pause. Readiness is re-checked
before every part; a disconnect stops the rest of the reply quietly and a
send error stops it and is reported, never retried.
"""

import asyncio
import base64
import binascii
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol

from ..constants import PART_AUDIO, PART_TEXT, VOICE_NOTE_MIMETYPE
from ..payload import DeliverablePayload, MessagePart
from ..transport.base import Presence
from .pacing import HumanPacing

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class MessageSender(Protocol):
    """Send capability of the connection manager."""

    def is_ready(self) -> bool: ...

    async def send_text(self, conversation_id: str, text: str) -> Any: ...

    async def send_audio(self, conversation_id: str, audio: bytes, mime_type: str) -> Any: ...

    async def send_presence(self, conversation_id: str, presence: Presence) -> None: ...


class SendFailure(Exception):
    """A part could not be sent; the remaining parts were abandoned."""

    def __init__(self, part_index: int, part_type: str, cause: Exception):
        self.part_index = part_index
        self.part_type = part_type
        self.cause = cause
        super().__init__(f"Failed to send {part_type} part {part_index}: {cause}")


@dataclass
class DeliveryReport:
    """What happened to one reply."""
    total_parts: int
    sent_parts: int = 0
    aborted: bool = False
    failure: Optional[SendFailure] = None

    @property
    def completed(self) -> bool:
        return not self.aborted and self.failure is None


class DeliveryPipeline:
    """
    Realizes a DeliverablePayload as paced sends.

    Example:
        pipeline = DeliveryPipeline(connection_manager)
        report = await pipeline.deliver(cid, payload, input_text="Hi!")
    """

    def __init__(
        self,
        sender: MessageSender,
        pacing: Optional[HumanPacing] = None,
        sleep: SleepFunc = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.sender = sender
        self.pacing = pacing or HumanPacing()
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def deliver(
        self,
        conversation_id: str,
        payload: DeliverablePayload,
        input_text: str = "",
    ) -> DeliveryReport:
        parts = [part for part in payload.parts if part.is_deliverable]
        report = DeliveryReport(total_parts=len(parts))

        for index, part in enumerate(parts):
            if not self.sender.is_ready():
                logger.warning(f"[Delivery] Connection not ready, stopping reply to {conversation_id}")
                report.aborted = True
                return report

            try:
                if part.type == PART_TEXT:
                    await self._send_text_part(conversation_id, part, input_text)
                elif part.type == PART_AUDIO:
                    await self._send_audio_part(conversation_id, part)
            except Exception as e:
                report.failure = SendFailure(index, part.type, e)
                logger.error(f"[Delivery] {report.failure}")
                return report

            report.sent_parts += 1

        return report

    async def _send_text_part(self, conversation_id: str, part: MessagePart, input_text: str) -> None:
        rng = self._rng
        await self._sleep(self.pacing.reading_delay(len(input_text), rng))
        await self._sleep(self.pacing.before_typing_delay(rng))
        await self.sender.send_presence(conversation_id, Presence.COMPOSING)
        await self._sleep(self.pacing.typing_delay(len(part.text), rng))
        await self.sender.send_text(conversation_id, part.text)
        await self.sender.send_presence(conversation_id, Presence.PAUSED)
        logger.info(f"[Delivery] < {part.text}")
        await self._sleep(self.pacing.after_send_delay(rng))

    async def _send_audio_part(self, conversation_id: str, part: MessagePart) -> None:
        try:
            audio = base64.b64decode(part.audio_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid audio payload: {e}") from e

        rng = self._rng
        await self._sleep(self.pacing.pre_record_delay(rng))
        await self.sender.send_presence(conversation_id, Presence.RECORDING)
        await self._sleep(self.pacing.recording_delay(rng))
        await self.sender.send_audio(conversation_id, audio, VOICE_NOTE_MIMETYPE)
        await self.sender.send_presence(conversation_id, Presence.PAUSED)
        logger.info(f"[Delivery] < voice note ({len(audio)} bytes)")
        await self._sleep(self.pacing.audio_after_send_delay(rng))

    async def send_fallback(self, conversation_id: str, text: str) -> bool:
        """Best-effort apology after a failed run. Never raises."""
        if not self.sender.is_ready():
            logger.warning("[Delivery] Connection not ready, cannot send fallback message")
            return False
        try:
            await self._sleep(self.pacing.fallback_delay(self._rng))
            await self.sender.send_text(conversation_id, text)
            logger.info(f"[Delivery] < {text}")
            return True
        except Exception as e:
            logger.error(f"[Delivery] Failed to send fallback message: {e}")
            return False
