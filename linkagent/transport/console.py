"""
Console Transport - a stdin/stdout stand-in for a linked device

Useful for trying the agent locally without a phone. Each input line is
an inbound user message; lines starting with ``me>`` are treated as if the
operator typed them on the linked device (so ``me> @stop`` pauses the bot).
"""

import asyncio
import json
import logging
import sys
import time
import uuid
from pathlib import Path
from typing import Any, Optional

from .base import (
    ContentType,
    DeviceTransport,
    Presence,
    RawInboundMessage,
    SessionListener,
)

logger = logging.getLogger(__name__)

OPERATOR_PREFIX = "me>"
SESSION_FILE = "session.json"


class ConsoleTransport(DeviceTransport):
    """Single-conversation transport over the terminal."""

    def __init__(
        self,
        auth_dir: str = "auth_info",
        conversation_id: str = "console@s.whatsapp.net",
        contact_name: str = "Console",
    ):
        super().__init__(auth_dir)
        self.conversation_id = conversation_id
        self.contact_name = contact_name
        self._listener: Optional[SessionListener] = None
        self._reader: Optional[asyncio.Task] = None
        self._ready = False

    async def start(self, listener: SessionListener) -> None:
        self._listener = listener
        session_path = Path(self.auth_dir) / SESSION_FILE

        if not session_path.exists():
            await listener.on_qr(f"console-pairing-{uuid.uuid4().hex[:8]}")
            session_path.parent.mkdir(parents=True, exist_ok=True)
            session_path.write_text(json.dumps({"paired_at": int(time.time())}), encoding="utf-8")
            await listener.on_credentials_update()

        self._ready = True
        await listener.on_open()
        self._reader = asyncio.create_task(self._read_loop())

    async def _read_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while self._ready:
            try:
                line = await loop.run_in_executor(None, sys.stdin.readline)
            except (OSError, ValueError) as e:
                logger.warning(f"[Console] Cannot read from stdin: {e}")
                return
            if not line:
                logger.info("[Console] Input closed, no more inbound messages")
                return
            line = line.strip()
            if not line or not self._listener:
                continue

            from_me = line.startswith(OPERATOR_PREFIX)
            text = line[len(OPERATOR_PREFIX):].strip() if from_me else line
            message = RawInboundMessage(
                conversation_id=self.conversation_id,
                message_key=uuid.uuid4().hex,
                from_me=from_me,
                timestamp=int(time.time()),
                content_type=ContentType.TEXT,
                text=text,
                push_name=None if from_me else self.contact_name,
            )
            await self._listener.on_messages([message])

    async def close(self) -> None:
        self._ready = False
        self._listener = None
        if self._reader is not None:
            self._reader.cancel()
            self._reader = None

    def is_ready(self) -> bool:
        return self._ready

    async def send_text(self, conversation_id: str, text: str) -> str:
        print(f"< {text}", flush=True)
        return uuid.uuid4().hex

    async def send_audio(self, conversation_id: str, audio: bytes, mime_type: str, voice_note: bool = True) -> str:
        print(f"< [voice note, {len(audio)} bytes, {mime_type}]", flush=True)
        return uuid.uuid4().hex

    async def send_presence(self, conversation_id: str, presence: Presence) -> None:
        logger.debug(f"[Console] presence {presence.value} in {conversation_id}")

    async def delete_message(self, conversation_id: str, message_key: Any) -> None:
        logger.info(f"[Console] Deleted command message {message_key}")

    async def download_media(self, message: RawInboundMessage) -> Optional[bytes]:
        return None

    async def logout(self) -> None:
        self._ready = False
        logger.info("[Console] Logged out")
