"""Shared fixtures: an in-memory device transport and controllable sleeps."""

import asyncio
import time
from typing import Any, List, Optional

import pytest

from linkagent.transport.base import DeviceTransport, DisconnectInfo, Presence, RawInboundMessage


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class FakeTransport(DeviceTransport):
    """Device transport that records calls instead of touching a network.

    ``start`` opens the session immediately unless ``start_error`` is set
    (raised) or ``start_gate`` is set (awaited first).
    """

    def __init__(self, auth_dir: str = "auth_info"):
        super().__init__(auth_dir)
        self.listener = None
        self.ready = False
        self.start_calls = 0
        self.close_calls = 0
        self.start_error: Optional[Exception] = None
        self.start_gate: Optional[asyncio.Event] = None
        self.auto_open = True
        self.sent: List[Any] = []
        self.deleted: List[Any] = []
        self.media: Optional[bytes] = None
        self.logged_out = False
        self.logout_error: Optional[Exception] = None

    async def start(self, listener) -> None:
        self.start_calls += 1
        self.listener = listener
        if self.start_gate is not None:
            await self.start_gate.wait()
        if self.start_error is not None:
            raise self.start_error
        if self.auto_open:
            self.ready = True
            await listener.on_open()

    async def close(self) -> None:
        self.close_calls += 1
        self.ready = False

    def is_ready(self) -> bool:
        return self.ready

    async def send_text(self, conversation_id: str, text: str) -> str:
        self.sent.append(("text", conversation_id, text))
        return f"sent-{len(self.sent)}"

    async def send_audio(self, conversation_id: str, audio: bytes, mime_type: str, voice_note: bool = True) -> str:
        self.sent.append(("audio", conversation_id, audio))
        return f"sent-{len(self.sent)}"

    async def send_presence(self, conversation_id: str, presence: Presence) -> None:
        self.sent.append(("presence", conversation_id, presence))

    async def delete_message(self, conversation_id: str, message_key: Any) -> None:
        self.deleted.append((conversation_id, message_key))

    async def download_media(self, message: RawInboundMessage) -> Optional[bytes]:
        return self.media

    async def logout(self) -> None:
        if self.logout_error is not None:
            raise self.logout_error
        self.logged_out = True

    async def drop(self, reason: str = "Connection lost", logged_out: bool = False) -> None:
        """Simulate the library reporting a closed session."""
        self.ready = False
        await self.listener.on_close(DisconnectInfo(reason=reason, logged_out=logged_out))


class EchoingTransport(FakeTransport):
    """Reports every text it sends back as an own-device message, as a real
    linked device does.

    ``mode`` picks how the echo arrives:
    - ``"after_send"``: live, carrying the returned key, after the send returns
    - ``"before_return"``: live, delivered while the send is still in flight
    - ``"appended"``: flagged as not live
    """

    def __init__(self, auth_dir: str = "auth_info", mode: str = "after_send"):
        super().__init__(auth_dir)
        self.mode = mode
        self.echo_tasks: List[asyncio.Task] = []

    async def send_text(self, conversation_id: str, text: str) -> str:
        key = f"sent-{len(self.sent) + 1}"
        echo = RawInboundMessage(
            conversation_id=conversation_id,
            message_key=key,
            from_me=True,
            timestamp=int(time.time()),
            text=text,
            live=self.mode != "appended",
        )
        if self.mode == "before_return":
            await self.listener.on_messages([echo])
        await super().send_text(conversation_id, text)
        if self.mode != "before_return":
            self.echo_tasks.append(asyncio.create_task(self.listener.on_messages([echo])))
        return key


# ---------------------------------------------------------------------------
# Sleeps
# ---------------------------------------------------------------------------

class InstantSleep:
    """Records requested delays and returns immediately."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class BlockingSleep:
    """Records requested delays and never returns (until cancelled)."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.Event().wait()


@pytest.fixture
def fake_transport(tmp_path):
    return FakeTransport(auth_dir=str(tmp_path / "auth_info"))


@pytest.fixture
def echoing_transport_factory(tmp_path):
    def make(mode: str) -> EchoingTransport:
        return EchoingTransport(auth_dir=str(tmp_path / "auth_info"), mode=mode)
    return make


@pytest.fixture
def instant_sleep():
    return InstantSleep()


@pytest.fixture
def blocking_sleep():
    return BlockingSleep()
