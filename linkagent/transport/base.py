"""
Device Transport - Abstract interface to the device-link client library

The transport owns the wire protocol. linkagent only needs a session it
can start and tear down, a listener for session events and a handful of
send operations. Implementations wrap a concrete client library.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Protocol


class ContentType(str, Enum):
    """Inbound message content types"""
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    OTHER = "other"

    @property
    def is_media(self) -> bool:
        return self in (ContentType.IMAGE, ContentType.VIDEO, ContentType.AUDIO)


class Presence(str, Enum):
    """Chat presence shown to the counterpart"""
    COMPOSING = "composing"
    RECORDING = "recording"
    PAUSED = "paused"


@dataclass
class RawInboundMessage:
    """
    One inbound message as reported by the transport.

    Attributes:
        conversation_id: Channel the message belongs to
        message_key: Transport-specific key (used to delete the message)
        from_me: True when authored from the linked device itself
        timestamp: Seconds since epoch
        content_type: Kind of content
        text: Text body for text messages
        caption: Caption for image/video messages
        mime_type: MIME type for media messages
        push_name: Display name of the sender, if known
        is_voice_note: Audio recorded as a push-to-talk voice note
        live: False when the library appended the message itself (history
            sync, echo of a message this session sent). Only live messages
            are acted on.
        raw: Original library object, for download_media
    """
    conversation_id: str
    message_key: Any
    from_me: bool
    timestamp: int
    content_type: ContentType = ContentType.TEXT
    text: str = ""
    caption: str = ""
    mime_type: Optional[str] = None
    push_name: Optional[str] = None
    is_voice_note: bool = False
    live: bool = True
    raw: Any = field(default=None, repr=False)

    @property
    def timestamp_ms(self) -> int:
        return int(self.timestamp) * 1000

    @property
    def contact_label(self) -> str:
        return self.push_name or self.conversation_id.split("@")[0]


@dataclass
class DisconnectInfo:
    """
    Why a session closed.

    Attributes:
        reason: Human readable reason from the library
        status_code: Library status code, if any
        logged_out: The remote side revoked this device
    """
    reason: str = "Unknown reason"
    status_code: Optional[int] = None
    logged_out: bool = False


class SessionListener(Protocol):
    """Callbacks a transport invokes for session events."""

    async def on_qr(self, code: str) -> None: ...

    async def on_credentials_update(self) -> None: ...

    async def on_open(self) -> None: ...

    async def on_close(self, info: DisconnectInfo) -> None: ...

    async def on_messages(self, messages: List[RawInboundMessage]) -> None:
        """New messages in any conversation.

        Messages this session sent must either be reported with
        ``live=False`` or carry the key returned by ``send_text`` /
        ``send_audio``. An echo reported before the send returns is matched
        by conversation and text instead. Anything else is indistinguishable
        from a message the operator typed on the device and pauses the
        conversation.
        """
        ...


class DeviceTransport(ABC):
    """
    Abstract base class for device-link transports.

    All transports must implement:
    - start(listener) - create a session and begin reporting events
    - close() - tear down the session and detach every listener
    - is_ready() - True once the session is authenticated and open
    - send_text / send_audio - return the sent message's key, or None
    - send_presence / delete_message
    - download_media(message) - raw bytes of an inbound media message
    - logout() - revoke this device remotely
    """

    def __init__(self, auth_dir: str = "auth_info"):
        self.auth_dir = auth_dir
        self.transport_name = self.__class__.__name__

    @abstractmethod
    async def start(self, listener: SessionListener) -> None:
        """Create a new session. Events are delivered to ``listener``."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Drop the current session and its listeners. Safe without a session."""
        pass

    @abstractmethod
    def is_ready(self) -> bool:
        pass

    @abstractmethod
    async def send_text(self, conversation_id: str, text: str) -> Any:
        """Send a text message and return its key."""
        pass

    @abstractmethod
    async def send_audio(self, conversation_id: str, audio: bytes, mime_type: str, voice_note: bool = True) -> Any:
        """Send an audio message and return its key."""
        pass

    @abstractmethod
    async def send_presence(self, conversation_id: str, presence: Presence) -> None:
        pass

    @abstractmethod
    async def delete_message(self, conversation_id: str, message_key: Any) -> None:
        pass

    @abstractmethod
    async def download_media(self, message: RawInboundMessage) -> Optional[bytes]:
        pass

    @abstractmethod
    async def logout(self) -> None:
        pass
