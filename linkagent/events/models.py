"""
linkagent Event Models - Broadcast signals emitted by the core

Dashboards and other observers subscribe per EventType on the EventBus.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from ..history.models import now_ms


class EventType(str, Enum):
    """Kinds of events emitted by the connection manager and orchestrator"""
    # Session
    QR_CODE = "qr-code"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    STATUS_UPDATE = "status-update"
    CONNECTION_STATE = "connection-state"
    DISCONNECTED = "disconnected"

    # Conversations
    MESSAGE_RECEIVED = "message-received"
    MESSAGE_SENT_MANUALLY = "message-sent-manually"
    PAUSE_STATUS_UPDATE = "pause-status-update"

    # Errors
    ERROR = "error"


@dataclass
class Event:
    """
    A single broadcast event.

    Attributes:
        type: Event kind
        data: Event-specific payload (reason, qr, state, ...)
        timestamp: Milliseconds since epoch, set on creation
    """
    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            **self.data,
            "timestamp": self.timestamp,
        }
