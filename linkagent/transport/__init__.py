"""linkagent transport - interface to the device-link client library"""

from .base import (
    ContentType,
    DeviceTransport,
    DisconnectInfo,
    Presence,
    RawInboundMessage,
    SessionListener,
)
from .credentials import wipe_auth_state

__all__ = [
    "ContentType",
    "DeviceTransport",
    "DisconnectInfo",
    "Presence",
    "RawInboundMessage",
    "SessionListener",
    "wipe_auth_state",
]
