"""linkagent connection - device-linked session lifecycle"""

from .manager import ConnectionManager
from .models import (
    ConnectionState,
    DisconnectCause,
    DisconnectRecord,
    classify_disconnect,
    reconnect_delay,
)

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "DisconnectCause",
    "DisconnectRecord",
    "classify_disconnect",
    "reconnect_delay",
]
