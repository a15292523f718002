"""Connection states, disconnect causes and the backoff schedule."""

from dataclasses import dataclass, field
from enum import Enum

from ..history.models import now_ms
from ..transport.base import DisconnectInfo


class ConnectionState(str, Enum):
    """Lifecycle of the single device-linked session"""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class DisconnectCause(str, Enum):
    """Classification of a closed session"""
    CONFLICT = "conflict"                      # another session took this identity
    LOGGED_OUT = "logged_out"                  # device revoked remotely
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"  # backoff budget spent
    TRANSIENT = "transient"

    @property
    def requires_reset(self) -> bool:
        return self is not DisconnectCause.TRANSIENT


@dataclass
class DisconnectRecord:
    """Diagnostics entry for one disconnect or reset request."""
    cause: DisconnectCause
    reason: str
    attempts: int
    handled: bool = True
    timestamp: int = field(default_factory=now_ms)


def classify_disconnect(info: DisconnectInfo, attempts: int, max_attempts: int) -> DisconnectCause:
    """Decide how to recover from a closed session.

    Conflict is checked first, then the attempt budget, then remote logout.
    """
    if "conflict" in (info.reason or "").lower():
        return DisconnectCause.CONFLICT
    if attempts >= max_attempts:
        return DisconnectCause.ATTEMPTS_EXHAUSTED
    if info.logged_out:
        return DisconnectCause.LOGGED_OUT
    return DisconnectCause.TRANSIENT


def reconnect_delay(attempts: int, base: float = 5.0, cap: float = 30.0) -> float:
    """Backoff in seconds for the given (already incremented) attempt count.

    >>> [reconnect_delay(n) for n in range(1, 6)]
    [5.0, 10.0, 20.0, 30.0, 30.0]
    """
    exponent = max(attempts - 1, 0)
    return min(base * (2 ** exponent), cap)
