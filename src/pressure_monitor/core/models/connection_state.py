"""Connection and session state models."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConnectionStatus(Enum):
    """Public connection states observed by the UI layer."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class SessionState(Enum):
    """Lifecycle of a single acquisition session."""
    OPENING = "opening"
    READING = "reading"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        return self in (SessionState.CLOSED, SessionState.FAILED)


@dataclass(frozen=True)
class ConnectionState:
    """
    Current connection state. `message` is only set for ERROR.
    """
    status: ConnectionStatus
    message: Optional[str] = None

    @classmethod
    def disconnected(cls) -> "ConnectionState":
        return cls(ConnectionStatus.DISCONNECTED)

    @classmethod
    def connecting(cls) -> "ConnectionState":
        return cls(ConnectionStatus.CONNECTING)

    @classmethod
    def connected(cls) -> "ConnectionState":
        return cls(ConnectionStatus.CONNECTED)

    @classmethod
    def error(cls, message: str) -> "ConnectionState":
        return cls(ConnectionStatus.ERROR, message)

    @property
    def is_active(self) -> bool:
        """True while a session is being opened or is streaming."""
        return self.status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED)
