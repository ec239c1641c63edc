"""Session controller state types."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class Operation(str, Enum):
    """Top-level wallet operations. At most one runs at a time."""

    RESTORE = "restore"
    REAUTH = "reauth"
    CREATE = "create"
    CONNECT = "connect"
    TRANSFER = "transfer"
    DISCONNECT = "disconnect"


class Phase(str, Enum):
    """Controller lifecycle phase."""

    RESTORING = "restoring"
    IDLE = "idle"
    BUSY = "busy"


class LogType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class LogEntry:
    """One activity log line shown to the user."""
    message: str
    type: LogType
    timestamp: datetime


# Balance states

@dataclass(frozen=True)
class BalanceIdle:
    status: str = "idle"


@dataclass(frozen=True)
class BalanceLoading:
    status: str = "loading"


@dataclass(frozen=True)
class BalanceReady:
    value: str
    updated_at: datetime
    status: str = "ready"


@dataclass(frozen=True)
class BalanceFailed:
    error: str
    status: str = "error"


BalanceState = Union[BalanceIdle, BalanceLoading, BalanceReady, BalanceFailed]


# Transfer states

@dataclass(frozen=True)
class TransferIdle:
    status: str = "idle"


@dataclass(frozen=True)
class TransferSucceeded:
    hash: str
    amount: Decimal
    recipient: str
    ledger: Optional[int] = None
    status: str = "success"


@dataclass(frozen=True)
class TransferFailed:
    error: str
    amount: Decimal
    recipient: str
    hash: Optional[str] = None
    status: str = "error"


TransferState = Union[TransferIdle, TransferSucceeded, TransferFailed]


class SessionError(Exception):
    """A user-facing failure raised inside an operation."""

    pass
