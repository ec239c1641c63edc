"""Wallet session lifecycle: controller, state types and error messages."""

from passkey_wallet.session.classifier import classify_error
from passkey_wallet.session.controller import SessionController, truncate
from passkey_wallet.session.state import (
    BalanceFailed,
    BalanceIdle,
    BalanceLoading,
    BalanceReady,
    LogEntry,
    LogType,
    Operation,
    Phase,
    SessionError,
    TransferFailed,
    TransferIdle,
    TransferSucceeded,
)

__all__ = [
    "BalanceFailed",
    "BalanceIdle",
    "BalanceLoading",
    "BalanceReady",
    "LogEntry",
    "LogType",
    "Operation",
    "Phase",
    "SessionController",
    "SessionError",
    "TransferFailed",
    "TransferIdle",
    "TransferSucceeded",
    "classify_error",
    "truncate",
]
