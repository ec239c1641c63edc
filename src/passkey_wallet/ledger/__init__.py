"""Ledger queries and balance decoding."""

from passkey_wallet.ledger.balance import (
    BalanceQueryError,
    fetch_native_balance,
    is_missing_entry_error,
)
from passkey_wallet.ledger.base import LedgerClient, LedgerRpcError, balance_key
from passkey_wallet.ledger.rpc import LedgerRpcClient
from passkey_wallet.ledger.values import (
    UNITS_PER_TOKEN,
    UnexpectedValueType,
    WireValue,
    decode_balance,
    format_units,
)

__all__ = [
    "BalanceQueryError",
    "LedgerClient",
    "LedgerRpcClient",
    "LedgerRpcError",
    "UNITS_PER_TOKEN",
    "UnexpectedValueType",
    "WireValue",
    "balance_key",
    "decode_balance",
    "fetch_native_balance",
    "format_units",
    "is_missing_entry_error",
]
