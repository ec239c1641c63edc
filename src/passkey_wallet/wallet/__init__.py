"""Smart-account wallet kit contract, validation and events."""

from passkey_wallet.wallet.base import (
    ConnectedWallet,
    ConnectOptions,
    CreateWalletResult,
    FundResult,
    SmartAccountError,
    SmartAccountErrorCode,
    TransactionResult,
    WalletKit,
)
from passkey_wallet.wallet.events import EventEmitter, WalletEvent
from passkey_wallet.wallet.validation import is_valid_address, validate_address, validate_amount

__all__ = [
    "ConnectOptions",
    "ConnectedWallet",
    "CreateWalletResult",
    "EventEmitter",
    "FundResult",
    "SmartAccountError",
    "SmartAccountErrorCode",
    "TransactionResult",
    "WalletEvent",
    "WalletKit",
    "is_valid_address",
    "validate_address",
    "validate_amount",
]
