"""Utility modules for passkey_wallet."""

from passkey_wallet.utils.timeouts import OperationTimeoutError, with_timeout

__all__ = ["OperationTimeoutError", "with_timeout"]
