"""Native token balance lookup.

A wallet that has never received funds has no balance entry at all, so
"entry not found" style failures are a zero balance, not an error.
"""

import logging

from passkey_wallet.ledger.base import LedgerClient, balance_key
from passkey_wallet.ledger.values import decode_balance
from passkey_wallet.utils.timeouts import with_timeout

logger = logging.getLogger(__name__)

ZERO_BALANCE = "0"

MISSING_ENTRY_PATTERNS = (
    "not found",
    "resource missing",
    "missing entry",
    "missingvalue",
    "entry does not exist",
    "ledger entry",
)


class BalanceQueryError(Exception):
    """Raised when a balance cannot be loaded."""

    pass


def error_message(error: object, fallback: str) -> str:
    """Best-effort message extraction from any failure value."""
    if isinstance(error, BaseException):
        return str(error) or fallback
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    if isinstance(error, str) and error:
        return error
    return fallback


def is_missing_entry_error(error: object) -> bool:
    """Check whether a query failure means the entry does not exist yet."""
    message = error_message(error, "").lower()
    return any(pattern in message for pattern in MISSING_ENTRY_PATTERNS)


async def fetch_native_balance(
    ledger: LedgerClient,
    token_contract: str,
    owner: str,
    timeout: float = 15.0,
) -> str:
    """Get the display balance of ``owner`` in ``token_contract``.

    Args:
        ledger: Ledger client
        token_contract: Token contract address
        owner: Wallet contract address whose balance is read
        timeout: Query budget in seconds

    Returns:
        Decimal string, "0" when the balance entry does not exist

    Raises:
        BalanceQueryError: For any other failure, including timeouts and
            unexpected value types
    """
    try:
        value = await with_timeout(
            ledger.query_contract_value(token_contract, balance_key(owner)),
            "balance query",
            timeout,
        )
        return decode_balance(value)
    except Exception as e:
        if is_missing_entry_error(e):
            logger.debug("No balance entry for %s yet: %s", owner, e)
            return ZERO_BALANCE
        raise BalanceQueryError(error_message(e, "Failed to load balance")) from e
