"""Base interface for ledger contract-data queries."""

from abc import ABC, abstractmethod

from passkey_wallet.ledger.values import WireValue


class LedgerRpcError(Exception):
    """Raised when a ledger query fails."""

    def __init__(self, message: str, code: int | None = None):
        self.code = code
        super().__init__(message)


def balance_key(owner: str) -> dict:
    """Storage key of a token balance entry: ``["Balance", owner]``."""
    return {
        "type": "vec",
        "value": [
            {"type": "symbol", "value": "Balance"},
            {"type": "address", "value": owner},
        ],
    }


class LedgerClient(ABC):
    """Read access to contract storage on the ledger."""

    @abstractmethod
    async def query_contract_value(self, contract_id: str, key: dict) -> WireValue:
        """Read one contract data entry.

        Args:
            contract_id: Contract address (C...)
            key: Storage key in tagged JSON form

        Returns:
            The stored value

        Raises:
            LedgerRpcError: If the query fails or the entry does not exist
        """
        pass
