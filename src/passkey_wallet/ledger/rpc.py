"""JSON-RPC ledger client.

Talks to a contract-data RPC endpoint over HTTP using httpx.
Values and keys travel in tagged JSON form (see ledger.values.WireValue).
"""

import itertools
import logging
from typing import Any, Optional

import httpx

from passkey_wallet.ledger.base import LedgerClient, LedgerRpcError
from passkey_wallet.ledger.values import UnexpectedValueType, WireValue

logger = logging.getLogger(__name__)


class LedgerRpcClient(LedgerClient):
    """Contract-data queries over JSON-RPC.

    Network errors, non-200 responses and JSON-RPC error objects are all
    raised as LedgerRpcError.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            rpc_url: JSON-RPC endpoint
            timeout: HTTP timeout in seconds (used when no client is given)
            client: Optional shared httpx client (tests inject a MockTransport)
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._client = client
        self._ids = itertools.count(1)

    async def _call(self, method: str, params: dict) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        try:
            if self._client is not None:
                response = await self._client.post(self.rpc_url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise LedgerRpcError(f"RPC request failed: {e}") from e

        if response.status_code != 200:
            raise LedgerRpcError(f"RPC HTTP error {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise LedgerRpcError("RPC returned invalid JSON") from e

        if data.get("error"):
            error = data["error"]
            raise LedgerRpcError(error.get("message", "RPC error"), code=error.get("code"))

        return data.get("result")

    async def query_contract_value(self, contract_id: str, key: dict) -> WireValue:
        result = await self._call(
            "getContractData",
            {"contract": contract_id, "key": key, "durability": "persistent"},
        )

        if not result or result.get("val") is None:
            raise LedgerRpcError(f"Contract data not found for {contract_id}")

        logger.debug("Contract data for %s at ledger %s", contract_id, result.get("latestLedger"))
        try:
            return WireValue.from_json(result["val"])
        except UnexpectedValueType:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerRpcError(f"Malformed contract data value: {e}") from e
