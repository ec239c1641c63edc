"""Dry-run wallet kit for testing (no real network).

Simulates contract deployment, funding and transfers on an in-memory
ledger while running real passkey ceremonies through the configured
CredentialProvider and persisting credentials through the StorageAdapter.
"""

import base64
import hashlib
import logging
import secrets
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from passkey_wallet.ledger.base import LedgerClient, LedgerRpcError
from passkey_wallet.ledger.values import UNITS_PER_TOKEN, WireValue
from passkey_wallet.passkey.base import CredentialProvider
from passkey_wallet.storage.base import StorageAdapter, StoredCredential
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
from passkey_wallet.wallet.validation import (
    VERSION_CONTRACT,
    encode_strkey,
    validate_address,
    validate_amount,
)

logger = logging.getLogger(__name__)

DEFAULT_FUND_AMOUNT = Decimal("10000")


def _b64url_decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def contract_address_for(credential_id: str) -> str:
    """Deterministic wallet contract address for a credential."""
    return encode_strkey(VERSION_CONTRACT, hashlib.sha256(credential_id.encode()).digest())


class DryRunLedger(LedgerClient):
    """In-memory token ledger.

    Balances are kept per (token contract, owner) in smallest units.
    Owners without an entry report "not found", like a real ledger.
    """

    def __init__(self):
        self.balances: dict[tuple[str, str], int] = {}
        self.deployed: set[str] = set()
        self.sequence = 1000

    def _next_ledger(self) -> int:
        self.sequence += 1
        return self.sequence

    async def query_contract_value(self, contract_id: str, key: dict) -> WireValue:
        try:
            owner = key["value"][1]["value"]
        except (KeyError, IndexError, TypeError):
            raise LedgerRpcError("Unsupported contract data key")

        units = self.balances.get((contract_id, owner))
        if units is None:
            raise LedgerRpcError(f"Contract data not found for {contract_id}")

        hi, lo = units >> 64, units & ((1 << 64) - 1)
        return WireValue.i128(hi, lo)

    def deploy(self, contract_id: str) -> TransactionResult:
        self.deployed.add(contract_id)
        return TransactionResult(
            success=True, hash=secrets.token_hex(32), ledger=self._next_ledger()
        )

    def credit(self, token: str, owner: str, units: int) -> None:
        self.balances[(token, owner)] = self.balances.get((token, owner), 0) + units

    def move(self, token: str, sender: str, recipient: str, units: int) -> TransactionResult:
        available = self.balances.get((token, sender), 0)
        if available < units:
            return TransactionResult(
                success=False,
                hash=secrets.token_hex(32),
                error="Insufficient balance for transfer",
            )

        self.balances[(token, sender)] = available - units
        self.credit(token, recipient, units)
        return TransactionResult(
            success=True, hash=secrets.token_hex(32), ledger=self._next_ledger()
        )


class DryRunWalletKit(WalletKit):
    """Simulated smart-account kit.

    Session records are owned by the session controller; this kit only
    reads them for silent reconnects.
    """

    def __init__(
        self,
        provider: CredentialProvider,
        storage: StorageAdapter,
        ledger: Optional[DryRunLedger] = None,
        rp_id: str = "localhost",
        fund_amount: Decimal = DEFAULT_FUND_AMOUNT,
        events: Optional[EventEmitter] = None,
    ):
        super().__init__(events)
        self.provider = provider
        self.storage = storage
        self.ledger = ledger or DryRunLedger()
        self.rp_id = rp_id
        self.fund_amount = fund_amount
        self.connected: Optional[ConnectedWallet] = None

    def _challenge(self) -> str:
        return base64.urlsafe_b64encode(secrets.token_bytes(32)).decode().rstrip("=")

    def _connect(self, contract_id: str, credential_id: str) -> ConnectedWallet:
        self.connected = ConnectedWallet(contract_id=contract_id, credential_id=credential_id)
        self.events.emit(
            WalletEvent.WALLET_CONNECTED,
            {"contract_id": contract_id, "credential_id": credential_id},
        )
        return self.connected

    def _require_deployed(self, contract_id: str) -> None:
        if contract_id not in self.ledger.deployed:
            raise LedgerRpcError(f"Smart account contract not found on-chain: {contract_id}")

    async def create_wallet(
        self,
        app_name: str,
        user_name: str,
        *,
        auto_submit: bool = True,
        auto_fund: bool = False,
        native_token_contract: Optional[str] = None,
    ) -> CreateWalletResult:
        registration = await self.provider.create_credential(
            {
                "challenge": self._challenge(),
                "rp": {"id": self.rp_id, "name": app_name},
                "user": {"name": user_name, "displayName": user_name},
                "pubKeyCredParams": [{"type": "public-key", "alg": -7}],
            }
        )

        contract_id = contract_address_for(registration.id)
        credential = StoredCredential(
            credential_id=registration.id,
            contract_id=contract_id,
            public_key=_b64url_decode(registration.public_key or ""),
            nickname=user_name,
            transports=registration.transports,
            device_type=registration.authenticator_attachment,
            deployment_status="pending",
        )
        await self.storage.save(credential)
        self.events.emit(WalletEvent.CREDENTIAL_CREATED, {"credential": credential})

        submit_result = None
        if auto_submit:
            submit_result = self.ledger.deploy(contract_id)
            await self.storage.update(credential.credential_id, {"deployment_status": "deployed"})
            logger.info("Dry-run deployment of %s", contract_id)

        fund_result = None
        if auto_fund:
            if native_token_contract:
                units = int(self.fund_amount * UNITS_PER_TOKEN)
                self.ledger.credit(native_token_contract, contract_id, units)
                fund_result = FundResult(success=True, amount=self.fund_amount)
            else:
                fund_result = FundResult(success=False, error="No native token contract configured")

        self._connect(contract_id, credential.credential_id)
        return CreateWalletResult(
            contract_id=contract_id,
            credential_id=credential.credential_id,
            submit_result=submit_result,
            fund_result=fund_result,
        )

    async def connect_wallet(
        self, options: Optional[ConnectOptions] = None
    ) -> Optional[ConnectedWallet]:
        options = options or ConnectOptions()

        if options.credential_id and options.contract_id and not options.prompt:
            credential = await self.storage.get(options.credential_id)
            if credential is not None and credential.contract_id != options.contract_id:
                raise SmartAccountError(
                    SmartAccountErrorCode.CREDENTIAL_NOT_FOUND,
                    "Credential is registered to a different wallet",
                )
            self._require_deployed(options.contract_id)
            return self._connect(options.contract_id, options.credential_id)

        if not options.prompt:
            session = await self.storage.get_session()
            if session is None or session.is_expired():
                return None
            credential = await self.storage.get(session.credential_id)
            if credential is None:
                return None
            return self._connect(credential.contract_id, credential.credential_id)

        request = {"challenge": self._challenge(), "rpId": self.rp_id}
        if options.credential_id:
            request["allowCredentials"] = [{"type": "public-key", "id": options.credential_id}]

        assertion = await self.provider.authenticate(request)
        credential = await self.storage.get(assertion.id)
        if credential is None:
            raise SmartAccountError(
                SmartAccountErrorCode.CREDENTIAL_NOT_FOUND,
                "No stored wallet for the selected passkey",
            )

        self._require_deployed(credential.contract_id)
        await self.storage.update(
            credential.credential_id, {"last_used_at": datetime.now(timezone.utc)}
        )
        return self._connect(credential.contract_id, credential.credential_id)

    async def transfer(
        self, token_contract: str, recipient: str, amount: Decimal
    ) -> TransactionResult:
        if self.connected is None:
            raise SmartAccountError(
                SmartAccountErrorCode.WALLET_NOT_CONNECTED, "No wallet connected"
            )

        validate_address(recipient, "recipient")
        value = validate_amount(amount, "amount")
        units = int(value * UNITS_PER_TOKEN)

        result = self.ledger.move(token_contract, self.connected.contract_id, recipient, units)
        self.events.emit(
            WalletEvent.TRANSACTION_SUBMITTED, {"hash": result.hash, "success": result.success}
        )
        return result

    async def disconnect(self) -> None:
        self.connected = None
