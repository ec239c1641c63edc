"""Smart-account wallet kit contract.

The wallet kit composes passkey ceremonies, contract deployment and ledger
submission into wallet-level calls. The session controller consumes it only
through this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from passkey_wallet.wallet.events import EventEmitter


class SmartAccountErrorCode(str, Enum):
    """Domain validation and wallet-state error codes."""

    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    WALLET_NOT_CONNECTED = "WALLET_NOT_CONNECTED"
    TRANSACTION_TIMEOUT = "TRANSACTION_TIMEOUT"
    CREDENTIAL_NOT_FOUND = "CREDENTIAL_NOT_FOUND"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    INVALID_CONFIG = "INVALID_CONFIG"


class SmartAccountError(Exception):
    """A wallet-level failure with a domain error code."""

    def __init__(self, code: SmartAccountErrorCode, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


@dataclass
class ConnectOptions:
    """How to connect a wallet.

    Attributes:
        prompt: Allow an interactive passkey ceremony
        credential_id: Connect with this credential (skips discovery)
        contract_id: Contract paired with credential_id
    """
    prompt: bool = False
    credential_id: Optional[str] = None
    contract_id: Optional[str] = None


@dataclass
class ConnectedWallet:
    """A connected wallet identity."""
    contract_id: str
    credential_id: str


@dataclass
class TransactionResult:
    """Outcome of a submitted transaction."""
    success: bool
    hash: str = ""
    ledger: Optional[int] = None
    error: Optional[str] = None


@dataclass
class FundResult:
    """Outcome of test-network funding."""
    success: bool
    amount: Optional[Decimal] = None
    error: Optional[str] = None


@dataclass
class CreateWalletResult:
    """Outcome of wallet creation.

    ``submit_result`` is set when deployment was submitted, ``fund_result``
    when funding was requested.
    """
    contract_id: str
    credential_id: str
    submit_result: Optional[TransactionResult] = None
    fund_result: Optional[FundResult] = None


class WalletKit(ABC):
    """Abstract base class for smart-account wallet kits."""

    def __init__(self, events: Optional[EventEmitter] = None):
        self.events = events or EventEmitter()

    @abstractmethod
    async def connect_wallet(
        self, options: Optional[ConnectOptions] = None
    ) -> Optional[ConnectedWallet]:
        """Connect a wallet.

        Without options this is a silent reconnect from the stored session
        and returns None when there is nothing to reconnect.
        """
        pass

    @abstractmethod
    async def create_wallet(
        self,
        app_name: str,
        user_name: str,
        *,
        auto_submit: bool = True,
        auto_fund: bool = False,
        native_token_contract: Optional[str] = None,
    ) -> CreateWalletResult:
        """Register a passkey and deploy a wallet contract for it."""
        pass

    @abstractmethod
    async def transfer(
        self, token_contract: str, recipient: str, amount: Decimal
    ) -> TransactionResult:
        """Transfer tokens from the connected wallet."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Forget the connected wallet."""
        pass
