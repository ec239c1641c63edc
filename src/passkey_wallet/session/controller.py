"""Session lifecycle controller.

Orchestrates the wallet operations exposed to the presentation layer:
startup restore, create, connect, transfer and disconnect. Each operation
runs under its own timeout budget, and only one runs at a time. Requests
arriving while another operation (or startup restore) is in progress are
dropped, not queued.

Startup restore order:
1. silent reconnect from the wallet kit's stored session
2. expired session record -> interactive re-authentication
3. best-effort session snapshot
4. unauthenticated idle

Timeouts never cancel the underlying call, so results can arrive after the
controller has moved on. Restore and operations check an epoch captured at
start (bumped by ``close``); balance refreshes check a generation counter
bumped whenever the connected contract changes.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Union

from passkey_wallet.config import Settings, get_settings
from passkey_wallet.ledger.balance import BalanceQueryError, fetch_native_balance
from passkey_wallet.ledger.base import LedgerClient
from passkey_wallet.session.classifier import classify_error
from passkey_wallet.session.state import (
    BalanceFailed,
    BalanceIdle,
    BalanceLoading,
    BalanceReady,
    BalanceState,
    LogEntry,
    LogType,
    Operation,
    Phase,
    SessionError,
    TransferFailed,
    TransferIdle,
    TransferState,
    TransferSucceeded,
)
from passkey_wallet.storage.base import StorageAdapter, StoredSession
from passkey_wallet.storage.snapshot import SessionSnapshotStore
from passkey_wallet.utils.timeouts import with_timeout
from passkey_wallet.wallet.base import (
    ConnectOptions,
    SmartAccountError,
    SmartAccountErrorCode,
    WalletKit,
)
from passkey_wallet.wallet.events import EventEmitter, WalletEvent
from passkey_wallet.wallet.validation import validate_address, validate_amount

logger = logging.getLogger(__name__)


def truncate(value: str, size: int = 10) -> str:
    """Shorten long ids for display: first and last ``size`` characters."""
    if len(value) <= size * 2:
        return value
    return f"{value[:size]}...{value[-size:]}"


class SessionController:
    """Wallet session state machine over restoring / idle / busy."""

    def __init__(
        self,
        kit: WalletKit,
        storage: StorageAdapter,
        snapshots: SessionSnapshotStore,
        ledger: LedgerClient,
        settings: Optional[Settings] = None,
    ):
        """Initialize the controller.

        Args:
            kit: Wallet kit performing the passkey and ledger work
            storage: Credential and session storage (normally ResilientStorage)
            snapshots: Best-effort session snapshot store
            ledger: Ledger client used for balance queries
            settings: Settings (defaults to the cached application settings)
        """
        self.kit = kit
        self.storage = storage
        self.snapshots = snapshots
        self.ledger = ledger
        self.settings = settings or get_settings()

        self.busy: Optional[Operation] = None
        self.restoring = False
        self.contract_id: Optional[str] = None
        self.credential_id: Optional[str] = None
        self.error_banner: Optional[str] = None
        self.balance: BalanceState = BalanceIdle()
        self.transfer_state: TransferState = TransferIdle()
        self.logs: deque[LogEntry] = deque(maxlen=self.settings.max_log_entries)

        self._epoch = 0
        self._balance_generation = 0
        self._background: set[asyncio.Task] = set()
        self._unsubscribers = self._subscribe_events()

    # ======================
    # State
    # ======================

    @property
    def events(self) -> EventEmitter:
        return self.kit.events

    @property
    def phase(self) -> Phase:
        if self.busy is not None:
            return Phase.BUSY
        if self.restoring:
            return Phase.RESTORING
        return Phase.IDLE

    @property
    def is_connected(self) -> bool:
        return bool(self.contract_id and self.credential_id)

    def push_log(self, message: str, log_type: LogType = LogType.INFO) -> None:
        """Add an activity log entry (newest first)."""
        self.logs.appendleft(LogEntry(message, log_type, datetime.now(timezone.utc)))
        level = logging.WARNING if log_type == LogType.ERROR else logging.INFO
        logger.log(level, "[activity] %s", message)

    def _is_stale(self, epoch: int) -> bool:
        return epoch != self._epoch

    def _timeout(self, operation: Operation) -> float:
        return self.settings.timeout_for(operation)

    # ======================
    # Events
    # ======================

    def _subscribe_events(self) -> list[Callable[[], None]]:
        def on_credential_created(payload: dict) -> None:
            credential = payload["credential"]
            self.push_log(f"event: credential_created ({truncate(credential.credential_id)})")

        def on_wallet_connected(payload: dict) -> None:
            self.push_log(
                f"event: wallet_connected ({truncate(payload['contract_id'])} / "
                f"{truncate(payload['credential_id'])})",
                LogType.SUCCESS,
            )

        def on_transaction_submitted(payload: dict) -> None:
            success = payload.get("success", False)
            self.push_log(
                f"event: transaction_submitted ({'success' if success else 'failed'} / "
                f"{payload.get('hash', '')})",
                LogType.SUCCESS if success else LogType.ERROR,
            )

        def on_session_expired(payload: dict) -> None:
            self.push_log(
                f"event: session_expired ({truncate(payload['contract_id'])} / "
                f"{truncate(payload['credential_id'])})"
            )

        return [
            self.events.on(WalletEvent.CREDENTIAL_CREATED, on_credential_created),
            self.events.on(WalletEvent.WALLET_CONNECTED, on_wallet_connected),
            self.events.on(WalletEvent.TRANSACTION_SUBMITTED, on_transaction_submitted),
            self.events.on(WalletEvent.SESSION_EXPIRED, on_session_expired),
        ]

    # ======================
    # Background tasks
    # ======================

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_background_tasks(self) -> None:
        """Wait for fire-and-forget work (balance refreshes) to settle."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def close(self) -> None:
        """Detach from the kit. Results still in flight are discarded."""
        self._epoch += 1
        self._balance_generation += 1
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # ======================
    # Operation template
    # ======================

    def _fail(self, operation: Operation, error: Exception) -> None:
        message = classify_error(operation, error)
        self.error_banner = message
        self.push_log(f"{operation.value}: {message}", LogType.ERROR)
        logger.debug("%s failed", operation.value, exc_info=error)

    async def _execute(self, operation: Operation, handler: Callable[[], Awaitable[None]]) -> None:
        self.busy = operation
        self.error_banner = None
        epoch = self._epoch

        try:
            await handler()
        except Exception as e:
            if not self._is_stale(epoch):
                self._fail(operation, e)
        finally:
            self.busy = None

    async def _run_operation(
        self, operation: Operation, handler: Callable[[], Awaitable[None]]
    ) -> bool:
        """Run a top-level operation unless another one is in progress.

        Returns:
            False if the request was dropped
        """
        if self.busy is not None or self.restoring:
            logger.debug(
                "Ignoring %s request: %s in progress",
                operation.value,
                self.busy.value if self.busy else Operation.RESTORE.value,
            )
            return False

        await self._execute(operation, handler)
        return True

    # ======================
    # Session persistence
    # ======================

    def _set_contract(self, contract_id: Optional[str]) -> None:
        if contract_id != self.contract_id:
            self._balance_generation += 1
            self.balance = BalanceIdle()
        self.contract_id = contract_id

    async def _apply_connection(self, contract_id: str, credential_id: str) -> None:
        self._set_contract(contract_id)
        self.credential_id = credential_id
        self.transfer_state = TransferIdle()

        now = datetime.now(timezone.utc)
        await self.storage.save_session(
            StoredSession(
                contract_id=contract_id,
                credential_id=credential_id,
                connected_at=now,
                expires_at=now + timedelta(seconds=self.settings.session_ttl_seconds),
            )
        )
        await self.snapshots.write(contract_id, credential_id)
        self._spawn(self.refresh_balance(contract_id))

    async def _clear_local_session(self) -> None:
        self._set_contract(None)
        self.credential_id = None
        self.transfer_state = TransferIdle()
        await self.storage.clear_session()
        await self.snapshots.clear()

    # ======================
    # Startup restore
    # ======================

    async def restore_session(self) -> None:
        """Restore the previous wallet session, if any."""
        if self.busy is not None or self.restoring:
            return

        epoch = self._epoch
        self.restoring = True
        self.error_banner = None

        try:
            await self._restore(epoch)
        finally:
            if not self._is_stale(epoch):
                self.restoring = False

    async def _restore(self, epoch: int) -> None:
        restore_timeout = self._timeout(Operation.RESTORE)

        silent_error: Optional[Exception] = None
        try:
            connected = await with_timeout(
                self.kit.connect_wallet(), Operation.RESTORE.value, restore_timeout
            )
        except Exception as e:
            connected = None
            silent_error = e
            logger.warning("Silent session restore failed: %s", e)

        if self._is_stale(epoch):
            return

        if connected is not None:
            await self._apply_connection(connected.contract_id, connected.credential_id)
            self.push_log("Restored previous wallet session.", LogType.SUCCESS)
            return

        session = await self.storage.get_session()
        if self._is_stale(epoch):
            return

        if session is not None and session.is_expired():
            await self.storage.clear_session()
            if self._is_stale(epoch):
                return
            await self._reauthenticate(session, epoch)
            return

        snapshot = await self.snapshots.read()
        if self._is_stale(epoch):
            return

        if snapshot is not None:
            self.push_log("No wallet session found. Trying local restore snapshot.")
            try:
                connected = await with_timeout(
                    self.kit.connect_wallet(
                        ConnectOptions(
                            credential_id=snapshot.credential_id,
                            contract_id=snapshot.contract_id,
                        )
                    ),
                    Operation.RESTORE.value,
                    restore_timeout,
                )
            except Exception as e:
                if not self._is_stale(epoch):
                    self._fail(Operation.RESTORE, e)
                return

            if self._is_stale(epoch):
                return

            if connected is not None:
                await self._apply_connection(connected.contract_id, connected.credential_id)
                self.push_log(
                    f"Restored via snapshot: {truncate(connected.contract_id)}", LogType.SUCCESS
                )
                return

        if silent_error is not None:
            self._fail(Operation.RESTORE, silent_error)
            return

        self.push_log("No previous session found. Connect or create a wallet.")

    async def _reauthenticate(self, session: StoredSession, epoch: int) -> None:
        self.events.emit(
            WalletEvent.SESSION_EXPIRED,
            {"contract_id": session.contract_id, "credential_id": session.credential_id},
        )

        async def handler() -> None:
            connected = await with_timeout(
                self.kit.connect_wallet(
                    ConnectOptions(
                        prompt=True,
                        credential_id=session.credential_id,
                        contract_id=session.contract_id,
                    )
                ),
                Operation.REAUTH.value,
                self._timeout(Operation.REAUTH),
            )
            if self._is_stale(epoch):
                return
            if connected is None:
                raise SessionError("Re-authentication did not return a wallet.")

            await self._apply_connection(connected.contract_id, connected.credential_id)
            self.push_log(
                f"Re-authenticated wallet: {truncate(connected.contract_id)}", LogType.SUCCESS
            )

        await self._execute(Operation.REAUTH, handler)

    # ======================
    # Operations
    # ======================

    async def create_wallet(self, display_name: str) -> bool:
        """Register a passkey, deploy and fund a new wallet."""

        async def handler() -> None:
            epoch = self._epoch
            name = display_name.strip()
            if not name:
                raise SessionError("Enter a username before creating a wallet.")

            self.push_log("Starting wallet creation (passkey + deployment)...")
            result = await with_timeout(
                self.kit.create_wallet(
                    self.settings.rp_name,
                    name,
                    auto_submit=True,
                    auto_fund=True,
                    native_token_contract=self.settings.native_token_contract,
                ),
                Operation.CREATE.value,
                self._timeout(Operation.CREATE),
            )
            if self._is_stale(epoch):
                return

            await self._apply_connection(result.contract_id, result.credential_id)
            self.push_log(f"Wallet created: {truncate(result.contract_id)}", LogType.SUCCESS)

            submit, fund = result.submit_result, result.fund_result
            if submit is not None:
                if submit.success:
                    self.push_log(f"Deployment submitted: {submit.hash}", LogType.SUCCESS)
                else:
                    self.push_log(
                        f"Deployment failed: {submit.error or 'unknown deployment error'}",
                        LogType.ERROR,
                    )
            if fund is not None:
                if fund.success:
                    self.push_log(
                        f"Wallet funded: {fund.amount if fund.amount is not None else 'unknown'}",
                        LogType.SUCCESS,
                    )
                else:
                    self.push_log(
                        f"Funding failed: {fund.error or 'unknown funding error'}", LogType.ERROR
                    )

        return await self._run_operation(Operation.CREATE, handler)

    async def connect_wallet(self, options: Optional[ConnectOptions] = None) -> bool:
        """Connect an existing wallet with an interactive passkey prompt."""
        options = options or ConnectOptions(prompt=True)

        async def handler() -> None:
            epoch = self._epoch
            connected = await with_timeout(
                self.kit.connect_wallet(options),
                Operation.CONNECT.value,
                self._timeout(Operation.CONNECT),
            )
            if self._is_stale(epoch):
                return
            if connected is None:
                raise SessionError("No wallet connected.")

            await self._apply_connection(connected.contract_id, connected.credential_id)
            self.push_log(f"Connected wallet: {truncate(connected.contract_id)}", LogType.SUCCESS)

        return await self._run_operation(Operation.CONNECT, handler)

    async def transfer(
        self,
        token_contract: Optional[str],
        recipient: str,
        amount: Union[Decimal, int, float, str],
    ) -> bool:
        """Transfer tokens from the connected wallet.

        Args:
            token_contract: Token contract (None = native token)
            recipient: Recipient address (G... or C...)
            amount: Amount in display units
        """
        token = token_contract or self.settings.native_token_contract

        async def handler() -> None:
            epoch = self._epoch
            target = recipient.strip()
            validate_address(target, "recipient")
            value = validate_amount(amount, "amount")
            if not self.is_connected:
                raise SmartAccountError(
                    SmartAccountErrorCode.WALLET_NOT_CONNECTED, "No wallet connected"
                )

            result = await with_timeout(
                self.kit.transfer(token, target, value),
                Operation.TRANSFER.value,
                self._timeout(Operation.TRANSFER),
            )
            if self._is_stale(epoch):
                return

            if result.success:
                self.transfer_state = TransferSucceeded(
                    hash=result.hash, amount=value, recipient=target, ledger=result.ledger
                )
                self.push_log(
                    f"Transfer submitted ({value} -> {truncate(target)}): {result.hash}",
                    LogType.SUCCESS,
                )
                if self.contract_id:
                    self._spawn(self.refresh_balance(self.contract_id))
                return

            message = result.error or "Transfer failed with an unknown error."
            self.transfer_state = TransferFailed(
                error=message, amount=value, recipient=target, hash=result.hash or None
            )
            raise SessionError(message)

        return await self._run_operation(Operation.TRANSFER, handler)

    async def disconnect(self) -> bool:
        """Disconnect the wallet.

        Local session state is cleared even when the kit call fails or
        times out.
        """

        async def handler() -> None:
            try:
                await with_timeout(
                    self.kit.disconnect(),
                    Operation.DISCONNECT.value,
                    self._timeout(Operation.DISCONNECT),
                )
            finally:
                await self._clear_local_session()
            self.push_log("Disconnected from wallet.", LogType.SUCCESS)

        return await self._run_operation(Operation.DISCONNECT, handler)

    # ======================
    # Balance
    # ======================

    async def refresh_balance(self, contract_id: str, log_errors: bool = True) -> None:
        """Reload the native balance of the connected contract.

        Not subject to operation mutual exclusion. Requests for a contract
        other than the connected one are ignored.
        """
        if contract_id != self.contract_id:
            logger.debug("Ignoring balance refresh for %s: not connected", contract_id)
            return

        generation = self._balance_generation
        self.balance = BalanceLoading()

        def is_current() -> bool:
            return generation == self._balance_generation and contract_id == self.contract_id

        try:
            value = await fetch_native_balance(
                self.ledger,
                self.settings.native_token_contract,
                contract_id,
                timeout=self.settings.balance_timeout,
            )
        except BalanceQueryError as e:
            if not is_current():
                return
            self.balance = BalanceFailed(error=str(e))
            if log_errors:
                self.push_log(f"balance: {e}", LogType.ERROR)
            return

        if is_current():
            self.balance = BalanceReady(value=value, updated_at=datetime.now(timezone.utc))
