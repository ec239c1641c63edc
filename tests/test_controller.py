"""Tests for the session controller."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from passkey_wallet.ledger.base import LedgerClient, LedgerRpcError
from passkey_wallet.ledger.values import WireValue
from passkey_wallet.passkey.dryrun import DryRunCredentialProvider
from passkey_wallet.passkey.errors import PasskeyError, PluginErrorCode
from passkey_wallet.session.controller import SessionController, truncate
from passkey_wallet.session.state import (
    BalanceFailed,
    BalanceIdle,
    BalanceReady,
    LogType,
    Operation,
    Phase,
    TransferFailed,
    TransferIdle,
    TransferSucceeded,
)
from passkey_wallet.storage.base import StoredSession
from passkey_wallet.storage.memory import MemoryPreferencesStore
from passkey_wallet.storage.preferences import PreferencesStorage
from passkey_wallet.storage.resilient import ResilientStorage
from passkey_wallet.wallet.base import (
    ConnectedWallet,
    ConnectOptions,
    CreateWalletResult,
    FundResult,
    TransactionResult,
    WalletKit,
)
from passkey_wallet.wallet.dryrun import DryRunLedger, DryRunWalletKit
from passkey_wallet.wallet.events import EventEmitter, WalletEvent

from conftest import NATIVE_TOKEN, account_address, contract_address

CONTRACT = contract_address("wallet-1")
OTHER_CONTRACT = contract_address("wallet-2")
CREDENTIAL = "credential-id-0123456789"
RECIPIENT = account_address("recipient")
WALLET = ConnectedWallet(contract_id=CONTRACT, credential_id=CREDENTIAL)


def make_kit() -> AsyncMock:
    kit = AsyncMock(spec=WalletKit)
    kit.events = EventEmitter()
    kit.connect_wallet.return_value = None
    return kit


def stored_session(expires_in: timedelta) -> StoredSession:
    now = datetime.now(timezone.utc)
    return StoredSession(
        contract_id=CONTRACT,
        credential_id=CREDENTIAL,
        connected_at=now - timedelta(days=8),
        expires_at=now + expires_in,
    )


def waits_for(gate: asyncio.Event, result=None):
    """Async side effect that settles once the gate opens."""

    async def wait(*args, **kwargs):
        await gate.wait()
        return result

    return wait


def responses(*items):
    """Async side effect returning, raising or awaiting one item per call."""
    pending = list(items)

    async def respond(*args, **kwargs):
        item = pending.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return await item()
        return item

    return respond


async def settle(controller: SessionController) -> None:
    await controller.wait_for_background_tasks()


def messages(controller: SessionController) -> list[str]:
    return [entry.message for entry in controller.logs]


@pytest.fixture
def ledger() -> DryRunLedger:
    return DryRunLedger()


@pytest.fixture
def kit() -> AsyncMock:
    return make_kit()


@pytest.fixture
def controller(kit, storage, snapshots, ledger, settings) -> SessionController:
    return SessionController(kit, storage, snapshots, ledger, settings)


class TestInitialState:
    """Tests for the controller before any operation."""

    def test_defaults(self, controller):
        assert controller.phase == Phase.IDLE
        assert controller.is_connected is False
        assert controller.balance == BalanceIdle()
        assert controller.transfer_state == TransferIdle()
        assert controller.error_banner is None

    def test_exposes_kit_events(self, controller, kit):
        assert controller.events is kit.events
        assert kit.events.listener_count(WalletEvent.WALLET_CONNECTED) == 1

    def test_close_unsubscribes(self, controller, kit):
        controller.close()
        assert kit.events.listener_count(WalletEvent.WALLET_CONNECTED) == 0

    def test_truncate(self):
        assert truncate("short") == "short"
        assert truncate("A" * 10 + "B" * 5 + "C" * 10) == "AAAAAAAAAA...CCCCCCCCCC"


class TestActivityLog:
    """Tests for the bounded activity log."""

    def test_newest_first_and_bounded(self, controller, settings):
        for i in range(20):
            controller.push_log(f"entry {i}")

        assert len(controller.logs) == settings.max_log_entries
        assert controller.logs[0].message == "entry 19"
        assert controller.logs[-1].message == "entry 6"

    def test_events_are_logged(self, controller, kit):
        kit.events.emit(
            WalletEvent.WALLET_CONNECTED, {"contract_id": CONTRACT, "credential_id": CREDENTIAL}
        )

        entry = controller.logs[0]
        assert entry.type == LogType.SUCCESS
        assert entry.message.startswith("event: wallet_connected (")
        assert truncate(CONTRACT) in entry.message


class TestRestoreSession:
    """Tests for startup restore ordering."""

    @pytest.mark.asyncio
    async def test_silent_restore(self, controller, kit, storage, snapshots):
        kit.connect_wallet.return_value = WALLET

        await controller.restore_session()
        await settle(controller)

        assert controller.phase == Phase.IDLE
        assert controller.contract_id == CONTRACT
        assert controller.credential_id == CREDENTIAL
        assert controller.error_banner is None
        assert controller.balance.status == "ready"
        assert controller.balance.value == "0"
        assert (await storage.get_session()).contract_id == CONTRACT
        assert (await snapshots.read()).credential_id == CREDENTIAL
        assert "Restored previous wallet session." in messages(controller)

    @pytest.mark.asyncio
    async def test_nothing_to_restore(self, controller, kit):
        await controller.restore_session()

        assert controller.phase == Phase.IDLE
        assert controller.is_connected is False
        assert controller.error_banner is None
        assert messages(controller)[0] == "No previous session found. Connect or create a wallet."
        kit.connect_wallet.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_phase_is_restoring_while_running(self, controller, kit):
        gate = asyncio.Event()
        kit.connect_wallet.side_effect = waits_for(gate)

        task = asyncio.ensure_future(controller.restore_session())
        await asyncio.sleep(0.01)

        assert controller.phase == Phase.RESTORING

        gate.set()
        await task
        assert controller.phase == Phase.IDLE

    @pytest.mark.asyncio
    async def test_expired_session_prompts_reauth(self, controller, kit, storage):
        await storage.save_session(stored_session(timedelta(minutes=-1)))
        kit.connect_wallet.side_effect = [None, WALLET]
        expired = []
        kit.events.on(WalletEvent.SESSION_EXPIRED, expired.append)

        await controller.restore_session()
        await settle(controller)

        assert expired == [{"contract_id": CONTRACT, "credential_id": CREDENTIAL}]
        kit.connect_wallet.assert_awaited_with(
            ConnectOptions(prompt=True, credential_id=CREDENTIAL, contract_id=CONTRACT)
        )
        assert controller.is_connected
        assert controller.phase == Phase.IDLE
        assert any(m.startswith("Re-authenticated wallet:") for m in messages(controller))
        assert (await storage.get_session()).is_expired() is False

    @pytest.mark.asyncio
    async def test_reauth_timeout(self, controller, kit, storage):
        await storage.save_session(stored_session(timedelta(minutes=-1)))
        gate = asyncio.Event()
        kit.connect_wallet.side_effect = responses(None, waits_for(gate, WALLET))

        await controller.restore_session()

        assert controller.error_banner == "Re-authentication timed out. Try Connect Wallet again."
        assert controller.is_connected is False
        assert controller.phase == Phase.IDLE
        assert controller.logs[0].type == LogType.ERROR
        gate.set()

    @pytest.mark.asyncio
    async def test_reauth_cancelled(self, controller, kit, storage):
        await storage.save_session(stored_session(timedelta(minutes=-1)))
        kit.connect_wallet.side_effect = [
            None,
            PasskeyError("NotAllowedError", "User cancelled", "CANCELLED"),
        ]

        await controller.restore_session()

        assert controller.error_banner == (
            "Passkey request was cancelled or no credential was selected."
        )

    @pytest.mark.asyncio
    async def test_expired_session_cleared_when_reauth_cancelled(self, controller, kit, storage):
        await storage.save_session(stored_session(timedelta(minutes=-1)))
        kit.connect_wallet.side_effect = [
            None,
            PasskeyError("NotAllowedError", "User cancelled", "CANCELLED"),
        ]

        await controller.restore_session()

        assert controller.is_connected is False
        assert await storage.get_session() is None

    @pytest.mark.asyncio
    async def test_reauth_runs_as_busy_operation(self, controller, kit, storage):
        await storage.save_session(stored_session(timedelta(minutes=-1)))
        seen = []

        async def record_state():
            seen.append((controller.phase, controller.busy))
            return WALLET

        kit.connect_wallet.side_effect = responses(None, record_state)

        await controller.restore_session()
        await settle(controller)

        assert seen == [(Phase.BUSY, Operation.REAUTH)]
        assert controller.phase == Phase.IDLE
        assert controller.busy is None

    @pytest.mark.asyncio
    async def test_snapshot_restore(self, controller, kit, snapshots):
        await snapshots.write(CONTRACT, CREDENTIAL)
        kit.connect_wallet.side_effect = [None, WALLET]

        await controller.restore_session()

        kit.connect_wallet.assert_awaited_with(
            ConnectOptions(credential_id=CREDENTIAL, contract_id=CONTRACT)
        )
        assert controller.contract_id == CONTRACT
        assert "No wallet session found. Trying local restore snapshot." in messages(controller)
        assert messages(controller)[0] == f"Restored via snapshot: {truncate(CONTRACT)}"

    @pytest.mark.asyncio
    async def test_snapshot_restore_undeployed(self, controller, kit, snapshots):
        await snapshots.write(CONTRACT, CREDENTIAL)
        kit.connect_wallet.side_effect = [
            None,
            LedgerRpcError(f"Smart account contract not found on-chain: {CONTRACT}"),
        ]

        await controller.restore_session()

        assert controller.error_banner == (
            "Wallet contract is not deployed on-chain yet. Create and deploy a wallet first."
        )
        assert controller.is_connected is False

    @pytest.mark.asyncio
    async def test_silent_failure_reported_when_nothing_restores(self, controller, kit):
        kit.connect_wallet.side_effect = RuntimeError("bridge unavailable")

        await controller.restore_session()

        assert controller.error_banner == "bridge unavailable"
        assert controller.phase == Phase.IDLE

    @pytest.mark.asyncio
    async def test_silent_timeout_recovered_by_snapshot(self, controller, kit, snapshots):
        await snapshots.write(CONTRACT, CREDENTIAL)
        gate = asyncio.Event()
        kit.connect_wallet.side_effect = responses(waits_for(gate), WALLET)

        await controller.restore_session()

        assert controller.error_banner is None
        assert controller.contract_id == CONTRACT
        gate.set()

    @pytest.mark.asyncio
    async def test_silent_timeout_without_fallback(self, controller, kit):
        gate = asyncio.Event()
        kit.connect_wallet.side_effect = waits_for(gate, WALLET)

        await controller.restore_session()

        assert controller.error_banner == "Session restore timed out. You can continue manually."

        gate.set()
        await asyncio.sleep(0.01)
        assert controller.is_connected is False

    @pytest.mark.asyncio
    async def test_close_discards_late_restore(self, controller, kit):
        gate = asyncio.Event()
        kit.connect_wallet.side_effect = waits_for(gate, WALLET)

        task = asyncio.ensure_future(controller.restore_session())
        await asyncio.sleep(0.01)
        controller.close()
        gate.set()
        await task

        assert controller.is_connected is False


class TestMutualExclusion:
    """Tests for one-operation-at-a-time."""

    @pytest.mark.asyncio
    async def test_second_operation_is_dropped(self, controller, kit):
        gate = asyncio.Event()
        kit.connect_wallet.side_effect = waits_for(gate, WALLET)

        first = asyncio.ensure_future(controller.connect_wallet())
        await asyncio.sleep(0.01)

        assert controller.busy == Operation.CONNECT
        assert controller.phase == Phase.BUSY
        assert await controller.connect_wallet() is False
        assert await controller.create_wallet("alice") is False
        assert await controller.disconnect() is False

        gate.set()
        assert await first is True
        assert kit.connect_wallet.await_count == 1
        kit.create_wallet.assert_not_called()
        kit.disconnect.assert_not_called()
        assert controller.busy is None

    @pytest.mark.asyncio
    async def test_operations_dropped_during_restore(self, controller, kit):
        gate = asyncio.Event()
        kit.connect_wallet.side_effect = waits_for(gate)

        restore = asyncio.ensure_future(controller.restore_session())
        await asyncio.sleep(0.01)

        assert await controller.create_wallet("alice") is False
        assert await controller.transfer(None, RECIPIENT, "1") is False

        gate.set()
        await restore
        kit.create_wallet.assert_not_called()
        kit.transfer.assert_not_called()


class TestConnectWallet:
    """Tests for interactive connect."""

    @pytest.mark.asyncio
    async def test_connect(self, controller, kit):
        kit.connect_wallet.return_value = WALLET

        assert await controller.connect_wallet() is True
        await settle(controller)

        kit.connect_wallet.assert_awaited_once_with(ConnectOptions(prompt=True))
        assert controller.is_connected
        assert messages(controller)[0] == f"Connected wallet: {truncate(CONTRACT)}"

    @pytest.mark.asyncio
    async def test_connect_without_result(self, controller, kit):
        await controller.connect_wallet()

        assert controller.error_banner == "No wallet connected."
        assert controller.logs[0].message == "connect: No wallet connected."

    @pytest.mark.asyncio
    async def test_connect_timeout_discards_late_result(self, controller, kit):
        gate = asyncio.Event()
        kit.connect_wallet.side_effect = waits_for(gate, WALLET)

        await controller.connect_wallet()

        assert controller.error_banner == "Wallet connection timed out. Try Connect Wallet again."
        assert controller.phase == Phase.IDLE

        gate.set()
        await asyncio.sleep(0.01)
        assert controller.contract_id is None

    @pytest.mark.asyncio
    async def test_new_operation_clears_banner(self, controller, kit):
        await controller.connect_wallet()
        assert controller.error_banner is not None

        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()

        assert controller.error_banner is None


class TestCreateWallet:
    """Tests for wallet creation."""

    @pytest.mark.asyncio
    async def test_blank_name(self, controller, kit):
        await controller.create_wallet("   ")

        assert controller.error_banner == "Enter a username before creating a wallet."
        kit.create_wallet.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_logs_results(self, controller, kit, settings):
        kit.create_wallet.return_value = CreateWalletResult(
            contract_id=CONTRACT,
            credential_id=CREDENTIAL,
            submit_result=TransactionResult(success=True, hash="abc123"),
            fund_result=FundResult(success=False, error="friendbot down"),
        )

        await controller.create_wallet("  alice  ")

        kit.create_wallet.assert_awaited_once_with(
            settings.rp_name,
            "alice",
            auto_submit=True,
            auto_fund=True,
            native_token_contract=NATIVE_TOKEN,
        )
        assert controller.is_connected
        assert "Deployment submitted: abc123" in messages(controller)
        assert "Funding failed: friendbot down" in messages(controller)
        assert controller.error_banner is None

    @pytest.mark.asyncio
    async def test_create_cancelled(self, controller, kit):
        kit.create_wallet.side_effect = PasskeyError("NotAllowedError", "cancel", "CANCELLED")

        await controller.create_wallet("alice")

        assert controller.error_banner.startswith("Passkey request was cancelled")
        assert controller.logs[0].message.startswith("create: ")


class TestTransfer:
    """Tests for transfers with a mocked kit."""

    @pytest.mark.asyncio
    async def test_not_connected(self, controller, kit):
        await controller.transfer(None, RECIPIENT, "1")

        assert controller.error_banner == "No wallet connected. Connect a wallet before this action."
        kit.transfer.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_recipient(self, controller, kit):
        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()

        await controller.transfer(None, "GNOTANADDRESS", "1")

        assert controller.error_banner == (
            "Invalid Stellar address. Use a valid G... or C... address."
        )
        kit.transfer.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_amount(self, controller, kit):
        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()

        await controller.transfer(None, RECIPIENT, "-3")

        assert controller.error_banner == "Invalid amount. Enter a positive numeric value."

    @pytest.mark.asyncio
    async def test_failed_result_without_message(self, controller, kit):
        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()
        kit.transfer.return_value = TransactionResult(success=False)

        await controller.transfer(None, f"  {RECIPIENT} ", "1.5")

        kit.transfer.assert_awaited_once_with(NATIVE_TOKEN, RECIPIENT, Decimal("1.5"))
        assert controller.error_banner == "Transfer failed with an unknown error."
        assert controller.transfer_state == TransferFailed(
            error="Transfer failed with an unknown error.",
            amount=Decimal("1.5"),
            recipient=RECIPIENT,
        )

    @pytest.mark.asyncio
    async def test_transfer_timeout(self, controller, kit):
        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()
        gate = asyncio.Event()
        kit.transfer.side_effect = waits_for(gate)

        await controller.transfer(None, RECIPIENT, "1")

        assert controller.error_banner == (
            "Transfer timed out before confirmation. Check network status and retry."
        )
        gate.set()


class TestDisconnect:
    """Tests for disconnect."""

    @pytest.mark.asyncio
    async def test_disconnect_clears_everything(self, controller, kit, storage, snapshots):
        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()
        await settle(controller)

        assert await controller.disconnect() is True

        assert controller.is_connected is False
        assert controller.balance == BalanceIdle()
        assert await storage.get_session() is None
        assert await snapshots.read() is None
        assert messages(controller)[0] == "Disconnected from wallet."

    @pytest.mark.asyncio
    async def test_local_state_cleared_when_kit_fails(self, controller, kit, storage, snapshots):
        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()
        kit.disconnect.side_effect = RuntimeError("bridge gone")

        await controller.disconnect()

        assert controller.error_banner == "bridge gone"
        assert controller.is_connected is False
        assert await storage.get_session() is None
        assert await snapshots.read() is None

    @pytest.mark.asyncio
    async def test_local_state_cleared_when_kit_hangs(self, controller, kit):
        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()
        gate = asyncio.Event()
        kit.disconnect.side_effect = waits_for(gate)

        await controller.disconnect()

        assert controller.error_banner == "Disconnect timed out. Try again."
        assert controller.is_connected is False
        gate.set()


class TestBalance:
    """Tests for balance refresh."""

    @pytest.fixture
    def ledger(self):
        return AsyncMock(spec=LedgerClient)

    @pytest.mark.asyncio
    async def test_missing_entry_is_zero(self, controller, kit, ledger):
        ledger.query_contract_value.side_effect = LedgerRpcError("entry does not exist")
        kit.connect_wallet.return_value = WALLET

        await controller.connect_wallet()
        await settle(controller)

        assert isinstance(controller.balance, BalanceReady)
        assert controller.balance.value == "0"

    @pytest.mark.asyncio
    async def test_failure_sets_error_state(self, controller, kit, ledger):
        ledger.query_contract_value.side_effect = LedgerRpcError("rpc unavailable")
        kit.connect_wallet.return_value = WALLET

        await controller.connect_wallet()
        await settle(controller)

        assert controller.balance == BalanceFailed(error="rpc unavailable")
        assert messages(controller)[0] == "balance: rpc unavailable"
        assert controller.error_banner is None

    @pytest.mark.asyncio
    async def test_refresh_for_other_contract_ignored(self, controller, kit, ledger):
        ledger.query_contract_value.return_value = WireValue.i128(0, 25_000_000)
        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()
        await settle(controller)

        await controller.refresh_balance(OTHER_CONTRACT)

        assert controller.balance.value == "2.5"
        assert ledger.query_contract_value.await_count == 1

    @pytest.mark.asyncio
    async def test_stale_result_discarded_after_disconnect(self, controller, kit, ledger):
        gate = asyncio.Event()
        ledger.query_contract_value.side_effect = waits_for(gate, WireValue.i128(0, 10_000_000))
        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()
        await asyncio.sleep(0.01)
        assert controller.balance.status == "loading"

        await controller.disconnect()
        gate.set()
        await settle(controller)

        assert controller.balance == BalanceIdle()

    @pytest.mark.asyncio
    async def test_stale_result_discarded_after_switching_wallet(self, controller, kit, ledger):
        first_gate = asyncio.Event()

        async def query(token, key):
            owner = key["value"][1]["value"]
            if owner == CONTRACT:
                await first_gate.wait()
                return WireValue.i128(0, 10_000_000)
            return WireValue.i128(0, 30_000_000)

        ledger.query_contract_value.side_effect = query

        kit.connect_wallet.return_value = WALLET
        await controller.connect_wallet()
        kit.connect_wallet.return_value = ConnectedWallet(OTHER_CONTRACT, "credential-2")
        await controller.connect_wallet()

        await asyncio.sleep(0.01)
        assert controller.balance.value == "3"

        first_gate.set()
        await settle(controller)

        assert controller.contract_id == OTHER_CONTRACT
        assert controller.balance.value == "3"


class TestDryRunFlow:
    """End-to-end flows against the dry-run wallet kit."""

    @pytest.fixture
    def provider(self):
        return DryRunCredentialProvider()

    def build(self, provider, storage, snapshots, ledger, settings):
        kit = DryRunWalletKit(provider, storage, ledger=ledger, rp_id=settings.rp_id)
        return SessionController(kit, storage, snapshots, ledger, settings)

    @pytest.mark.asyncio
    async def test_create_transfer_and_restart(
        self, provider, storage, snapshots, ledger, settings
    ):
        controller = self.build(provider, storage, snapshots, ledger, settings)

        await controller.create_wallet("alice")
        await settle(controller)

        assert controller.is_connected
        assert controller.balance.value == "10000"
        logged = messages(controller)
        assert any(m.startswith("event: credential_created") for m in logged)
        assert any(m.startswith("event: wallet_connected") for m in logged)
        assert any(m.startswith("Deployment submitted:") for m in logged)
        assert "Wallet funded: 10000" in logged

        await controller.transfer(None, RECIPIENT, "2.5")
        await settle(controller)

        assert isinstance(controller.transfer_state, TransferSucceeded)
        assert controller.transfer_state.amount == Decimal("2.5")
        assert controller.balance.value == "9997.5"

        contract_id = controller.contract_id
        controller.close()

        restarted = self.build(provider, storage, snapshots, ledger, settings)
        await restarted.restore_session()

        assert restarted.contract_id == contract_id
        assert restarted.error_banner is None

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, provider, storage, snapshots, ledger, settings):
        controller = self.build(provider, storage, snapshots, ledger, settings)
        await controller.create_wallet("alice")

        await controller.transfer(None, RECIPIENT, "20000")

        assert controller.error_banner == "Insufficient balance for transfer"
        assert isinstance(controller.transfer_state, TransferFailed)
        assert controller.transfer_state.hash

    @pytest.mark.asyncio
    async def test_restore_from_snapshot_after_session_loss(
        self, provider, storage, snapshots, ledger, settings
    ):
        controller = self.build(provider, storage, snapshots, ledger, settings)
        await controller.create_wallet("alice")
        contract_id = controller.contract_id
        controller.close()
        await storage.clear_session()

        restarted = self.build(provider, storage, snapshots, ledger, settings)
        await restarted.restore_session()

        assert restarted.contract_id == contract_id
        assert restarted.logs[0].message.startswith("Restored via snapshot:")

    @pytest.mark.asyncio
    async def test_expired_session_reauthenticates(
        self, provider, storage, snapshots, ledger, settings
    ):
        controller = self.build(provider, storage, snapshots, ledger, settings)
        await controller.create_wallet("alice")
        session = await storage.get_session()
        controller.close()
        await storage.save_session(
            session.model_copy(update={"expires_at": datetime.now(timezone.utc)})
        )

        restarted = self.build(provider, storage, snapshots, ledger, settings)
        await restarted.restore_session()

        assert restarted.contract_id == session.contract_id
        assert any(m.startswith("event: session_expired") for m in messages(restarted))

    @pytest.mark.asyncio
    async def test_cancelled_passkey(self, storage, snapshots, ledger, settings):
        provider = DryRunCredentialProvider(fail_with=PluginErrorCode.CANCELLED)
        controller = self.build(provider, storage, snapshots, ledger, settings)

        await controller.create_wallet("alice")

        assert controller.error_banner == (
            "Passkey request was cancelled or no credential was selected."
        )
        assert controller.is_connected is False

    @pytest.mark.asyncio
    async def test_degraded_storage_still_connects(self, provider, snapshots, ledger, settings):
        class BrokenPreferences(MemoryPreferencesStore):
            async def get(self, key):
                raise OSError("disk unavailable")

        storage = ResilientStorage(PreferencesStorage(BrokenPreferences()))
        controller = self.build(provider, storage, snapshots, ledger, settings)

        await controller.create_wallet("alice")

        assert storage.using_memory_fallback is True
        assert controller.is_connected
        assert controller.error_banner is None
