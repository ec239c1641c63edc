"""Main entry point - runs a wallet session against the dry-run kit."""

import argparse
import asyncio
import logging
import signal
from typing import Optional

from passkey_wallet.config import get_settings
from passkey_wallet.ledger.base import LedgerClient
from passkey_wallet.ledger.rpc import LedgerRpcClient
from passkey_wallet.passkey.adapter import PasskeyAdapter
from passkey_wallet.passkey.dryrun import DryRunPasskeyPlugin
from passkey_wallet.session.controller import SessionController
from passkey_wallet.storage.database import SqlPreferencesStore
from passkey_wallet.storage.preferences import PreferencesStorage
from passkey_wallet.storage.resilient import ResilientStorage
from passkey_wallet.storage.snapshot import SessionSnapshotStore
from passkey_wallet.wallet.dryrun import DryRunLedger, DryRunWalletKit

logger = logging.getLogger(__name__)


class Application:
    """Builds the session controller and drives it from the command line."""

    def __init__(self):
        self.settings = get_settings()
        self.preferences: Optional[SqlPreferencesStore] = None
        self.controller: Optional[SessionController] = None
        self._shutdown_event = asyncio.Event()

    async def _build(self, use_rpc: bool = False) -> SessionController:
        self.preferences = SqlPreferencesStore(self.settings.database_url)
        try:
            await self.preferences.init()
            logger.info("Preferences database initialized")
        except Exception as e:
            # Every call through the resilient facade will fall back to memory
            logger.warning(f"Preferences database unavailable: {e}")

        storage = ResilientStorage(
            PreferencesStorage(self.preferences, prefix=self.settings.storage_prefix),
            timeout=self.settings.storage_timeout,
        )
        snapshots = SessionSnapshotStore(self.preferences, self.settings.storage_prefix)

        ledger = DryRunLedger()
        provider = PasskeyAdapter(DryRunPasskeyPlugin(), timeout=self.settings.passkey_timeout)
        kit = DryRunWalletKit(provider, storage, ledger=ledger, rp_id=self.settings.rp_id)

        balances: LedgerClient = ledger
        if use_rpc:
            logger.info(f"Reading balances from {self.settings.rpc_url}")
            balances = LedgerRpcClient(self.settings.rpc_url, timeout=self.settings.balance_timeout)

        return SessionController(kit, storage, snapshots, balances, self.settings)

    async def start(self, args: argparse.Namespace):
        """Restore the session, run the requested actions and print the state."""
        log_level = logging.DEBUG if self.settings.debug else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        logger.info("Starting Passkey Wallet...")
        logger.info(f"Environment: {self.settings.environment}")

        self.controller = await self._build(use_rpc=args.rpc)
        try:
            await self._run(args)
        finally:
            await self._cleanup()

    async def _run(self, args: argparse.Namespace):
        controller = self.controller

        await controller.restore_session()

        if args.create and not self._shutdown_event.is_set():
            await controller.create_wallet(args.create)
        if args.transfer and not self._shutdown_event.is_set():
            recipient, amount = args.transfer
            await controller.transfer(None, recipient, amount)
        if args.disconnect and not self._shutdown_event.is_set():
            await controller.disconnect()

        await controller.wait_for_background_tasks()
        self._print_state()

    def _print_state(self):
        controller = self.controller
        print(f"Phase:       {controller.phase.value}")
        print(f"Contract:    {controller.contract_id or '-'}")
        print(f"Credential:  {controller.credential_id or '-'}")
        print(f"Balance:     {getattr(controller.balance, 'value', controller.balance.status)}")
        print(f"Transfer:    {controller.transfer_state.status}")
        if controller.error_banner:
            print(f"Error:       {controller.error_banner}")
        print("Activity:")
        for entry in controller.logs:
            print(f"  [{entry.type.value}] {entry.message}")

    async def _cleanup(self):
        """Cleanup resources."""
        logger.info("Cleaning up...")

        if self.controller:
            self.controller.close()
        if self.preferences:
            await self.preferences.close()

        logger.info("Cleanup complete")

    def shutdown(self):
        """Signal shutdown. Pending actions are skipped."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="passkey_wallet",
        description="Restore a passkey wallet session and run wallet actions.",
    )
    parser.add_argument("--create", metavar="NAME", help="Create a wallet for this username")
    parser.add_argument(
        "--transfer",
        nargs=2,
        metavar=("RECIPIENT", "AMOUNT"),
        help="Transfer native tokens from the connected wallet",
    )
    parser.add_argument("--disconnect", action="store_true", help="Disconnect at the end")
    parser.add_argument(
        "--rpc",
        action="store_true",
        help="Read balances from the configured ledger RPC endpoint",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None):
    """Main entry point."""
    args = parse_args(argv)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    app = Application()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start(args))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
