"""Pytest configuration and fixtures."""

import hashlib
import os

import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "true"

from passkey_wallet.config import Settings
from passkey_wallet.storage.memory import MemoryPreferencesStore
from passkey_wallet.storage.preferences import PreferencesStorage
from passkey_wallet.storage.resilient import ResilientStorage
from passkey_wallet.storage.snapshot import SessionSnapshotStore
from passkey_wallet.wallet.validation import VERSION_ACCOUNT, VERSION_CONTRACT, encode_strkey

NATIVE_TOKEN = encode_strkey(VERSION_CONTRACT, hashlib.sha256(b"native").digest())


def account_address(seed: str) -> str:
    """Deterministic valid G... address."""
    return encode_strkey(VERSION_ACCOUNT, hashlib.sha256(seed.encode()).digest())


def contract_address(seed: str) -> str:
    """Deterministic valid C... address."""
    return encode_strkey(VERSION_CONTRACT, hashlib.sha256(seed.encode()).digest())


@pytest.fixture
def settings() -> Settings:
    """Settings with short timeout budgets."""
    return Settings(
        _env_file=None,
        native_token_contract=NATIVE_TOKEN,
        storage_prefix="test-wallet",
        restore_timeout=0.2,
        reauth_timeout=0.2,
        create_timeout=0.2,
        connect_timeout=0.2,
        transfer_timeout=0.2,
        disconnect_timeout=0.2,
        balance_timeout=0.2,
        storage_timeout=0.2,
        passkey_timeout=0.2,
    )


@pytest.fixture
def preferences() -> MemoryPreferencesStore:
    """In-memory key-value store."""
    return MemoryPreferencesStore()


@pytest.fixture
def storage(preferences: MemoryPreferencesStore, settings: Settings) -> ResilientStorage:
    """Resilient storage over the in-memory key-value store."""
    return ResilientStorage(
        PreferencesStorage(preferences, prefix=settings.storage_prefix),
        timeout=settings.storage_timeout,
    )


@pytest.fixture
def snapshots(preferences: MemoryPreferencesStore, settings: Settings) -> SessionSnapshotStore:
    """Snapshot store sharing the key-value store."""
    return SessionSnapshotStore(preferences, settings.storage_prefix)


@pytest_asyncio.fixture
async def sql_preferences(tmp_path):
    """SQLite-backed key-value store in a temporary directory."""
    from passkey_wallet.storage.database import SqlPreferencesStore

    store = SqlPreferencesStore(f"sqlite+aiosqlite:///{tmp_path / 'prefs' / 'wallet.db'}")
    await store.init()

    yield store

    await store.close()
