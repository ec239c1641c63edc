"""Credential, session and snapshot storage."""

from passkey_wallet.storage.base import (
    PreferencesStore,
    SessionSnapshot,
    StorageAdapter,
    StorageError,
    StoredCredential,
    StoredSession,
)
from passkey_wallet.storage.database import SqlPreferencesStore
from passkey_wallet.storage.memory import MemoryPreferencesStore, MemoryStorage
from passkey_wallet.storage.preferences import PreferencesStorage
from passkey_wallet.storage.resilient import ResilientStorage
from passkey_wallet.storage.snapshot import SessionSnapshotStore

__all__ = [
    # Models
    "StoredCredential",
    "StoredSession",
    "SessionSnapshot",
    # Contracts
    "PreferencesStore",
    "StorageAdapter",
    "StorageError",
    # Implementations
    "MemoryPreferencesStore",
    "MemoryStorage",
    "PreferencesStorage",
    "ResilientStorage",
    "SessionSnapshotStore",
    "SqlPreferencesStore",
]
