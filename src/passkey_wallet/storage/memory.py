"""In-memory storage backends.

Used as the fallback side of ResilientStorage and in tests.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from passkey_wallet.storage.base import (
    PreferencesStore,
    StorageAdapter,
    StoredCredential,
    StoredSession,
    apply_updates,
)

logger = logging.getLogger(__name__)


class MemoryPreferencesStore(PreferencesStore):
    """Dictionary-backed key-value store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.values: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    async def set(self, key: str, value: str) -> None:
        self.values[key] = value

    async def remove(self, key: str) -> None:
        self.values.pop(key, None)


class MemoryStorage(StorageAdapter):
    """Process-lifetime credential and session storage."""

    def __init__(self):
        self.credentials: dict[str, StoredCredential] = {}
        self.session: Optional[StoredSession] = None

    async def save(self, credential: StoredCredential) -> None:
        self.credentials[credential.credential_id] = credential

    async def get(self, credential_id: str) -> Optional[StoredCredential]:
        return self.credentials.get(credential_id)

    async def get_by_contract(self, contract_id: str) -> list[StoredCredential]:
        return [c for c in self.credentials.values() if c.contract_id == contract_id]

    async def get_all(self) -> list[StoredCredential]:
        return list(self.credentials.values())

    async def delete(self, credential_id: str) -> None:
        self.credentials.pop(credential_id, None)

    async def update(self, credential_id: str, updates: dict[str, Any]) -> None:
        current = self.credentials.get(credential_id)
        if current is None:
            return
        try:
            self.credentials[credential_id] = apply_updates(current, updates)
        except ValidationError as e:
            logger.warning(
                "Rejected update for credential %s: %d error(s)", credential_id, e.error_count()
            )

    async def clear(self) -> None:
        self.credentials.clear()
        self.session = None

    async def save_session(self, session: StoredSession) -> None:
        self.session = session

    async def get_session(self) -> Optional[StoredSession]:
        return self.session

    async def clear_session(self) -> None:
        self.session = None
