"""Credential storage on a device key-value store.

The key-value store cannot enumerate its keys, so credential ids are kept
in a separate JSON list under ``{prefix}:credentials-index``.

Key layout:
    {prefix}:credential:{credential_id}  -> credential JSON
    {prefix}:credentials-index           -> JSON list of credential ids
    {prefix}:session                     -> session JSON
"""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from passkey_wallet.storage.base import (
    PreferencesStore,
    StorageAdapter,
    StoredCredential,
    StoredSession,
    apply_updates,
    deserialize_credential,
    serialize_credential,
)

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "passkey-wallet"


class PreferencesStorage(StorageAdapter):
    """StorageAdapter backed by a PreferencesStore.

    Backend failures propagate unchanged; corrupt records are treated as
    absent.
    """

    def __init__(self, preferences: PreferencesStore, prefix: str = DEFAULT_PREFIX):
        self.preferences = preferences
        self.prefix = prefix

    # Keys
    def credential_key(self, credential_id: str) -> str:
        return f"{self.prefix}:credential:{credential_id}"

    def index_key(self) -> str:
        return f"{self.prefix}:credentials-index"

    def session_key(self) -> str:
        return f"{self.prefix}:session"

    # Credential operations
    async def save(self, credential: StoredCredential) -> None:
        index = await self.get_credential_index()
        serialized = serialize_credential(credential)

        await self.preferences.set(self.credential_key(credential.credential_id), serialized)

        if credential.credential_id not in index:
            index.append(credential.credential_id)
            await self._set_credential_index(index)

    async def get(self, credential_id: str) -> Optional[StoredCredential]:
        raw = await self.preferences.get(self.credential_key(credential_id))
        if not raw:
            return None

        try:
            return deserialize_credential(raw)
        except ValidationError as e:
            logger.warning(
                "Discarding unreadable credential %s: %d error(s)", credential_id, e.error_count()
            )
            return None

    async def get_by_contract(self, contract_id: str) -> list[StoredCredential]:
        credentials = await self.get_all()
        return [c for c in credentials if c.contract_id == contract_id]

    async def get_all(self) -> list[StoredCredential]:
        index = await self.get_credential_index()
        results = []

        for credential_id in index:
            credential = await self.get(credential_id)
            if credential is not None:
                results.append(credential)

        return results

    async def delete(self, credential_id: str) -> None:
        index = await self.get_credential_index()

        await self.preferences.remove(self.credential_key(credential_id))
        await self._set_credential_index([cid for cid in index if cid != credential_id])

    async def update(self, credential_id: str, updates: dict[str, Any]) -> None:
        credential = await self.get(credential_id)
        if credential is None:
            return

        try:
            updated = apply_updates(credential, updates)
        except ValidationError as e:
            logger.warning(
                "Rejected update for credential %s: %d error(s)", credential_id, e.error_count()
            )
            return

        await self.save(updated)

    async def clear(self) -> None:
        index = await self.get_credential_index()

        for credential_id in index:
            await self.preferences.remove(self.credential_key(credential_id))

        await self.preferences.remove(self.index_key())
        await self.preferences.remove(self.session_key())

    # Session operations
    async def save_session(self, session: StoredSession) -> None:
        await self.preferences.set(self.session_key(), session.model_dump_json(by_alias=True))

    async def get_session(self) -> Optional[StoredSession]:
        raw = await self.preferences.get(self.session_key())
        if not raw:
            return None

        try:
            return StoredSession.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session record")
            return None

    async def clear_session(self) -> None:
        await self.preferences.remove(self.session_key())

    # Index
    async def get_credential_index(self) -> list[str]:
        """Get the ordered list of stored credential ids."""
        raw = await self.preferences.get(self.index_key())
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return []

        if not isinstance(parsed, list):
            return []
        return [cid for cid in parsed if isinstance(cid, str)]

    async def _set_credential_index(self, index: list[str]) -> None:
        await self.preferences.set(self.index_key(), json.dumps(index))
