"""Best-effort session snapshot.

A small copy of the last connected wallet ids, kept outside the wallet kit's
own session store. It is only read when every other restore path came up
empty, and losing it is never an error.
"""

import logging
import time
from typing import Optional

from pydantic import ValidationError

from passkey_wallet.storage.base import PreferencesStore, SessionSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "v1"


class SessionSnapshotStore:
    """Reads and writes the session snapshot, swallowing every failure."""

    def __init__(self, preferences: PreferencesStore, prefix: str):
        self.preferences = preferences
        self.key = f"{prefix}:session-snapshot:{SNAPSHOT_VERSION}"

    async def read(self) -> Optional[SessionSnapshot]:
        """Get the snapshot, or None if absent or unreadable."""
        try:
            raw = await self.preferences.get(self.key)
        except Exception as e:
            logger.debug("Session snapshot read failed: %s", e)
            return None

        if not raw:
            return None

        try:
            return SessionSnapshot.model_validate_json(raw)
        except ValidationError:
            logger.debug("Ignoring malformed session snapshot")
            return None

    async def write(self, contract_id: str, credential_id: str) -> None:
        snapshot = SessionSnapshot(
            contract_id=contract_id,
            credential_id=credential_id,
            updated_at=int(time.time() * 1000),
        )
        try:
            await self.preferences.set(self.key, snapshot.model_dump_json(by_alias=True))
        except Exception as e:
            logger.debug("Session snapshot write failed: %s", e)

    async def clear(self) -> None:
        try:
            await self.preferences.remove(self.key)
        except Exception as e:
            logger.debug("Session snapshot clear failed: %s", e)
