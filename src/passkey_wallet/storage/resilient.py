"""Persistent storage with a one-way fallback to memory.

Device storage can hang or fail (missing plugin, locked database, full
disk). The first failed or timed-out call trips a latch on the instance and
from then on every call, including the failed one, is served from memory.
The latch never resets within the lifetime of the instance.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from passkey_wallet.storage.base import StorageAdapter, StoredCredential, StoredSession
from passkey_wallet.storage.memory import MemoryStorage
from passkey_wallet.utils.timeouts import with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResilientStorage(StorageAdapter):
    """StorageAdapter that degrades to memory after the first storage failure.

    Storage failures are logged and absorbed here; callers never see them.
    """

    def __init__(
        self,
        persistent: StorageAdapter,
        fallback: Optional[StorageAdapter] = None,
        timeout: float = 8.0,
    ):
        """Initialize the facade.

        Args:
            persistent: Primary storage (device preferences)
            fallback: Storage used once the latch trips (memory by default)
            timeout: Budget for a single persistent call in seconds
        """
        self.persistent = persistent
        self.fallback = fallback or MemoryStorage()
        self.timeout = timeout
        self._using_memory_fallback = False

    @property
    def using_memory_fallback(self) -> bool:
        """Whether the fallback latch has tripped."""
        return self._using_memory_fallback

    async def _run(
        self,
        label: str,
        persistent_call: Callable[[], Awaitable[T]],
        fallback_call: Callable[[], Awaitable[T]],
    ) -> T:
        if self._using_memory_fallback:
            return await fallback_call()

        try:
            return await with_timeout(persistent_call(), label, self.timeout)
        except Exception as e:
            self._using_memory_fallback = True
            logger.warning(
                "%s failed or timed out (%s). Falling back to in-memory storage "
                "for the rest of this process.",
                label,
                e,
            )
            return await fallback_call()

    async def save(self, credential: StoredCredential) -> None:
        await self._run(
            "storage.save",
            lambda: self.persistent.save(credential),
            lambda: self.fallback.save(credential),
        )

    async def get(self, credential_id: str) -> Optional[StoredCredential]:
        return await self._run(
            "storage.get",
            lambda: self.persistent.get(credential_id),
            lambda: self.fallback.get(credential_id),
        )

    async def get_by_contract(self, contract_id: str) -> list[StoredCredential]:
        return await self._run(
            "storage.get_by_contract",
            lambda: self.persistent.get_by_contract(contract_id),
            lambda: self.fallback.get_by_contract(contract_id),
        )

    async def get_all(self) -> list[StoredCredential]:
        return await self._run(
            "storage.get_all",
            self.persistent.get_all,
            self.fallback.get_all,
        )

    async def delete(self, credential_id: str) -> None:
        await self._run(
            "storage.delete",
            lambda: self.persistent.delete(credential_id),
            lambda: self.fallback.delete(credential_id),
        )

    async def update(self, credential_id: str, updates: dict[str, Any]) -> None:
        await self._run(
            "storage.update",
            lambda: self.persistent.update(credential_id, updates),
            lambda: self.fallback.update(credential_id, updates),
        )

    async def clear(self) -> None:
        await self._run("storage.clear", self.persistent.clear, self.fallback.clear)

    async def save_session(self, session: StoredSession) -> None:
        await self._run(
            "storage.save_session",
            lambda: self.persistent.save_session(session),
            lambda: self.fallback.save_session(session),
        )

    async def get_session(self) -> Optional[StoredSession]:
        return await self._run(
            "storage.get_session",
            self.persistent.get_session,
            self.fallback.get_session,
        )

    async def clear_session(self) -> None:
        await self._run(
            "storage.clear_session",
            self.persistent.clear_session,
            self.fallback.clear_session,
        )
