"""Storage contracts and persisted record models.

Three logical records are kept per device profile:
- credential records, enumerated through an explicit id index
- one session record
- one best-effort session snapshot (see storage.snapshot)

All records are JSON-serialized with camelCase keys.
"""

import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel, to_snake

from passkey_wallet.passkey import codec

# Fields ``update`` may never touch
IMMUTABLE_CREDENTIAL_FIELDS = frozenset({"credential_id", "public_key"})


class StorageError(Exception):
    """Raised by a persistent backend when a call fails."""

    pass


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoredCredential(_Record):
    """A passkey credential bound to a smart-account contract.

    Unknown metadata fields written by other clients are preserved.
    """

    model_config = ConfigDict(extra="allow")

    credential_id: str = Field(..., min_length=1)
    contract_id: str
    public_key: bytes
    nickname: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_used_at: Optional[datetime] = None
    transports: Optional[list[str]] = None
    device_type: Optional[str] = None
    backed_up: Optional[bool] = None
    deployment_status: Optional[str] = None
    deployment_error: Optional[str] = None

    @field_validator("public_key", mode="before")
    @classmethod
    def decode_public_key(cls, v: Any) -> Any:
        """Accept base64 text as stored on disk."""
        if isinstance(v, str):
            return codec.decode(v)
        return v

    @field_serializer("public_key")
    def encode_public_key(self, v: bytes) -> str:
        return codec.encode(v)


class StoredSession(_Record):
    """The live wallet session for this device profile."""

    contract_id: str
    credential_id: str
    connected_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime

    @field_validator("connected_at", "expires_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the session has passed its expiry."""
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now


class SessionSnapshot(_Record):
    """Last-resort restore hint written alongside the session record."""

    contract_id: str
    credential_id: str
    updated_at: int = 0  # epoch milliseconds

    @field_validator("updated_at", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> int:
        """Non-numeric timestamps read as 0 instead of invalidating the snapshot."""
        if isinstance(v, bool):
            return 0
        if isinstance(v, int):
            return v
        if isinstance(v, float) and math.isfinite(v):
            return int(v)
        return 0


def serialize_credential(credential: StoredCredential) -> str:
    """Serialize a credential to JSON in a single step."""
    return credential.model_dump_json(by_alias=True)


def deserialize_credential(raw: str) -> StoredCredential:
    """Parse a stored credential.

    Raises:
        pydantic.ValidationError: For malformed JSON, missing fields or
            undecodable key material
    """
    return StoredCredential.model_validate_json(raw)


class PreferencesStore(ABC):
    """String key-value store with no enumeration primitive."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get a value, or None if the key is absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove a key (no-op if absent)."""
        pass


class StorageAdapter(ABC):
    """Credential and session storage used by the wallet kit."""

    @abstractmethod
    async def save(self, credential: StoredCredential) -> None:
        pass

    @abstractmethod
    async def get(self, credential_id: str) -> Optional[StoredCredential]:
        pass

    @abstractmethod
    async def get_by_contract(self, contract_id: str) -> list[StoredCredential]:
        pass

    @abstractmethod
    async def get_all(self) -> list[StoredCredential]:
        pass

    @abstractmethod
    async def delete(self, credential_id: str) -> None:
        pass

    @abstractmethod
    async def update(self, credential_id: str, updates: dict[str, Any]) -> None:
        """Apply metadata updates; unknown ids and ill-typed values are ignored."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove all credentials and the session record."""
        pass

    @abstractmethod
    async def save_session(self, session: StoredSession) -> None:
        pass

    @abstractmethod
    async def get_session(self) -> Optional[StoredSession]:
        pass

    @abstractmethod
    async def clear_session(self) -> None:
        pass


def apply_updates(credential: StoredCredential, updates: dict[str, Any]) -> StoredCredential:
    """Return a validated copy of ``credential`` with mutable fields updated.

    Raises:
        pydantic.ValidationError: If an updated value has the wrong type
    """
    allowed = {}
    for key, value in updates.items():
        name = to_snake(key)
        if name not in IMMUTABLE_CREDENTIAL_FIELDS:
            allowed[name] = value
    return StoredCredential.model_validate({**credential.model_dump(), **allowed})
