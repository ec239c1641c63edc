"""SQL-backed key-value store for device preferences."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy import DateTime, String, Text, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from passkey_wallet.storage.base import PreferencesStore, StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Preference(Base):
    """A single string key-value pair."""

    __tablename__ = "preferences"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Preference {self.key}>"


class SqlPreferencesStore(PreferencesStore):
    """PreferencesStore on an async SQLAlchemy engine.

    Every driver error is re-raised as StorageError.
    """

    def __init__(self, database_url: str, echo: bool = False):
        # Convert sqlite:/// to sqlite+aiosqlite:/// if needed
        if database_url.startswith("sqlite:///") and "aiosqlite" not in database_url:
            database_url = database_url.replace("sqlite:///", "sqlite+aiosqlite:///")

        self.database_url = database_url
        self.engine = create_async_engine(database_url, echo=echo, future=True)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def init(self) -> None:
        """Create the preferences table."""
        database = self.engine.url.database
        if self.engine.url.get_backend_name() == "sqlite" and database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not initialize preferences database: {e}") from e

    async def close(self) -> None:
        """Close database connections."""
        await self.engine.dispose()

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(str(e)) from e

    async def get(self, key: str) -> Optional[str]:
        async with self._session() as session:
            result = await session.execute(select(Preference.value).where(Preference.key == key))
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self._session() as session:
            existing = await session.get(Preference, key)
            if existing is None:
                session.add(Preference(key=key, value=value))
            else:
                existing.value = value

    async def remove(self, key: str) -> None:
        async with self._session() as session:
            await session.execute(delete(Preference).where(Preference.key == key))
