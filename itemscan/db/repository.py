"""
Repository layer for database operations.
"""
from typing import Iterable, Optional, Tuple
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from itemscan.db.models import KeyValueEntry


class KeyValueRepository:
    """Repository for key-value entries."""

    @staticmethod
    async def get(db: AsyncSession, key: str) -> Optional[str]:
        """Get the value stored under key, or None."""
        entry = await db.get(KeyValueEntry, key)
        return entry.value if entry is not None else None

    @staticmethod
    async def upsert(db: AsyncSession, key: str, value: str) -> KeyValueEntry:
        """Insert or overwrite a single entry."""
        entry = await db.get(KeyValueEntry, key)
        if entry is None:
            entry = KeyValueEntry(key=key, value=value)
            db.add(entry)
        else:
            entry.value = value
            entry.updated_at = datetime.utcnow()
        await db.flush()
        return entry

    @staticmethod
    async def upsert_many(db: AsyncSession, pairs: Iterable[Tuple[str, str]]) -> None:
        """Insert or overwrite several entries in the caller's transaction."""
        for key, value in pairs:
            await KeyValueRepository.upsert(db, key, value)
