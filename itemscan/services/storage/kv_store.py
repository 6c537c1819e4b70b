"""
Key-value stores backing the usage counters.

Every store holds string values under string keys and exposes the same
three async operations (get_item, set_item, multi_set). Callers never
cache values; each read and write round-trips to the backend.
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple
import asyncio
import json
import logging
import threading

from sqlalchemy.ext.asyncio import async_sessionmaker

from itemscan.core.config import settings
from itemscan.db.repository import KeyValueRepository

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Async string-to-string store."""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """Return the value under key, or None when absent."""

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Write value under key."""

    @abstractmethod
    async def multi_set(self, pairs: Iterable[Tuple[str, str]]) -> None:
        """Write several entries at once."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    async def multi_set(self, pairs: Iterable[Tuple[str, str]]) -> None:
        self._data.update(pairs)


class FileKeyValueStore(KeyValueStore):
    """
    JSON document on disk holding all entries.

    The whole document is re-read on every get and rewritten on every set;
    writes go through a temporary file and an atomic rename so a reader
    never sees a half-written document.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._write_lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Corrupted key-value file: {self.path}")
        return data

    def _write(self, updates: Dict[str, str]) -> None:
        # one writer at a time across all keys
        with self._write_lock:
            data = self._read()
            data.update(updates)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as fw:
                json.dump(data, fw, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)

    async def get_item(self, key: str) -> Optional[str]:
        data = await asyncio.to_thread(self._read)
        value = data.get(key)
        return None if value is None else str(value)

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, {key: value})

    async def multi_set(self, pairs: Iterable[Tuple[str, str]]) -> None:
        await asyncio.to_thread(self._write, dict(pairs))


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the kv_entries table (one session per operation)."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def get_item(self, key: str) -> Optional[str]:
        async with self._session_factory() as session:
            return await KeyValueRepository.get(session, key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await KeyValueRepository.upsert(session, key, value)

    async def multi_set(self, pairs: Iterable[Tuple[str, str]]) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await KeyValueRepository.upsert_many(session, list(pairs))


def build_key_value_store() -> KeyValueStore:
    """Pick the store from settings: database if enabled, JSON file otherwise."""
    if settings.USE_DATABASE:
        from itemscan.db.database import get_session_factory

        logger.info("Usage counters stored in database")
        return SqlKeyValueStore(get_session_factory())

    path = Path(settings.DATA_ROOT) / "usage.json"
    logger.info(f"Usage counters stored in {path}")
    return FileKeyValueStore(path)
