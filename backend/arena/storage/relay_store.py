"""
Key-value stores for short-lived client state (the pending-send relay).
The file store keeps one file per key under a base directory.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String key-value store with an atomic read-and-delete."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    async def take(self, key: str) -> Optional[str]:
        """Return the value and remove the key in one step; None when absent."""
        pass


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store, used by tests and single-process clients."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def take(self, key: str) -> Optional[str]:
        return self._data.pop(key, None)


class FileKeyValueStore(KeyValueStore):
    """
    Filesystem store.
    Values survive process restarts, which is what a page reload needs.
    """

    def __init__(self, base_dir: str = "./data/relay"):
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def _get_full_path(self, key: str) -> Path:
        full_path = (self.base_dir / f"{key}.json").resolve()

        # Security check: keys must stay inside base_dir
        if full_path.parent != self.base_dir:
            raise ValueError(f"Invalid key: {key} - path traversal detected")

        return full_path

    async def get(self, key: str) -> Optional[str]:
        full_path = self._get_full_path(key)
        if not full_path.exists():
            return None
        async with aiofiles.open(full_path, 'r', encoding='utf-8') as f:
            return await f.read()

    async def set(self, key: str, value: str) -> None:
        full_path = self._get_full_path(key)
        tmp_path = full_path.with_suffix('.tmp')
        async with self._lock:
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(value)
            await aiofiles.os.replace(tmp_path, full_path)

    async def delete(self, key: str) -> bool:
        full_path = self._get_full_path(key)
        async with self._lock:
            if not full_path.exists():
                return False
            await aiofiles.os.remove(full_path)
            return True

    async def take(self, key: str) -> Optional[str]:
        full_path = self._get_full_path(key)
        async with self._lock:
            if not full_path.exists():
                return None
            async with aiofiles.open(full_path, 'r', encoding='utf-8') as f:
                value = await f.read()
            await aiofiles.os.remove(full_path)
        logger.debug(f"Consumed relay entry: {key}")
        return value
