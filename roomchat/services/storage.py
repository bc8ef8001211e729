# roomchat/services/storage.py
"""
Key-value stores holding persisted state.

Persistence only ever needs get/set of string values under a key, so every
backend exposes the same small async surface. The backend is picked from
settings.STORAGE_BACKEND by create_store().
"""

from __future__ import annotations

import asyncio
import os
import re
import tempfile
import logging
from typing import Dict, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)

# ============================================================================
# BASE INTERFACE
# ============================================================================

class KeyValueStore:
    """Async string store. Subclasses override get/set, and connect/close when they hold resources."""

    async def connect(self) -> None:
        return None

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryStore(KeyValueStore):
    """Process-local store for tests and local development."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

# ============================================================================
# FILE STORE
# ============================================================================

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileStore(KeyValueStore):
    """
    Stores each key as its own file inside a directory.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash mid-write never leaves a truncated value behind.
    Blocking file I/O runs in a worker thread to keep the event loop free.

    Layout (STORAGE_DIR=".persist", key "rooms"):
        .persist/
            rooms.json
    """

    def __init__(self, directory: str = ".persist"):
        self.directory = directory

    def path_for(self, key: str) -> str:
        return os.path.join(self.directory, _UNSAFE_CHARS.sub("_", key) + ".json")

    async def connect(self) -> None:
        await asyncio.to_thread(os.makedirs, self.directory, exist_ok=True)
        logger.info(f"✓ File store ready at {os.path.abspath(self.directory)}")

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, self.path_for(key))

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, self.path_for(key), value)

    @staticmethod
    def _read(path: str) -> Optional[str]:
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def _write(self, path: str, value: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

# ============================================================================
# REDIS STORE
# ============================================================================

class RedisStore(KeyValueStore):
    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        access_key: str = "",
        ssl: bool = False,
        db: int = 0,
    ):
        self.host = host
        self.port = port
        self.access_key = access_key
        self.ssl = ssl
        self.db = db
        self.client = None

    @property
    def url(self) -> str:
        scheme = "rediss" if self.ssl else "redis"
        auth = f":{self.access_key}@" if self.access_key else ""
        return f"{scheme}://{auth}{self.host}:{self.port}/{self.db}"

    async def connect(self) -> None:
        """Establish async connection to Redis."""
        self.client = redis.from_url(self.url, decode_responses=True)
        await self.client.ping()
        logger.info(f"✓ Connected to Redis at {self.host}:{self.port}")

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str) -> None:
        await self.client.set(key, value)

    async def close(self) -> None:
        """Close connections."""
        if self.client:
            await self.client.aclose()
            self.client = None
        logger.info("Redis connection closed")


def create_store(settings) -> KeyValueStore:
    """Build the store named by settings.STORAGE_BACKEND."""
    backend = settings.STORAGE_BACKEND
    if backend == "file":
        return FileStore(settings.STORAGE_DIR)
    if backend == "redis":
        return RedisStore(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            access_key=settings.REDIS_ACCESS_KEY,
            ssl=settings.REDIS_SSL,
            db=settings.REDIS_DB,
        )
    if backend == "memory":
        return MemoryStore()
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")
