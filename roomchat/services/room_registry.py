# roomchat/services/room_registry.py

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set, Union

from roomchat.models.models import Room
from roomchat.services.identifiers import generate_id, generate_room_code
from roomchat.services.persistence import RoomPersistence

logger = logging.getLogger(__name__)

# ============================================================================
# ROOM REGISTRY
# ============================================================================

class RoomRegistry:
    """
    In-memory list of every room, newest first, kept in sync with persistence.

    The registry is the source of truth while the process runs. Every change
    is followed by mark_changed(), which schedules a background save of the
    whole list. Saves queue on one lock and snapshot the list when they
    actually run, so a later save always contains every earlier change.

    Attributes:
        lock: Guards find-then-mutate sections of the session coordinator
        version: Incremented on every change
        saved_version: Version covered by the last successful save

    Reloading:
        refresh() may be called on every new connection. It waits for queued
        saves and only reloads when nothing in memory is unsaved, so it can
        never roll the registry back to an older snapshot.

    Usage:
        registry = RoomRegistry(RoomPersistence(MemoryStore()))
        await registry.load()
        registry.insert_front(room)
        registry.mark_changed()
    """

    def __init__(self, persistence: RoomPersistence):
        self.persistence = persistence
        self.rooms: List[Room] = []
        self.lock = asyncio.Lock()
        self.version = 0
        self.saved_version = 0
        self._save_lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()
        self._reserved_ids: Set[str] = set()
        self._reserved_codes: Set[int] = set()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_id(self, room_id: str) -> Optional[Room]:
        """
        Get a room by its internal id.

        Returns:
            The first room whose id matches, None otherwise
        """
        return next((r for r in self.rooms if r.id == room_id), None)

    def find_by_code(self, room_code: Union[int, str]) -> Optional[Room]:
        """
        Get a room by its shareable six-digit code.

        The code compares as text, so "482913" and 482913 both match. If an
        older snapshot holds two rooms with the same code, the newest wins.

        Returns:
            The first matching room in registry order, None otherwise
        """
        wanted = str(room_code).strip()
        return next((r for r in self.rooms if str(r.room_code) == wanted), None)

    def list_rooms(self) -> List[Room]:
        return list(self.rooms)

    def __len__(self) -> int:
        return len(self.rooms)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert_front(self, room: Room) -> None:
        """Add a newly created room at the head of the list."""
        self.rooms.insert(0, room)

    def replace_all(self, rooms: List[Room]) -> None:
        """Swap in restored rooms wholesale, keeping their order."""
        self.rooms[:] = rooms

    def new_room_id(self) -> str:
        """Fresh id not used or reserved by any room in the registry."""
        while True:
            room_id = generate_id()
            if room_id not in self._reserved_ids and self.find_by_id(room_id) is None:
                return room_id

    def new_room_code(self) -> int:
        """Fresh six-digit code not used or reserved by any room in the registry."""
        while True:
            code = generate_room_code()
            if code not in self._reserved_codes and self.find_by_code(code) is None:
                return code

    def reserve(self, room: Room) -> None:
        """
        Hold a room's id and code while it is announced but not yet inserted.

        Rooms being created outside the lock keep their identifiers to
        themselves until commit() or release().
        """
        self._reserved_ids.add(room.id)
        self._reserved_codes.add(room.room_code)

    def release(self, room: Room) -> None:
        self._reserved_ids.discard(room.id)
        self._reserved_codes.discard(room.room_code)

    def commit(self, room: Room) -> None:
        """Insert a reserved room at the front and schedule a save."""
        self.release(room)
        self.insert_front(room)
        self.mark_changed()

    # ------------------------------------------------------------------
    # Persistence sync
    # ------------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        """True while some change has not reached the store."""
        return self.saved_version != self.version

    def mark_changed(self) -> asyncio.Task:
        """
        Record a change and schedule a background save.

        The save runs as a task on the current loop; its failure is logged by
        the persistence layer and never reaches the caller.

        Returns:
            The scheduled save task (callers normally ignore it)
        """
        self.version += 1
        task = asyncio.create_task(self._save())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _save(self) -> None:
        async with self._save_lock:
            version = self.version
            if await self.persistence.save(self.rooms):
                self.saved_version = max(self.saved_version, version)

    async def flush(self) -> None:
        """Wait until every scheduled save has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def load(self) -> bool:
        """
        Rehydrate from persistence. Used at startup.

        An empty snapshot never wipes rooms already in memory, since rooms are
        never deleted.

        Returns:
            True if the registry was replaced by the stored rooms
        """
        async with self._save_lock:
            return await self._reload()

    async def refresh(self) -> bool:
        """
        Reload from persistence unless memory holds unsaved changes.

        Called for every new connection. Queued saves complete first, so after
        they succeed the store and memory agree and the reload is a no-op in
        content.

        Returns:
            True if the registry was reloaded
        """
        async with self._save_lock:
            if self.dirty:
                logger.warning(
                    "Skipping room reload: %d change(s) not yet persisted",
                    self.version - self.saved_version,
                )
                return False
            return await self._reload()

    async def _reload(self) -> bool:
        version = self.version
        rooms = await self.persistence.load()

        # A change made while the snapshot was being read is newer than it.
        if version != self.version:
            logger.warning("Skipping room reload: registry changed during load")
            return False
        if not rooms and self.rooms:
            logger.warning("Persisted snapshot is empty; keeping %d rooms in memory", len(self.rooms))
            return False

        self.replace_all(rooms)
        logger.info(f"✓ Loaded {len(self.rooms)} rooms from storage")
        return True
