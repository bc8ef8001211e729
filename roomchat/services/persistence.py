# roomchat/services/persistence.py

from __future__ import annotations

import json
import logging
from typing import List

from pydantic import TypeAdapter

from roomchat.models.models import Room
from roomchat.services.storage import KeyValueStore

logger = logging.getLogger(__name__)

_rooms_adapter = TypeAdapter(List[Room])

# ============================================================================
# ROOM SNAPSHOT PERSISTENCE
# ============================================================================

class RoomPersistence:
    """
    Saves and loads the whole room list as one JSON snapshot.

    Storage Format (value under STORAGE_KEY):
        [
            {
                "id": "k3j9x0qa",
                "roomName": "Trivia",
                "roomCode": 482913,
                "createdBy": "alice",
                "createdAt": "04:05 PM",
                "users": ["alice", "bob"],
                "messages": [{"id": "...", "text": "...", "sender": "system", "timestamp": "..."}]
            }
        ]

    Neither operation raises: failures are logged and reported through the
    return value, so callers never see storage errors.
    """

    def __init__(self, store: KeyValueStore, key: str = "rooms"):
        self.store = store
        self.key = key

    async def save(self, rooms: List[Room]) -> bool:
        """
        Overwrite the snapshot with the given rooms, in order.

        Serialization happens before the first await, so the snapshot reflects
        the rooms exactly as they were when save() was called.

        Returns:
            True if the write succeeded, False if it failed (already logged)
        """
        try:
            payload = json.dumps([room.to_wire() for room in rooms])
            await self.store.set(self.key, payload)
            logger.debug("Persisted %d rooms", len(rooms))
            return True
        except Exception:
            logger.exception("Error persisting rooms")
            return False

    async def load(self) -> List[Room]:
        """
        Read the snapshot back.

        Returns:
            Rooms in stored order; an empty list when nothing is stored or the
            stored value cannot be read or decoded
        """
        try:
            raw = await self.store.get(self.key)
            if not raw:
                return []
            return _rooms_adapter.validate_json(raw)
        except Exception:
            logger.exception("Error loading persisted rooms")
            return []
