# roomchat/core/state.py
from __future__ import annotations

from roomchat.core.config import settings
from roomchat.services.connection_manager import ConnectionManager
from roomchat.services.persistence import RoomPersistence
from roomchat.services.room_registry import RoomRegistry
from roomchat.services.session_coordinator import SessionCoordinator
from roomchat.services.storage import create_store

# Global singletons for app state
store = create_store(settings)
room_registry = RoomRegistry(RoomPersistence(store, key=settings.STORAGE_KEY))
connection_manager = ConnectionManager()
coordinator = SessionCoordinator(room_registry, connection_manager)
