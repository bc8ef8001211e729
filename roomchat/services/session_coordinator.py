# roomchat/services/session_coordinator.py

from __future__ import annotations

import logging
from typing import Union

from fastapi import WebSocket

from roomchat.models.models import SYSTEM_SENDER, Message, Room
from roomchat.services.connection_manager import ConnectionManager
from roomchat.services.identifiers import generate_id, now_time
from roomchat.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)

ROOM_NOT_FOUND = "Room not found"
CREATE_FAILED = "Failed to create room"
JOIN_FAILED = "Failed to join room"
SEND_FAILED = "Failed to send message"

# ============================================================================
# SESSION COORDINATOR
# ============================================================================

class SessionCoordinator:
    """
    Implements the room operations a connection can request.

    Each operation looks the room up and mutates it while holding the
    registry lock, schedules a save, and only then talks to connections. A
    missing room is answered with an "error" event; any other exception is
    logged and answered with a generic "error" event so the connection stays
    usable.

    Events sent:
        roomCreated  -> creator only
        roomJoined   -> joiner only
        userJoined   -> other members of the room
        newMessage   -> every member of the room, sender included
        error        -> requesting connection only
    """

    def __init__(self, registry: RoomRegistry, connections: ConnectionManager) -> None:
        self.registry = registry
        self.connections = connections

    @staticmethod
    def _system_message(text: str) -> Message:
        return Message(id=generate_id(), text=text, sender=SYSTEM_SENDER, timestamp=now_time())

    async def create_room(self, websocket: WebSocket, room_name: str, user_id: str) -> None:
        """
        Create a room owned by user_id and subscribe the connection to it.

        The id and code are reserved under the lock, the confirmation is sent
        without holding it, and the room enters the registry and its broadcast
        group only once that send succeeded. A failure part-way leaves no trace.
        """
        room = None
        try:
            async with self.registry.lock:
                room = Room(
                    id=self.registry.new_room_id(),
                    room_name=room_name,
                    room_code=self.registry.new_room_code(),
                    created_by=user_id,
                    created_at=now_time(),
                    users=[user_id],
                    messages=[self._system_message(f'Room "{room_name}" was created by {user_id}')],
                )
                self.registry.reserve(room)

            await self.connections.send(websocket, "roomCreated", room.to_wire())

            async with self.registry.lock:
                self.registry.commit(room)
            self.connections.join_group(websocket, room.id)

            logger.info("✓ Room created: '%s' code=%s id=%s by %s", room.room_name, room.room_code, room.id, user_id)
        except Exception:
            logger.exception("Error creating room")
            if room is not None:
                self.registry.release(room)
            await self.connections.send(websocket, "error", CREATE_FAILED)

    async def join_room(self, websocket: WebSocket, room_code: Union[int, str], user_id: str) -> None:
        """
        Join the room with the given code.

        Process:
            1. Resolve the room by code (error event if missing)
            2. Subscribe the connection, even for returning members
            3. For a new member: add to users, append a system message,
               tell the other members, schedule a save
            4. Send the full room state to the joiner
        """
        try:
            async with self.registry.lock:
                room = self.registry.find_by_code(room_code)
                if room is None:
                    is_new_member = False
                else:
                    self.connections.join_group(websocket, room.id)

                    is_new_member = user_id not in room.users
                    if is_new_member:
                        room.users.append(user_id)
                        room.messages.append(self._system_message(f"{user_id} joined the room"))
                        self.registry.mark_changed()

                    snapshot = room.to_wire()

            if room is None:
                logger.info("Join rejected: no room with code %s", room_code)
                await self.connections.send(websocket, "error", ROOM_NOT_FOUND)
                return

            if is_new_member:
                await self.connections.emit_to_room(
                    room.id, "userJoined", {"userId": user_id}, exclude=websocket
                )
                logger.info("→ %s joined '%s' (%d users)", user_id, room.room_name, len(snapshot["users"]))

            await self.connections.send(websocket, "roomJoined", snapshot)
        except Exception:
            logger.exception("Error joining room")
            await self.connections.send(websocket, "error", JOIN_FAILED)

    async def send_message(self, websocket: WebSocket, room_id: str, text: str, user_id: str) -> None:
        """Append a message from user_id and broadcast it to the whole room."""
        try:
            async with self.registry.lock:
                room = self.registry.find_by_id(room_id)
                if room is not None:
                    message = Message(id=generate_id(), text=text, sender=user_id, timestamp=now_time())
                    room.messages.append(message)
                    self.registry.mark_changed()

            if room is None:
                await self.connections.send(websocket, "error", ROOM_NOT_FOUND)
                return

            await self.connections.emit_to_room(room.id, "newMessage", message.model_dump(mode="json"))
            logger.info("Message sent in room '%s' by %s", room.room_name, user_id)
        except Exception:
            logger.exception("Error sending message")
            await self.connections.send(websocket, "error", SEND_FAILED)
