# roomchat/services/connection_manager.py

from __future__ import annotations

from typing import Any, Dict, Optional, Set
from fastapi import WebSocket
import logging

from roomchat.services.identifiers import generate_id

logger = logging.getLogger(__name__)

# ============================================================================
# WEBSOCKET CONNECTION MANAGER
# ============================================================================

class ConnectionManager:
    """
    Manages WebSocket connections and their broadcast groups.

    A broadcast group is the set of connections that receive events for one
    room, keyed by the room's internal id. Groups live only as long as their
    connections: they are not persisted and they are separate from a room's
    `users` list, which survives disconnects and restarts.

    Data Structures:
        groups: Maps room_id -> Set of WebSocket connections subscribed to it
                Example: {"k3j9x0qa": {websocket1, websocket2}}

        connection_groups: Maps WebSocket -> Set of room_ids it's subscribed to
                           Example: {websocket1: {"k3j9x0qa", "p0d81mzz"}}

        connection_ids: Maps WebSocket -> short connection id (for logging)

    Frames:
        Every outgoing frame has the shape {"type": <event>, "data": <payload>}.
    """

    def __init__(self) -> None:
        """Initialize connection manager with empty data structures."""
        # Map: room_id -> Set[WebSocket connections]
        self.groups: Dict[str, Set[WebSocket]] = {}

        # Map: WebSocket -> Set[room_ids it's subscribed to]
        self.connection_groups: Dict[WebSocket, Set[str]] = {}

        # Map: WebSocket -> connection id (for logging)
        self.connection_ids: Dict[WebSocket, str] = {}

    @property
    def connection_count(self) -> int:
        return len(self.connection_groups)

    @property
    def group_count(self) -> int:
        return len(self.groups)

    def connection_id(self, websocket: WebSocket) -> str:
        return self.connection_ids.get(websocket, "unknown")

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept a new WebSocket connection.

        Returns:
            The id assigned to this connection

        Note:
            The connection is not subscribed to any group. Creating or joining
            a room subscribes it.
        """
        await websocket.accept()

        connection_id = generate_id()
        self.connection_groups[websocket] = set()
        self.connection_ids[websocket] = connection_id

        logger.info("✓ Client %s connected. Total: %d", connection_id, self.connection_count)
        return connection_id

    def disconnect(self, websocket: WebSocket) -> None:
        """
        Forget a connection and drop it from every group.

        Cleanup:
            1. Remove from all groups it was in
            2. Delete groups left empty
            3. Remove from tracking dictionaries

        Room membership is left untouched: a user who disconnects is still
        listed in the room and can rejoin by code.
        """
        if websocket in self.connection_groups:
            connection_id = self.connection_ids.get(websocket, "unknown")

            for room_id in self.connection_groups[websocket]:
                if room_id in self.groups:
                    self.groups[room_id].discard(websocket)
                    if not self.groups[room_id]:
                        del self.groups[room_id]

            del self.connection_groups[websocket]
            del self.connection_ids[websocket]

            logger.info("✗ Client %s disconnected. Total: %d", connection_id, self.connection_count)

    def join_group(self, websocket: WebSocket, room_id: str) -> None:
        """
        Subscribe a connection to a room's group. Joining twice is a no-op.

        Args:
            websocket: The WebSocket connection
            room_id: Internal id of the room
        """
        if websocket not in self.connection_groups:
            return  # Connection already closed

        self.groups.setdefault(room_id, set()).add(websocket)
        self.connection_groups[websocket].add(room_id)

    def members(self, room_id: str) -> Set[WebSocket]:
        return set(self.groups.get(room_id, ()))

    async def send(self, websocket: WebSocket, event: str, data: Any) -> None:
        """Send one event to one connection."""
        await websocket.send_json({"type": event, "data": data})

    async def emit_to_room(
        self,
        room_id: str,
        event: str,
        data: Any,
        exclude: Optional[WebSocket] = None,
    ) -> int:
        """
        Send an event to every connection in a room's group.

        Args:
            room_id: Internal id of the target room
            event: Event name, e.g. "newMessage"
            data: JSON-serializable payload
            exclude: Connection to skip (typically the one that caused the event)

        Returns:
            Number of connections the event was delivered to

        Error Handling:
            If a send fails, the connection is treated as gone and cleaned up;
            the remaining members still receive the event.
        """
        if room_id not in self.groups:
            logger.info("[routing] Skipped broadcast: room=%s has 0 subscribers", room_id)
            return 0

        disconnected = set()
        connections = self.groups[room_id].copy()  # Copy to avoid modification during iteration
        connections.discard(exclude)

        logger.debug("📨 Broadcasting %s to room %s: %d clients", event, room_id, len(connections))

        delivered = 0
        for connection in connections:
            try:
                await self.send(connection, event, data)
                delivered += 1
            except Exception as e:
                logger.error(f"Send error: {e}")
                disconnected.add(connection)

        for conn in disconnected:
            self.disconnect(conn)

        return delivered
