# roomchat/api/websocket.py

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from roomchat.core import state
from roomchat.models.models import CreateRoomRequest, JoinRoomRequest, SendMessageRequest
from roomchat.services.session_coordinator import CREATE_FAILED, JOIN_FAILED, SEND_FAILED

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time bidirectional communication.

    Protocol:
    =========

    Client -> Server Actions:
    -------------------------
    Create Room:
        {"action": "createRoom", "roomName": "Trivia", "userID": "alice"}
        Response: {"type": "roomCreated", "data": {<room>}}

    Join Room:
        {"action": "joinRoom", "roomCode": 482913, "userID": "bob"}
        Response: {"type": "roomJoined", "data": {<room>}}
        Others in the room: {"type": "userJoined", "data": {"userId": "bob"}}

    Send Message:
        {"action": "sendMessage", "roomId": "k3j9x0qa", "msg": "hello", "userId": "bob"}
        Everyone in the room: {"type": "newMessage", "data": {<message>}}

    Server -> Client Messages:
    -------------------------
    Error:
        {"type": "error", "data": "Room not found"}

    Lifecycle:
    ==========
    1. Connection accepted and given a connection id
    2. Room registry refreshed from storage
    3. Client creates or joins rooms, which subscribes it to their events
    4. On disconnect, the connection leaves every broadcast group; room
       membership is kept

    Error Handling:
        - Invalid JSON: Sends error message
        - Unknown actions: Sends error message
        - Invalid payloads: Sends the operation's failure message
        - Connection errors: Cleanup and log
    """
    connection_id = await state.connection_manager.connect(websocket)
    await state.room_registry.refresh()
    logger.debug("Rooms after refresh for %s: %d", connection_id, len(state.room_registry))

    coordinator = state.coordinator

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                message = None

            if not isinstance(message, dict):
                await state.connection_manager.send(websocket, "error", "Invalid JSON")
                continue

            action = message.get("action")
            logger.info(f"Websocket input from {connection_id}: Action: {action}")

            try:
                if action == "createRoom":
                    request = CreateRoomRequest.model_validate(message)
                    await coordinator.create_room(websocket, request.room_name, request.user_id)

                elif action == "joinRoom":
                    request = JoinRoomRequest.model_validate(message)
                    await coordinator.join_room(websocket, request.room_code, request.user_id)

                elif action == "sendMessage":
                    request = SendMessageRequest.model_validate(message)
                    await coordinator.send_message(websocket, request.room_id, request.msg, request.user_id)

                else:
                    await state.connection_manager.send(websocket, "error", f"Unknown action: {action}")

            except ValidationError as e:
                logger.warning("Invalid %s payload from %s: %s", action, connection_id, e)
                failure = {
                    "createRoom": CREATE_FAILED,
                    "joinRoom": JOIN_FAILED,
                    "sendMessage": SEND_FAILED,
                }[action]
                await state.connection_manager.send(websocket, "error", failure)

    except WebSocketDisconnect:
        state.connection_manager.disconnect(websocket)
    except Exception as e:
        logger.error("WebSocket error on %s: %s", connection_id, e)
        state.connection_manager.disconnect(websocket)
