# roomchat/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the API and its events.
    """
    return {
        "message": "Room Chat",
        "version": "1.0",
        "events": {
            "in": ["createRoom", "joinRoom", "sendMessage"],
            "out": ["roomCreated", "roomJoined", "userJoined", "newMessage", "error"],
        },
        "endpoints": {
            "websocket": "/ws",
            "health": "/health",
        },
    }
