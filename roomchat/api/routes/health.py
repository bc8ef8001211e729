# roomchat/api/routes/health.py

from fastapi import APIRouter

from roomchat.core import state

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Always answers 200 with status "ok" while the process serves requests.
    Used for liveness probing.

    Returns:
        dict: Status, open connection count, room count
    """
    return {
        "status": "ok",
        "connections": state.connection_manager.connection_count,
        "rooms": len(state.room_registry),
    }
