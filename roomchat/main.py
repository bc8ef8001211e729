# roomchat/main.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomchat.core import state
from roomchat.core.config import settings
from roomchat.core.logging import setup_logging, get_logger
from roomchat.api.routes import root, health
from roomchat.api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="Room Chat")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)

# WebSocket routes
app.include_router(websocket_module.router)


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Application starting - storage backend: %s", settings.STORAGE_BACKEND)

    await state.store.connect()
    await state.room_registry.load()

@app.on_event("shutdown")
async def on_shutdown():
    await state.room_registry.flush()
    await state.store.close()
    logger.info("Application stopped")


def run() -> None:
    import uvicorn
    uvicorn.run("roomchat.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
