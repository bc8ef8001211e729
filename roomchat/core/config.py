# roomchat/core/config.py
import os
from typing import List, Literal
from dotenv import load_dotenv

class Settings:
    """
    Setup environment variables.
        - STORAGE_BACKEND where room snapshots are kept: "file", "redis" or "memory"
        - STORAGE_DIR directory used by the file backend
        - STORAGE_KEY key holding the serialized room list
        - REDIS_* connection details for the redis backend
    """

    # Load environment variables from the .env file
    load_dotenv()

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))

    STORAGE_BACKEND: Literal["file", "redis", "memory"] = os.getenv("STORAGE_BACKEND", "file")
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", ".persist")
    STORAGE_KEY: str = os.getenv("STORAGE_KEY", "rooms")

    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_ACCESS_KEY: str = os.getenv("REDIS_ACCESS_KEY", "")
    REDIS_SSL: bool = os.getenv("REDIS_SSL", "false").lower() == "true"

    CORS_ORIGINS: List[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

settings = Settings()
