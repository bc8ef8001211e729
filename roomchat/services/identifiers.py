# roomchat/services/identifiers.py
"""Random identifiers, room codes and display timestamps."""

from __future__ import annotations

import random
import string
from datetime import datetime

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 8

ROOM_CODE_MIN = 100000
ROOM_CODE_MAX = 999999

_random = random.SystemRandom()


def generate_id(length: int = ID_LENGTH) -> str:
    """Short opaque base-36 id, e.g. "k3j9x0qa"."""
    return "".join(_random.choice(ID_ALPHABET) for _ in range(length))


def generate_room_code(low: int = ROOM_CODE_MIN, high: int = ROOM_CODE_MAX) -> int:
    """Six-digit shareable join code, both bounds inclusive."""
    return _random.randint(low, high)


def now_time() -> str:
    """Wall-clock time as shown in the chat UI, e.g. "04:05 PM"."""
    return datetime.now().strftime("%I:%M %p")
