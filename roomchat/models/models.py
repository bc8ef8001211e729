# roomchat/models/models.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Union

SYSTEM_SENDER = "system"

class Message(BaseModel):
    id: str
    text: str
    sender: str
    timestamp: str

class Room(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    room_name: str = Field(alias="roomName")
    room_code: int = Field(alias="roomCode")
    created_by: str = Field(alias="createdBy")
    created_at: str = Field(alias="createdAt")
    users: List[str] = []
    messages: List[Message] = []

    def to_wire(self) -> dict:
        """JSON-ready dict using the camelCase field names clients and the store expect."""
        return self.model_dump(mode="json", by_alias=True)

# Incoming websocket payloads. No format checks beyond JSON types: missing
# or null fields arrive as "", empty names and ids are accepted as sent.

class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return "" if value is None else value

class CreateRoomRequest(_Request):
    room_name: str = Field("", alias="roomName")
    user_id: str = Field("", alias="userID")

class JoinRoomRequest(_Request):
    room_code: Union[int, str] = Field("", alias="roomCode")
    user_id: str = Field("", alias="userID")

class SendMessageRequest(_Request):
    room_id: str = Field("", alias="roomId")
    msg: str = ""
    user_id: str = Field("", alias="userId")
