"""Schemas for chat rooms."""

from pydantic import BaseModel, Field


class ChatAuthor(BaseModel):
    id: str
    name: str


class ChatMessage(BaseModel):
    """A validated chat message."""

    id: str
    text: str
    created_at: int
    user: ChatAuthor


class MessageCreate(BaseModel):
    """Request body for posting to a chat room."""

    text: str = Field(min_length=1, max_length=2000)


class ChatRoomResponse(BaseModel):
    room: str
    messages: list[ChatMessage]
