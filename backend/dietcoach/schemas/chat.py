from datetime import datetime
from typing import List, Optional, Dict, Any, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ChatModelId = Literal["chat-model", "chat-model-reasoning"]
Visibility = Literal["public", "private"]


class MessagePart(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None


class Attachment(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    name: str
    content_type: str


class ClientMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    role: Literal["user"] = "user"
    content: str = Field("", max_length=2000)
    parts: List[MessagePart]
    attachments: List[Attachment] = Field(default_factory=list, alias="experimental_attachments")

    @field_validator("parts")
    @classmethod
    def _non_empty(cls, v):
        if not v:
            raise ValueError("message must contain at least one part")
        return v

    @property
    def text(self) -> str:
        return " ".join(p.text or "" for p in self.parts if p.type == "text")


class ChatRequest(BaseModel):
    """Body of POST /api/chat."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    message: ClientMessage
    selected_chat_model: ChatModelId = "chat-model"
    selected_visibility_type: Visibility = "private"


class Message(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    chat_id: str
    role: str
    parts: List[Dict[str, Any]]
    attachments: List[Dict[str, Any]] = []
    created_at: datetime


class Chat(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    title: str
    visibility: str
    created_at: datetime


class RequestHints(BaseModel):
    """Where the request came from, as reported by the edge proxy."""

    latitude: Optional[str] = None
    longitude: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
