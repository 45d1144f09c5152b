from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MemoryType = Literal["preference", "goal", "fact", "routine", "general"]

MEMORY_TYPES = ("preference", "goal", "fact", "routine", "general")
MEMORY_SOURCES = ("conversation", "profile", "activity", "inference")
MEMORY_TAGS = (
    "nutrition", "fitness", "health", "sleep", "hydration",
    "weight", "medical", "work", "family", "hobby",
)


class ExtractedMemory(BaseModel):
    """Structured record produced by the extractor."""

    memory_content: str
    memory_type: MemoryType = "general"
    importance_score: int = 5
    tags: List[str] = []


class MemoryUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    memory_content: Optional[str] = Field(None, min_length=1, max_length=200)
    memory_type: Optional[MemoryType] = None
    importance_score: Optional[int] = Field(None, ge=1, le=10)
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None


class Memory(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    memory_content: str
    memory_type: str
    importance_score: int
    tags: Optional[List[str]] = None
    source: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class MemoryView(BaseModel):
    """Flattened shape handed to the model by the memory search tool."""

    id: str
    content: str
    type: str
    importance: int
    tags: Optional[List[str]] = None
    source: str
    createdAt: datetime
    updatedAt: datetime
