from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dietcoach.models.memory import UserMemory
from dietcoach.schemas.memory import MEMORY_TYPES, MEMORY_SOURCES, MemoryView
from dietcoach.schemas.results import ToolResult
from dietcoach.utils.dates import utcnow
from dietcoach.utils.logger import get_logger

logger = get_logger("memory_service")

MAX_MEMORY_CHARS = 200
MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 10


def clamp_importance(score: int) -> int:
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, int(score)))


class MemoryService:
    """Durable facts about a user, written by the memory pipeline."""

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id

    async def add_memory(
        self,
        memory_content: str,
        memory_type: str = "general",
        importance_score: int = 5,
        tags: Optional[List[str]] = None,
        source: str = "conversation",
    ) -> ToolResult:
        if not self.user_id:
            return ToolResult.fail("User ID is required")

        content = (memory_content or "").strip()
        if not content:
            return ToolResult.fail("Memory content is required")
        if memory_type not in MEMORY_TYPES:
            return ToolResult.fail("Memory type must be 'preference', 'goal', 'fact', 'routine', or 'general'")
        if source not in MEMORY_SOURCES:
            return ToolResult.fail("Memory source must be 'conversation', 'profile', 'activity', or 'inference'")

        now = utcnow()
        mem = UserMemory(
            user_id=self.user_id,
            memory_content=content[:MAX_MEMORY_CHARS],
            memory_type=memory_type,
            importance_score=clamp_importance(importance_score),
            tags=tags or None,
            source=source,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(mem)
            await self.db.commit()
            await self.db.refresh(mem)
        except Exception as e:
            logger.exception(f"Error adding memory for user {self.user_id}: {e}")
            await self.db.rollback()
            return ToolResult.fail(str(e) or "Failed to create user memory")

        return ToolResult.ok(mem)

    async def get_memories(
        self,
        memory_type: Optional[str] = None,
        min_importance: int = MIN_IMPORTANCE,
        limit: int = 50,
    ) -> ToolResult:
        if not self.user_id:
            return ToolResult.fail("User ID is required")

        query = select(UserMemory).where(
            UserMemory.user_id == self.user_id,
            UserMemory.is_active.is_(True),
            UserMemory.importance_score >= min_importance,
        )
        if memory_type:
            query = query.where(UserMemory.memory_type == memory_type)
        query = query.order_by(
            UserMemory.importance_score.desc(),
            UserMemory.updated_at.desc(),
        ).limit(limit)

        try:
            result = await self.db.execute(query)
            memories = result.scalars().all()
        except Exception as e:
            logger.exception(f"Error getting memories for user {self.user_id}: {e}")
            return ToolResult.fail(str(e))
        return ToolResult.ok(list(memories))

    async def _get_owned(self, memory_id: str) -> Optional[UserMemory]:
        result = await self.db.execute(
            select(UserMemory).where(UserMemory.id == memory_id, UserMemory.user_id == self.user_id)
        )
        return result.scalar_one_or_none()

    async def update_memory(
        self,
        memory_id: str,
        memory_content: Optional[str] = None,
        memory_type: Optional[str] = None,
        importance_score: Optional[int] = None,
        tags: Optional[List[str]] = None,
        is_active: Optional[bool] = None,
    ) -> ToolResult:
        if not memory_id:
            return ToolResult.fail("Memory ID is required")
        if memory_type is not None and memory_type not in MEMORY_TYPES:
            return ToolResult.fail("Memory type must be 'preference', 'goal', 'fact', 'routine', or 'general'")
        if memory_content is not None and not memory_content.strip():
            return ToolResult.fail("Memory content is required")

        try:
            mem = await self._get_owned(memory_id)
            if not mem:
                return ToolResult.fail("Memory not found or update failed")

            if memory_content is not None:
                mem.memory_content = memory_content.strip()[:MAX_MEMORY_CHARS]
            if memory_type is not None:
                mem.memory_type = memory_type
            if importance_score is not None:
                mem.importance_score = clamp_importance(importance_score)
            if tags is not None:
                mem.tags = tags or None
            if is_active is not None:
                mem.is_active = is_active
            mem.updated_at = utcnow()

            await self.db.commit()
            await self.db.refresh(mem)
        except Exception as e:
            logger.exception(f"Error updating memory {memory_id}: {e}")
            await self.db.rollback()
            return ToolResult.fail(str(e))

        return ToolResult.ok(mem)

    async def deactivate_memory(self, memory_id: str) -> ToolResult:
        """Soft delete: the row stays, it just stops being returned."""
        return await self.update_memory(memory_id, is_active=False)

    async def search(self, limit: int = 100) -> ToolResult:
        """All active memories, most important first, in the shape the agent reads."""
        result = await self.get_memories(memory_type=None, min_importance=MIN_IMPORTANCE, limit=limit)
        if not result.success:
            return result

        memories = [
            MemoryView(
                id=m.id,
                content=m.memory_content,
                type=m.memory_type,
                importance=m.importance_score,
                tags=m.tags,
                source=m.source,
                createdAt=m.created_at,
                updatedAt=m.updated_at,
            ).model_dump(mode="json")
            for m in result.data
        ]
        return ToolResult.ok(
            {"totalMemories": len(memories), "memories": memories},
            message=f"Found {len(memories)} memories for user",
        )
