from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from dietcoach.models.chat import Chat, Message, Stream
from dietcoach.utils.dates import utcnow
from dietcoach.utils.logger import get_logger

logger = get_logger("chat_service")

TITLE_MAX_WORDS = 6
TITLE_MAX_CHARS = 40


def generate_title(text: str) -> str:
    """Short chat title from the first line of the first user message."""
    words = (text or "").split("\n")[0].strip().split()
    title = " ".join(words[:TITLE_MAX_WORDS])
    if title and title[-1] in ".,:;!?":
        title = title[:-1]
    if len(title) > TITLE_MAX_CHARS:
        title = title[:TITLE_MAX_CHARS - 3].rstrip() + "..."
    return title or "New Chat"


class ChatService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_chat(self, chat_id: str) -> Optional[Chat]:
        return await self.db.get(Chat, chat_id)

    async def save_chat(self, chat_id: str, user_id: str, title: str, visibility: str = "private") -> Chat:
        logger.info(f"Creating chat {chat_id} with title: {title} for user_id: {user_id}")
        chat = Chat(id=chat_id, user_id=user_id, title=title, visibility=visibility, created_at=utcnow())
        self.db.add(chat)
        try:
            await self.db.commit()
        except Exception as e:
            logger.error(f"Error saving chat to DB: {e}")
            await self.db.rollback()
            raise
        await self.db.refresh(chat)
        return chat

    async def delete_chat(self, chat_id: str) -> bool:
        chat = await self.get_chat(chat_id)
        if not chat:
            return False
        await self.db.delete(chat)
        await self.db.commit()
        return True

    async def get_messages(self, chat_id: str) -> List[Message]:
        result = await self.db.execute(
            select(Message).where(Message.chat_id == chat_id).order_by(Message.created_at.asc())
        )
        return result.scalars().all()

    async def get_message_count_by_user_id(self, user_id: str, hours: int = 24) -> int:
        """User-sent messages across all of the user's chats in the last ``hours``."""
        since = utcnow() - timedelta(hours=hours)
        result = await self.db.execute(
            select(func.count(Message.id))
            .join(Chat, Chat.id == Message.chat_id)
            .where(
                Chat.user_id == user_id,
                Message.role == "user",
                Message.created_at >= since,
            )
        )
        return result.scalar_one()

    async def get_stream_ids_by_chat_id(self, chat_id: str) -> List[str]:
        result = await self.db.execute(
            select(Stream.id).where(Stream.chat_id == chat_id).order_by(Stream.created_at.asc())
        )
        return list(result.scalars().all())
