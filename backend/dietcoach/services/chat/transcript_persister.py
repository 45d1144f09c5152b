from __future__ import annotations

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from dietcoach.models.chat import Message, Stream
from dietcoach.utils.dates import utcnow
from dietcoach.utils.logger import get_logger

logger = get_logger("transcript_persister")


class TranscriptPersister:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def save_user_message(
        self,
        chat_id: str,
        message_id: str,
        parts: List[Dict[str, Any]],
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Message:
        user_message = Message(
            id=message_id,
            chat_id=chat_id,
            role="user",
            parts=parts,
            attachments=attachments or [],
            created_at=utcnow(),
        )
        self.db.add(user_message)
        await self.db.commit()
        await self.db.refresh(user_message)
        return user_message

    async def save_assistant_message(self, chat_id: str, message_id: str, parts: List[Dict[str, Any]]) -> Message:
        assistant_message = Message(
            id=message_id,
            chat_id=chat_id,
            role="assistant",
            parts=parts,
            attachments=[],
            created_at=utcnow(),
        )
        self.db.add(assistant_message)
        await self.db.commit()
        await self.db.refresh(assistant_message)
        return assistant_message

    async def create_stream_id(self, stream_id: str, chat_id: str) -> Stream:
        stream = Stream(id=stream_id, chat_id=chat_id, created_at=utcnow())
        self.db.add(stream)
        await self.db.commit()
        return stream
