from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from dietcoach.models.chat import Message
from dietcoach.models.user import User
from dietcoach.schemas.chat import RequestHints
from dietcoach.schemas.user import PersonalDetails
from dietcoach.utils.logger import get_logger
from .prompts import system_prompt
import time

logger = get_logger("context_builder")


class ContextBuilder:
    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id

    async def build_context(
        self,
        chat_id: str,
        hints: Optional[RequestHints] = None,
        history_limit: int = 50,
        max_chars: int = 40000,
    ) -> Tuple[str, List[Dict[str, Any]]]:
        """
        Returns:
          - system_prompt: str
          - messages: chat history in provider format, oldest first
        """
        start_time = time.time()

        history = await self._get_chat_history(chat_id)
        recent_history = self._trim_history(history[-history_limit:], max_chars)

        user = await self.db.get(User, self.user_id)
        details = PersonalDetails.model_validate(user) if user else PersonalDetails()
        custom_prompt = (user.prompt or "") if user else ""

        prompt = system_prompt(hints or RequestHints(), details, custom_prompt)
        messages = [{"role": m.role, "content": m.text} for m in recent_history if m.text]

        logger.info(f"Context build took {time.time() - start_time:.4f}s. History: {len(messages)} items.")
        return prompt, messages

    def _trim_history(self, history: List[Message], max_chars: int) -> List[Message]:
        if not history:
            return []

        total_chars = 0
        trimmed = []
        # newest first so the most recent turns survive the budget
        for msg in reversed(history):
            c_len = len(msg.text)
            if total_chars + c_len > max_chars:
                break
            trimmed.append(msg)
            total_chars += c_len

        return list(reversed(trimmed))

    async def _get_chat_history(self, chat_id: str) -> List[Message]:
        query = select(Message).where(Message.chat_id == chat_id).order_by(Message.created_at.asc())
        result = await self.db.execute(query)
        return result.scalars().all()
