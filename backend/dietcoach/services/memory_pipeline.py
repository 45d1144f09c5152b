"""
Conversation memory pipeline.

A user utterance goes through three steps, none of which may fail the chat
turn that triggered it:

1. ``MemoryClassifier`` decides whether the text carries durable personal
   information (a cheap length check first, then a YES/NO model call).
2. ``MemoryExtractor`` turns it into a structured record (summary, type,
   importance, tags). Any model or parsing failure yields a fixed fallback.
3. ``MemoryPipeline`` persists the record through ``MemoryService``.

The pipeline is scheduled on the ``BackgroundTaskRunner`` and opens its own
database session, so it can outlive the HTTP response.
"""
from __future__ import annotations

import json
import re
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from dietcoach.core.config import get_settings
from dietcoach.core.database import SessionLocal
from dietcoach.providers import ProviderFactory, LLMProvider
from dietcoach.schemas.memory import ExtractedMemory, MEMORY_TYPES, MEMORY_TAGS
from dietcoach.services.memory_service import MemoryService, MAX_MEMORY_CHARS, clamp_importance
from dietcoach.utils.logger import get_logger

logger = get_logger("memory_pipeline")
settings = get_settings()

MIN_UTTERANCE_CHARS = 5
FALLBACK_MEMORABLE_CHARS = 10
FALLBACK_SUMMARY_CHARS = 100


CLASSIFIER_PROMPT = """You are a memory analyzer. Determine if a user message contains information worth remembering for future conversations.

Store messages that contain:
- Personal preferences (food, exercise, lifestyle)
- Goals and aspirations
- Health information or medical conditions
- Routines and habits
- Important facts about the user
- Meaningful experiences or context

DO NOT store messages that are:
- Simple greetings (hi, hello, thanks)
- Basic questions without personal context
- Very short responses (ok, yes, no, sure)
- Commands or requests without personal information

Respond with only "YES" if it should be stored, or "NO" if it shouldn't."""


EXTRACTOR_PROMPT = """You are a memory extractor. Extract and summarize the key information from user messages that should be remembered.

Create a concise memory entry (max 100 characters) that captures the essential information.

Classify the memory type:
- preference: likes, dislikes, preferences
- goal: aspirations, targets, objectives
- fact: personal facts, conditions, circumstances
- routine: habits, regular activities, schedules
- general: other meaningful information

Rate importance (1-10):
- 9-10: Critical health/medical info, major goals
- 7-8: Important preferences, significant facts
- 5-6: Regular habits, moderate preferences
- 3-4: Minor preferences, general info
- 1-2: Least important context

Extract relevant tags from: nutrition, fitness, health, sleep, hydration, weight, medical, work, family, hobby

Respond in this exact JSON format:
{
  "memoryContent": "concise summary",
  "memoryType": "type",
  "importanceScore": number,
  "tags": ["tag1", "tag2"]
}"""


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"{.*}", text, re.DOTALL)
        if not match:
            raise
        return json.loads(match.group(0))


class MemoryClassifier:
    def __init__(self, provider: Optional[LLMProvider] = None, model: Optional[str] = None):
        self.provider = provider or ProviderFactory.get_provider("openai")
        self.model = model or settings.MEMORY_CLASSIFIER_MODEL

    async def classify(self, utterance: str) -> bool:
        text = (utterance or "").strip()
        if len(text) < MIN_UTTERANCE_CHARS:
            return False

        try:
            response = await self.provider.generate(
                [
                    {"role": "system", "content": CLASSIFIER_PROMPT},
                    {"role": "user", "content": f'Should this message be stored as a memory? Message: "{text}"'},
                ],
                options={
                    "model": self.model,
                    "max_completion_tokens": settings.MEMORY_CLASSIFY_MAX_TOKENS,
                },
            )
            return (response.content or "").strip().upper() == "YES"
        except Exception as e:
            logger.warning(f"Memory classifier failed, using length heuristic: {e}")
            return len(text) > FALLBACK_MEMORABLE_CHARS


class MemoryExtractor:
    def __init__(self, provider: Optional[LLMProvider] = None, model: Optional[str] = None):
        self.provider = provider or ProviderFactory.get_provider("openai")
        self.model = model or settings.MEMORY_EXTRACT_MODEL

    async def extract(self, utterance: str) -> ExtractedMemory:
        try:
            response = await self.provider.generate(
                [
                    {"role": "system", "content": EXTRACTOR_PROMPT},
                    {"role": "user", "content": f'Extract key information from: "{utterance}"'},
                ],
                options={
                    "model": self.model,
                    "max_completion_tokens": settings.MEMORY_EXTRACT_MAX_TOKENS,
                    "response_format": {"type": "json_object"},
                },
            )
            return self._to_record(_parse_json((response.content or "").strip()))
        except Exception as e:
            logger.warning(f"Memory extractor failed, using fallback record: {e}")
            return self.fallback(utterance)

    def _to_record(self, parsed: Any) -> ExtractedMemory:
        if not isinstance(parsed, dict):
            raise ValueError("Invalid LLM response format")

        content = parsed.get("memoryContent")
        memory_type = parsed.get("memoryType")
        score = parsed.get("importanceScore")
        if not isinstance(content, str) or not content.strip() or not memory_type or score is None:
            raise ValueError("Invalid LLM response format")
        if memory_type not in MEMORY_TYPES:
            raise ValueError(f"Unknown memory type {memory_type!r}")

        return ExtractedMemory(
            memory_content=content.strip()[:MAX_MEMORY_CHARS],
            memory_type=memory_type,
            importance_score=clamp_importance(round(float(score))),
            tags=self._clean_tags(parsed.get("tags")),
        )

    def _clean_tags(self, tags: Any) -> list:
        if not isinstance(tags, list):
            return []
        cleaned = []
        for tag in tags:
            if not isinstance(tag, str):
                continue
            tag = tag.strip().lower()
            if tag in MEMORY_TAGS and tag not in cleaned:
                cleaned.append(tag)
        return cleaned

    @staticmethod
    def fallback(utterance: str) -> ExtractedMemory:
        text = utterance or ""
        content = text[:FALLBACK_SUMMARY_CHARS] + ("..." if len(text) > FALLBACK_SUMMARY_CHARS else "")
        return ExtractedMemory(memory_content=content, memory_type="general", importance_score=5, tags=[])


class MemoryPipeline:
    def __init__(
        self,
        classifier: Optional[MemoryClassifier] = None,
        extractor: Optional[MemoryExtractor] = None,
        session_factory: Callable[[], AsyncSession] = SessionLocal,
    ):
        self.classifier = classifier or MemoryClassifier()
        self.extractor = extractor or MemoryExtractor()
        self.session_factory = session_factory

    async def store_if_memorable(self, user_id: str, utterance: str) -> None:
        try:
            text = (utterance or "").strip()
            if len(text) < MIN_UTTERANCE_CHARS:
                return

            if not await self.classifier.classify(text):
                return

            record = await self.extractor.extract(text)

            async with self.session_factory() as session:
                result = await MemoryService(session, user_id).add_memory(
                    memory_content=record.memory_content,
                    memory_type=record.memory_type,
                    importance_score=record.importance_score,
                    tags=record.tags if record.tags else None,
                    source="conversation",
                )

            if result.success:
                logger.info(f"Stored memory for user {user_id}: {record.memory_content}")
            else:
                logger.error(f"Memory store rejected record for user {user_id}: {result.error}")
        except Exception as e:
            logger.exception(f"Failed to store message as memory for user {user_id}: {e}")
