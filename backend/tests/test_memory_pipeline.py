import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import select

from conftest import reply
from dietcoach.core.database import SessionLocal
from dietcoach.models.memory import UserMemory
from dietcoach.services.memory_pipeline import MemoryClassifier, MemoryExtractor, MemoryPipeline


def extraction(**fields):
    body = {"memoryContent": "Allergic to peanuts", "memoryType": "fact", "importanceScore": 9, "tags": ["health"]}
    body.update(fields)
    return reply(json.dumps(body))


async def stored(user_id):
    async with SessionLocal() as session:
        result = await session.execute(select(UserMemory).where(UserMemory.user_id == user_id))
        return result.scalars().all()


@pytest.mark.asyncio
async def test_classifier_short_utterance_skips_model(mock_provider):
    classifier = MemoryClassifier(provider=mock_provider)

    assert await classifier.classify("  hi  ") is False
    mock_provider.generate.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("answer,expected", [("YES", True), (" yes\n", True), ("NO", False), ("Yes, store it", False)])
async def test_classifier_answer(mock_provider, answer, expected):
    mock_provider.generate.return_value = reply(answer)

    assert await MemoryClassifier(provider=mock_provider).classify("I am vegetarian") is expected


@pytest.mark.asyncio
async def test_classifier_falls_back_to_length(mock_provider):
    mock_provider.generate.side_effect = RuntimeError("upstream down")
    classifier = MemoryClassifier(provider=mock_provider)

    assert await classifier.classify("I swim daily") is True
    assert await classifier.classify("ok thank") is False


@pytest.mark.asyncio
async def test_extractor_clamps_and_filters_tags(mock_provider):
    mock_provider.generate.return_value = extraction(importanceScore=14, tags=["Health", "astrology", "nutrition"])

    record = await MemoryExtractor(provider=mock_provider).extract("I'm allergic to peanuts")

    assert record.importance_score == 10
    assert record.tags == ["health", "nutrition"]
    assert record.memory_type == "fact"


@pytest.mark.asyncio
async def test_extractor_json_wrapped_in_text(mock_provider):
    mock_provider.generate.return_value = reply(
        'Sure! {"memoryContent": "Goal: 10000 steps", "memoryType": "goal", "importanceScore": 7, "tags": []}'
    )

    record = await MemoryExtractor(provider=mock_provider).extract("I want 10000 steps a day")

    assert record.memory_content == "Goal: 10000 steps"
    assert record.memory_type == "goal"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        reply("not json at all"),
        extraction(memoryType="opinion"),
        extraction(memoryContent=""),
        extraction(importanceScore=None),
    ],
)
async def test_extractor_fallback(mock_provider, response):
    mock_provider.generate.return_value = response
    utterance = "I usually eat dinner late because of my night shifts at the hospital, around 11pm most days of the week"

    record = await MemoryExtractor(provider=mock_provider).extract(utterance)

    assert record.memory_content == utterance[:100] + "..."
    assert record.memory_type == "general"
    assert record.importance_score == 5
    assert record.tags == []


@pytest.mark.asyncio
async def test_extractor_fallback_on_model_error(mock_provider):
    mock_provider.generate.side_effect = TimeoutError()

    record = await MemoryExtractor(provider=mock_provider).extract("I hate running")

    assert record.memory_content == "I hate running"


def pipeline_for(provider):
    return MemoryPipeline(
        classifier=MemoryClassifier(provider=provider),
        extractor=MemoryExtractor(provider=provider),
        session_factory=SessionLocal,
    )


@pytest.mark.asyncio
async def test_peanut_scenario(mock_provider, user):
    mock_provider.generate.side_effect = [
        reply("YES"),
        extraction(memoryContent="Allergic to peanuts; goal 10000 steps/day", importanceScore=9, tags=["health", "fitness"]),
    ]

    await pipeline_for(mock_provider).store_if_memorable(
        user.id, "I'm allergic to peanuts and trying to hit 10000 steps a day"
    )

    memories = await stored(user.id)
    assert len(memories) == 1
    mem = memories[0]
    assert mem.memory_type in ("fact", "goal")
    assert 7 <= mem.importance_score <= 10
    assert set(mem.tags) <= {"nutrition", "fitness", "health", "sleep", "hydration", "weight", "medical", "work", "family", "hobby"}
    assert mem.is_active is True
    assert mem.source == "conversation"


@pytest.mark.asyncio
async def test_ok_thanks_stores_nothing(mock_provider, user):
    mock_provider.generate.return_value = reply("NO")

    await pipeline_for(mock_provider).store_if_memorable(user.id, "ok thanks")

    assert await stored(user.id) == []
    assert mock_provider.generate.await_count == 1


@pytest.mark.asyncio
async def test_short_utterance_makes_no_calls(mock_provider, user):
    await pipeline_for(mock_provider).store_if_memorable(user.id, "  ok ")

    mock_provider.generate.assert_not_called()
    assert await stored(user.id) == []


@pytest.mark.asyncio
async def test_long_summary_truncated_to_200(mock_provider, user):
    mock_provider.generate.side_effect = [reply("YES"), extraction(memoryContent="a" * 260, importanceScore=0)]

    await pipeline_for(mock_provider).store_if_memorable(user.id, "I track every meal I eat in a notebook")

    memories = await stored(user.id)
    assert len(memories[0].memory_content) == 200
    assert memories[0].importance_score == 1


@pytest.mark.asyncio
async def test_store_failure_is_swallowed(mock_provider, user):
    mock_provider.generate.side_effect = [reply("YES"), extraction()]
    broken_session = MagicMock(side_effect=RuntimeError("database is gone"))
    pipeline = MemoryPipeline(
        classifier=MemoryClassifier(provider=mock_provider),
        extractor=MemoryExtractor(provider=mock_provider),
        session_factory=broken_session,
    )

    await pipeline.store_if_memorable(user.id, "I'm allergic to peanuts")

    broken_session.assert_called_once()


@pytest.mark.asyncio
async def test_pipeline_skips_extractor_when_not_memorable(user):
    classifier = MagicMock()
    classifier.classify = AsyncMock(return_value=False)
    extractor = MagicMock()
    extractor.extract = AsyncMock()

    await MemoryPipeline(classifier, extractor, SessionLocal).store_if_memorable(user.id, "What time is it?")

    extractor.extract.assert_not_called()


@pytest.mark.asyncio
async def test_unparseable_extraction_stores_fallback_record(mock_provider, user):
    utterance = "I do yoga every morning before work"
    mock_provider.generate.side_effect = [reply("YES"), reply("not json")]

    await pipeline_for(mock_provider).store_if_memorable(user.id, utterance)

    memories = await stored(user.id)
    assert len(memories) == 1
    mem = memories[0]
    assert mem.memory_content == utterance
    assert mem.memory_type == "general"
    assert mem.importance_score == 5
    assert mem.tags is None
    assert mem.is_active is True
