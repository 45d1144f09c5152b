import pytest

from dietcoach.services.memory_service import MemoryService, clamp_importance


@pytest.fixture
def memories(db, user):
    return MemoryService(db, user.id)


@pytest.mark.parametrize("score,expected", [(-3, 1), (0, 1), (1, 1), (7, 7), (10, 10), (42, 10)])
def test_clamp_importance(score, expected):
    assert clamp_importance(score) == expected


@pytest.mark.asyncio
async def test_add_memory_truncates_and_clamps(memories):
    result = await memories.add_memory("x" * 250, "preference", 15, ["nutrition"])

    assert result.success
    mem = result.data
    assert len(mem.memory_content) == 200
    assert mem.importance_score == 10
    assert mem.is_active is True
    assert mem.source == "conversation"


@pytest.mark.asyncio
async def test_add_memory_validation(memories):
    empty = await memories.add_memory("   ")
    assert not empty.success
    assert empty.error == "Memory content is required"

    bad_type = await memories.add_memory("Loves cycling", memory_type="hobby")
    assert not bad_type.success


@pytest.mark.asyncio
async def test_get_memories_ordering_and_filters(memories):
    await memories.add_memory("Drinks coffee daily", "routine", 4)
    await memories.add_memory("Type 2 diabetic", "fact", 10)
    await memories.add_memory("Wants to lose 5kg", "goal", 8)

    result = await memories.get_memories()
    assert [m.importance_score for m in result.data] == [10, 8, 4]

    goals = await memories.get_memories(memory_type="goal")
    assert [m.memory_content for m in goals.data] == ["Wants to lose 5kg"]

    important = await memories.get_memories(min_importance=8)
    assert len(important.data) == 2


@pytest.mark.asyncio
async def test_update_memory_in_place(memories):
    created = (await memories.add_memory("Runs on weekends", "routine", 5)).data
    before = created.updated_at

    result = await memories.update_memory(created.id, memory_content="Runs 5k every Sunday", importance_score=6)

    assert result.success
    assert result.data.id == created.id
    assert result.data.memory_content == "Runs 5k every Sunday"
    assert result.data.importance_score == 6
    assert result.data.updated_at >= before


@pytest.mark.asyncio
async def test_update_missing_memory(memories):
    result = await memories.update_memory("does-not-exist", importance_score=3)

    assert not result.success
    assert result.error == "Memory not found or update failed"


@pytest.mark.asyncio
async def test_deactivated_memories_are_hidden(memories):
    created = (await memories.add_memory("Vegetarian", "preference", 7)).data

    await memories.deactivate_memory(created.id)

    result = await memories.get_memories()
    assert result.data == []


@pytest.mark.asyncio
async def test_memories_are_scoped_to_user(db, memories):
    created = (await memories.add_memory("Allergic to shellfish", "fact", 9)).data
    other = MemoryService(db, "another-user")

    assert (await other.get_memories()).data == []
    assert not (await other.update_memory(created.id, is_active=False)).success
