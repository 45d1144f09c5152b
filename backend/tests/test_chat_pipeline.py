import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import select

from conftest import fake_stream, text_chunk, tool_chunk
from dietcoach.core.background import BackgroundTaskRunner
from dietcoach.core.database import SessionLocal
from dietcoach.models.chat import Message
from dietcoach.models.intake import WaterIntakeLog
from dietcoach.schemas.chat import ChatRequest
from dietcoach.services.chat import ChatPipeline
from dietcoach.services.chat.prompts import system_prompt
from dietcoach.services.chat_service import ChatService, generate_title
from dietcoach.schemas.chat import RequestHints
from dietcoach.schemas.user import PersonalDetails


def events_of(raw):
    return [json.loads(e[len("data: "):]) for e in raw]


def chat_request(chat_id, text, model="chat-model"):
    return ChatRequest.model_validate({
        "id": chat_id,
        "message": {
            "id": "msg-1",
            "createdAt": "2025-01-01T10:00:00Z",
            "role": "user",
            "content": text,
            "parts": [{"type": "text", "text": text}],
        },
        "selectedChatModel": model,
        "selectedVisibilityType": "private",
    })


@pytest.fixture
def memory_pipeline():
    pipeline = MagicMock()
    pipeline.store_if_memorable = AsyncMock()
    return pipeline


@pytest.mark.asyncio
async def test_turn_with_tool_call(db, user, mock_provider, memory_pipeline):
    await ChatService(db).save_chat("chat-1", user.id, "Water")
    mock_provider.stream_generate.side_effect = [
        fake_stream(
            tool_chunk(0, "call_1", "logWaterIntake", '{"amount": 25'),
            tool_chunk(0, arguments='0, "unit": "ml"}'),
        ),
        fake_stream(text_chunk("Logged 250ml"), text_chunk(" for you!")),
    ]
    runner = BackgroundTaskRunner()
    pipeline = ChatPipeline(db, user.id, runner, memory_pipeline=memory_pipeline, provider=mock_provider)

    await pipeline.accept_user_message(chat_request("chat-1", "I just drank 250ml of water"))
    events = events_of([e async for e in pipeline.run_stream("chat-1", "chat-model")])
    await runner.drain()

    memory_pipeline.store_if_memorable.assert_awaited_once_with(user.id, "I just drank 250ml of water")
    assert [e["type"] for e in events] == ["start", "tool-call", "tool-result", "text-delta", "text-delta", "finish"]
    assert events[1]["args"] == {"amount": 250, "unit": "ml"}
    assert events[2]["result"]["success"] is True

    # the tool result is fed back to the model on the second step
    second_call_messages = mock_provider.stream_generate.await_args_list[1].args[0]
    assert second_call_messages[-1]["role"] == "tool"
    assert second_call_messages[-1]["tool_call_id"] == "call_1"

    async with SessionLocal() as session:
        water = (await session.execute(select(WaterIntakeLog))).scalars().all()
        messages = (await session.execute(
            select(Message).where(Message.chat_id == "chat-1").order_by(Message.created_at)
        )).scalars().all()

    assert len(water) == 1
    assert [m.role for m in messages] == ["user", "assistant"]
    assistant = messages[1]
    assert assistant.parts[0]["type"] == "tool-invocation"
    assert assistant.parts[0]["toolInvocation"]["toolName"] == "logWaterIntake"
    assert assistant.parts[1] == {"type": "text", "text": "Logged 250ml for you!"}


@pytest.mark.asyncio
async def test_reasoning_model_gets_no_tools(db, user, mock_provider, memory_pipeline):
    await ChatService(db).save_chat("chat-2", user.id, "Think")
    mock_provider.stream_generate.return_value = fake_stream(text_chunk("Let me think."))
    pipeline = ChatPipeline(db, user.id, BackgroundTaskRunner(), memory_pipeline=memory_pipeline, provider=mock_provider)

    events = events_of([e async for e in pipeline.run_stream("chat-2", "chat-model-reasoning")])

    options = mock_provider.stream_generate.await_args.kwargs["options"]
    assert "tools" not in options
    assert options["model"] == "o3-mini"
    assert events[-1]["type"] == "finish"


@pytest.mark.asyncio
async def test_model_error_yields_error_event(db, user, mock_provider, memory_pipeline):
    await ChatService(db).save_chat("chat-3", user.id, "Oops")
    mock_provider.stream_generate.side_effect = RuntimeError("rate limited")
    pipeline = ChatPipeline(db, user.id, BackgroundTaskRunner(), memory_pipeline=memory_pipeline, provider=mock_provider)

    events = events_of([e async for e in pipeline.run_stream("chat-3", "chat-model")])

    assert [e["type"] for e in events] == ["start", "error", "finish"]
    assert events[1]["errorText"] == "Oops, an error occurred!"


@pytest.mark.asyncio
async def test_system_prompt_includes_profile_and_custom_prompt(db, user, mock_provider, memory_pipeline):
    user.prompt = "Always answer in Hindi."
    await db.commit()
    await ChatService(db).save_chat("chat-4", user.id, "Hi")
    mock_provider.stream_generate.return_value = fake_stream(text_chunk("Namaste"))
    pipeline = ChatPipeline(db, user.id, BackgroundTaskRunner(), memory_pipeline=memory_pipeline, provider=mock_provider)

    [e async for e in pipeline.run_stream("chat-4", "chat-model", RequestHints(city="Pune", country="IN"))]

    prompt = mock_provider.stream_generate.await_args.args[0][0]["content"]
    assert "Pune" in prompt
    assert "vegetarian" in prompt
    assert "Always answer in Hindi." in prompt


def test_system_prompt_without_custom_instructions():
    prompt = system_prompt(RequestHints(), PersonalDetails(first_name="Ravi"))

    assert "Ravi" in prompt
    assert "Additional instructions" not in prompt


@pytest.mark.parametrize(
    "text,expected",
    [
        ("", "New Chat"),
        ("How much water should I drink?", "How much water should I drink"),
        ("Log my breakfast\nTwo eggs and toast", "Log my breakfast"),
        ("Please help me plan a high protein vegetarian diet for this week", "Please help me plan a high"),
        ("Supercalifragilistic extraordinarily complicated question", "Supercalifragilistic extraordinarily..."),
    ],
)
def test_generate_title(text, expected):
    assert generate_title(text) == expected


def test_pipeline_logs_through_package_logger():
    from dietcoach.services.chat import pipeline as chat_pipeline

    assert chat_pipeline.logger.name == "dietcoach.chat_pipeline"
