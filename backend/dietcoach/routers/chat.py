import uuid
from datetime import timedelta
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from dietcoach.core.background import BackgroundTaskRunner, get_task_runner
from dietcoach.core.config import get_settings
from dietcoach.core.database import get_db
from dietcoach.models.user import User
from dietcoach.routers.auth import get_current_user
from dietcoach.schemas.chat import ChatRequest, RequestHints, Chat as ChatSchema, Message as MessageSchema
from dietcoach.services.chat import ChatPipeline, TranscriptPersister, StreamRegistry, get_stream_registry
from dietcoach.services.chat.pipeline import sse
from dietcoach.services.chat_service import ChatService, generate_title
from dietcoach.utils.dates import utcnow

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api/chat", tags=["chat"])

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


def geolocation(request: Request) -> RequestHints:
    headers = request.headers
    return RequestHints(
        latitude=headers.get("x-vercel-ip-latitude"),
        longitude=headers.get("x-vercel-ip-longitude"),
        city=headers.get("x-vercel-ip-city"),
        country=headers.get("x-vercel-ip-country"),
    )


def event_stream(events: AsyncIterator[str]) -> StreamingResponse:
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


async def _empty() -> AsyncIterator[str]:
    return
    yield


async def _replay(message) -> AsyncIterator[str]:
    payload = MessageSchema.model_validate(message).model_dump(mode="json", by_alias=True)
    yield sse({"type": "data-appendMessage", "data": payload, "transient": True})


@router.post("")
async def create_chat_message(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    task_runner: BackgroundTaskRunner = Depends(get_task_runner),
    registry: Optional[StreamRegistry] = Depends(get_stream_registry),
):
    try:
        body = ChatRequest.model_validate(await request.json())
    except (ValidationError, ValueError) as e:
        logger.warning(f"Invalid chat request body: {e}")
        raise HTTPException(status_code=400, detail="Invalid request body")

    settings = get_settings()
    service = ChatService(db)

    max_per_day = settings.GUEST_MAX_MESSAGES_PER_DAY if current_user.is_guest else settings.REGULAR_MAX_MESSAGES_PER_DAY
    message_count = await service.get_message_count_by_user_id(current_user.id, hours=24)
    if message_count > max_per_day:
        logger.warning(f"User {current_user.id} hit the daily limit ({message_count}/{max_per_day})")
        raise HTTPException(status_code=429, detail="You have exceeded your maximum number of messages for the day")

    chat = await service.get_chat(body.id)
    if not chat:
        await service.save_chat(
            chat_id=body.id,
            user_id=current_user.id,
            title=generate_title(body.message.text),
            visibility=body.selected_visibility_type,
        )
    elif chat.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Forbidden")

    pipeline = ChatPipeline(db, current_user.id, task_runner)
    await pipeline.accept_user_message(body)

    stream_id = str(uuid.uuid4())
    await TranscriptPersister(db).create_stream_id(stream_id, body.id)

    producer = pipeline.run_stream(body.id, body.selected_chat_model, geolocation(request))
    if registry is None:
        return event_stream(producer)
    return event_stream(registry.start(stream_id, producer).subscribe())


@router.get("")
async def resume_chat_stream(
    chatId: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    registry: Optional[StreamRegistry] = Depends(get_stream_registry),
):
    if registry is None:
        return Response(status_code=204)
    if not chatId:
        raise HTTPException(status_code=400, detail="id is required")

    service = ChatService(db)
    chat = await service.get_chat(chatId)
    if not chat:
        raise HTTPException(status_code=404, detail="Not found")
    if chat.visibility == "private" and chat.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Forbidden")

    stream_ids = await service.get_stream_ids_by_chat_id(chatId)
    if not stream_ids:
        raise HTTPException(status_code=404, detail="No streams found")

    live = registry.resume(stream_ids[-1])
    if live is not None:
        return event_stream(live.subscribe())

    # The generation already finished: hand back its result if it is fresh,
    # otherwise an empty stream.
    messages = await service.get_messages(chatId)
    latest = messages[-1] if messages else None
    window = timedelta(seconds=get_settings().STREAM_RESUME_WINDOW_SECONDS)
    if latest is None or latest.role != "assistant" or utcnow() - latest.created_at > window:
        return event_stream(_empty())
    return event_stream(_replay(latest))


@router.delete("", response_model=ChatSchema)
async def delete_chat(
    id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not id:
        raise HTTPException(status_code=400, detail="Not Found")

    service = ChatService(db)
    chat = await service.get_chat(id)
    if not chat:
        raise HTTPException(status_code=404, detail="Chat not found")
    if chat.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Forbidden")

    deleted = ChatSchema.model_validate(chat)
    await service.delete_chat(id)
    logger.info(f"Chat {id} deleted by user {current_user.id}")
    return deleted
