from __future__ import annotations

from typing import List, Dict, Any, Optional, AsyncGenerator, Callable
import json
import time
import uuid
from sqlalchemy.ext.asyncio import AsyncSession

from dietcoach.core.background import BackgroundTaskRunner
from dietcoach.core.config import get_settings
from dietcoach.core.database import SessionLocal
from dietcoach.providers import ProviderFactory, LLMProvider, language_model
from dietcoach.schemas.chat import ChatRequest, RequestHints
from dietcoach.services.coach_tools import CoachTools
from dietcoach.services.memory_pipeline import MemoryPipeline
from dietcoach.services.tools_definition import COACH_TOOLS_DEFINITION
from dietcoach.utils.logger import get_logger

from .context_builder import ContextBuilder
from .transcript_persister import TranscriptPersister

logger = get_logger("chat_pipeline")

ERROR_TEXT = "Oops, an error occurred!"


def sse(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False, default=str)}\n\n"


class ChatPipeline:
    """
    One chat turn: persist the user message, kick off memory extraction,
    then stream the model's answer with tool calls and persist it.
    """

    def __init__(
        self,
        db: AsyncSession,
        user_id: str,
        task_runner: BackgroundTaskRunner,
        memory_pipeline: Optional[MemoryPipeline] = None,
        provider: Optional[LLMProvider] = None,
        session_factory: Callable[[], AsyncSession] = SessionLocal,
    ):
        self.db = db
        self.user_id = user_id
        self.settings = get_settings()
        self.task_runner = task_runner
        self.memory_pipeline = memory_pipeline or MemoryPipeline()
        self.provider = provider or ProviderFactory.get_provider("openai")
        self.session_factory = session_factory
        self.persister = TranscriptPersister(db)

    async def accept_user_message(self, request: ChatRequest):
        message = request.message
        await self.persister.save_user_message(
            chat_id=request.id,
            message_id=message.id,
            parts=[p.model_dump(exclude_none=True) for p in message.parts],
            attachments=[a.model_dump(by_alias=True) for a in message.attachments],
        )

        # not awaited: memory extraction must never slow down or fail the reply
        self.task_runner.spawn(
            self.memory_pipeline.store_if_memorable(self.user_id, message.text),
            name=f"memory-{message.id}",
        )

    async def run_stream(
        self,
        chat_id: str,
        selected_chat_model: str,
        hints: Optional[RequestHints] = None,
    ) -> AsyncGenerator[str, None]:
        # The request session is gone by the time a resumed stream finishes,
        # so generation works on its own session.
        async with self.session_factory() as db:
            async for event in self._generate(db, chat_id, selected_chat_model, hints):
                yield event

    async def _generate(
        self,
        db: AsyncSession,
        chat_id: str,
        selected_chat_model: str,
        hints: Optional[RequestHints],
    ) -> AsyncGenerator[str, None]:
        assistant_id = str(uuid.uuid4())
        parts: List[Dict[str, Any]] = []
        start_time = time.time()

        yield sse({"type": "start", "messageId": assistant_id})

        try:
            system_prompt, history = await ContextBuilder(db, self.user_id).build_context(chat_id, hints)
            messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
            messages.extend(history)

            model = language_model(selected_chat_model)
            use_tools = selected_chat_model != "chat-model-reasoning"
            tools_impl = CoachTools(db, self.user_id)

            for step in range(self.settings.CHAT_MAX_STEPS):
                options: Dict[str, Any] = {
                    "model": model,
                    "max_completion_tokens": self.settings.OPENAI_MAX_COMPLETION_TOKENS,
                }
                if use_tools:
                    options["tools"] = COACH_TOOLS_DEFINITION
                    options["tool_choice"] = "auto"

                stream = await self.provider.stream_generate(messages, options=options)

                text_chunks: List[str] = []
                calls: Dict[int, Dict[str, Any]] = {}
                async for chunk in stream:
                    if not getattr(chunk, "choices", None):
                        continue
                    delta = chunk.choices[0].delta

                    content = getattr(delta, "content", None)
                    if content:
                        text_chunks.append(content)
                        yield sse({"type": "text-delta", "delta": content})

                    for tc in getattr(delta, "tool_calls", None) or []:
                        acc = calls.setdefault(tc.index, {"id": None, "name": "", "arguments": ""})
                        if tc.id:
                            acc["id"] = tc.id
                        fn = getattr(tc, "function", None)
                        if fn is not None:
                            acc["name"] += fn.name or ""
                            acc["arguments"] += fn.arguments or ""

                step_text = "".join(text_chunks)
                if step_text:
                    parts.append({"type": "text", "text": step_text})

                if not calls:
                    break

                ordered = [calls[i] for i in sorted(calls)]
                messages.append({
                    "role": "assistant",
                    "content": step_text or None,
                    "tool_calls": [
                        {
                            "id": c["id"],
                            "type": "function",
                            "function": {"name": c["name"], "arguments": c["arguments"] or "{}"},
                        }
                        for c in ordered
                    ],
                })

                # one tool at a time, in the order the model asked for them
                for call in ordered:
                    try:
                        args = json.loads(call["arguments"]) if call["arguments"] else {}
                    except json.JSONDecodeError:
                        args = {}
                    if not isinstance(args, dict):
                        args = {}

                    yield sse({"type": "tool-call", "toolCallId": call["id"], "toolName": call["name"], "args": args})
                    result = (await tools_impl.execute(call["name"], args)).to_payload()
                    yield sse({"type": "tool-result", "toolCallId": call["id"], "result": result})

                    parts.append({
                        "type": "tool-invocation",
                        "toolInvocation": {
                            "state": "result",
                            "toolCallId": call["id"],
                            "toolName": call["name"],
                            "args": args,
                            "result": result,
                        },
                    })
                    messages.append({
                        "role": "tool",
                        "tool_call_id": call["id"],
                        "content": json.dumps(result, ensure_ascii=False, default=str),
                    })
            else:
                logger.warning(f"Chat {chat_id}: stopped after {self.settings.CHAT_MAX_STEPS} steps")
        except Exception as e:
            logger.exception(f"Chat {chat_id}: generation failed: {e}")
            yield sse({"type": "error", "errorText": ERROR_TEXT})

        logger.info(f"Chat {chat_id}: generation took {time.time() - start_time:.4f}s")

        if parts:
            try:
                await TranscriptPersister(db).save_assistant_message(chat_id, assistant_id, parts)
            except Exception as e:
                logger.error(f"Chat {chat_id}: failed to save assistant message: {e}")

        yield sse({"type": "finish", "messageId": assistant_id})
