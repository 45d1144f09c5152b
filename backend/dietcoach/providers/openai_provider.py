from __future__ import annotations

from typing import Dict, Any, Optional, List
import time
import logging
import openai

from dietcoach.core.config import get_settings
from dietcoach.core.model_capabilities import ModelRegistry
from .base import LLMProvider, ProviderResponse

settings = get_settings()
logger = logging.getLogger(__name__)


JSONToolCall = Dict[str, Any]


def build_client():
    if settings.AZURE_OPENAI_API_KEY and settings.AZURE_OPENAI_ENDPOINT:
        return openai.AsyncAzureOpenAI(
            api_key=settings.AZURE_OPENAI_API_KEY,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
            api_version=settings.AZURE_OPENAI_API_VERSION,
        )
    return openai.AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


class OpenAIProvider(LLMProvider):
    def __init__(self):
        self.client = build_client()
        self.default_model = settings.CHAT_MODEL

    def _sanitize_tool_calls(self, tool_calls: Any) -> List[JSONToolCall]:
        """
        Always return tool_calls as plain JSON-serializable dicts:
          {"id": "...", "type":"function", "function": {"name":"...", "arguments":"..."}}
        """
        if not tool_calls:
            return []

        out: List[JSONToolCall] = []
        for tc in tool_calls:
            if tc is None:
                continue
            if isinstance(tc, dict):
                out.append(tc)
                continue
            if hasattr(tc, "model_dump"):
                out.append(tc.model_dump())
                continue
            fn = getattr(tc, "function", None)
            out.append({
                "id": getattr(tc, "id", None),
                "type": getattr(tc, "type", "function"),
                "function": {
                    "name": getattr(fn, "name", None),
                    "arguments": getattr(fn, "arguments", None),
                },
            })

        return [item for item in out if isinstance(item.get("function"), dict)]

    def _sanitize_messages(self, messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Keep only the keys Chat Completions accepts for each role.
        """
        cleaned: List[Dict[str, Any]] = []

        for m in messages:
            if not isinstance(m, dict):
                continue

            role = m.get("role")
            msg: Dict[str, Any] = {"role": role, "content": m.get("content")}

            if role == "tool" and "tool_call_id" in m:
                msg["tool_call_id"] = m["tool_call_id"]

            if role == "assistant" and m.get("tool_calls"):
                msg["tool_calls"] = self._sanitize_tool_calls(m["tool_calls"])

            cleaned.append(msg)

        return cleaned

    def _build_request(self, messages: List[Dict[str, Any]], options: Dict[str, Any]) -> Dict[str, Any]:
        model = options.get("model") or self.default_model
        caps = ModelRegistry.get_capabilities(model)

        configured_max = options.get("max_completion_tokens") or settings.OPENAI_MAX_COMPLETION_TOKENS
        if caps.max_output_tokens:
            configured_max = min(configured_max, caps.max_output_tokens)

        req: Dict[str, Any] = {
            "model": model,
            "messages": self._sanitize_messages(messages),
            "max_completion_tokens": configured_max,
        }

        temperature = options.get("temperature")
        if temperature is not None and caps.supports_temperature:
            req["temperature"] = temperature

        tools = options.get("tools")
        if tools and caps.supports_tools:
            req["tools"] = tools
            if options.get("tool_choice"):
                req["tool_choice"] = options["tool_choice"]

        response_format = options.get("response_format")
        if response_format and caps.supports_json_mode:
            req["response_format"] = response_format

        return req

    async def generate(
        self,
        messages: List[Dict[str, Any]],
        options: Optional[Dict[str, Any]] = None
    ) -> ProviderResponse:
        options = options or {}
        req = self._build_request(messages, options)

        start = time.time()
        try:
            response = await self.client.chat.completions.create(**req)
        except Exception as e:
            logger.exception(f"OpenAI Error: {e}")
            raise

        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        return ProviderResponse(
            content=choice.message.content,
            tool_calls=self._sanitize_tool_calls(choice.message.tool_calls),
            meta_data={
                "provider": "openai",
                "model": req["model"],
                "latency": time.time() - start,
                "finish_reason": choice.finish_reason,
                "tokens": getattr(usage, "total_tokens", None),
            },
        )

    async def stream_generate(
        self,
        messages: List[Dict[str, Any]],
        options: Optional[Dict[str, Any]] = None
    ):
        options = options or {}
        req = self._build_request(messages, options)
        req["stream"] = True

        try:
            return await self.client.chat.completions.create(**req)
        except Exception as e:
            logger.exception(f"OpenAI Stream Error: {e}")
            raise
