from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, AsyncIterator
from pydantic import BaseModel

class ProviderResponse(BaseModel):
    content: Optional[str] = None
    tool_calls: Optional[List[Any]] = None
    meta_data: Dict[str, Any] = {}

class LLMProvider(ABC):
    @abstractmethod
    async def generate(self, messages: List[Dict[str, Any]], options: Optional[Dict[str, Any]] = None) -> ProviderResponse:
        """
        Generates a response from the LLM.

        Args:
            messages: List of messages [{"role": "user", "content": "..."}]
            options: model, max_completion_tokens, temperature, tools,
                tool_choice, response_format

        Returns:
            ProviderResponse with content, tool calls and metadata
        """
        pass

    @abstractmethod
    async def stream_generate(self, messages: List[Dict[str, Any]], options: Optional[Dict[str, Any]] = None) -> AsyncIterator[Any]:
        """
        Starts a streamed completion. The returned iterator yields
        chat.completions chunks (``chunk.choices[0].delta``).
        """
        pass
