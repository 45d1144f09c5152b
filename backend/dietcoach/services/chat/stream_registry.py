from __future__ import annotations

import asyncio
from typing import AsyncIterator, Dict, List, Optional

from fastapi import Request

from dietcoach.core.background import BackgroundTaskRunner
from dietcoach.utils.logger import get_logger

logger = get_logger("stream_registry")


class ResumableStream:
    """
    Buffer of already-encoded SSE events for one generation.

    Any number of readers can attach at any time; each one gets the full
    backlog first and then follows live events until the producer finishes.
    """

    def __init__(self, stream_id: str):
        self.stream_id = stream_id
        self.events: List[str] = []
        self.done = False
        self._changed = asyncio.Condition()

    async def push(self, event: str):
        async with self._changed:
            self.events.append(event)
            self._changed.notify_all()

    async def finish(self):
        async with self._changed:
            self.done = True
            self._changed.notify_all()

    async def subscribe(self) -> AsyncIterator[str]:
        index = 0
        while True:
            async with self._changed:
                await self._changed.wait_for(lambda: index < len(self.events) or self.done)
                pending = self.events[index:]
                finished = self.done
            for event in pending:
                yield event
            index += len(pending)
            if finished and index >= len(self.events):
                return


class StreamRegistry:
    """
    Process-wide registry of in-flight generations, created once at startup.

    The producer is pumped by the background runner, so a generation keeps
    going (and gets persisted) when the client that started it disconnects.
    A stream is dropped from the registry as soon as it finishes.
    """

    def __init__(self, task_runner: BackgroundTaskRunner):
        self.task_runner = task_runner
        self._streams: Dict[str, ResumableStream] = {}

    def __len__(self):
        return len(self._streams)

    def start(self, stream_id: str, producer: AsyncIterator[str]) -> ResumableStream:
        stream = ResumableStream(stream_id)
        self._streams[stream_id] = stream
        self.task_runner.spawn(self._pump(stream, producer), name=f"stream-{stream_id}")
        return stream

    def resume(self, stream_id: str) -> Optional[ResumableStream]:
        return self._streams.get(stream_id)

    async def _pump(self, stream: ResumableStream, producer: AsyncIterator[str]):
        try:
            async for event in producer:
                await stream.push(event)
        except Exception as e:
            logger.exception(f"Stream {stream.stream_id} producer failed: {e}")
        finally:
            await stream.finish()
            self._streams.pop(stream.stream_id, None)


def get_stream_registry(request: Request) -> Optional[StreamRegistry]:
    """None when resumable streams are switched off."""
    return getattr(request.app.state, "stream_registry", None)
