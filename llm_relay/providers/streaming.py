"""
Folding a provider response into one growing text.

A response is either a Server-Sent Events stream of chat completion deltas
or a single JSON completion. Both end in one final string; along the way
``on_partial(provider_id, text)`` sees the accumulated text, which only ever
grows within one stream.
"""

import asyncio
import inspect
import json
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import httpx

from ..errors import ClientCancellation, ContentError, UpstreamError

logger = logging.getLogger(__name__)

PartialCallback = Callable[[str, str], Any]

DONE_SENTINEL = "[DONE]"


class CancellationToken:
    """Cooperative cancellation signal shared by the reads of one dispatch."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


async def until_cancelled(
    awaitable: Awaitable,
    token: Optional[CancellationToken],
    partial_text: str = "",
):
    """
    Await ``awaitable`` unless ``token`` fires first.

    Raises:
        ClientCancellation: The token fired; the pending work is cancelled
    """
    if token is None:
        return await awaitable
    if token.cancelled:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise ClientCancellation(partial_text)

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        waiter.cancel()
        raise
    waiter.cancel()

    if work in done:
        return work.result()
    work.cancel()
    await asyncio.gather(work, return_exceptions=True)
    raise ClientCancellation(partial_text)


async def _next_line(lines: AsyncIterator[str]) -> Optional[str]:
    try:
        return await lines.__anext__()
    except StopAsyncIteration:
        return None


def _data_payload(line: str) -> Optional[str]:
    """Return the payload of an SSE ``data:`` line, or None for anything else."""
    if not line.startswith("data:"):
        return None
    payload = line[len("data:"):].strip()
    return payload or None


def _delta_text(payload: str) -> str:
    try:
        chunk = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("StreamingAggregator | skipping undecodable event: %.80s", payload)
        return ""
    choices = chunk.get("choices") if isinstance(chunk, dict) else None
    if not choices:
        return ""
    delta = choices[0].get("delta") or {}
    content = delta.get("content")
    return content if isinstance(content, str) else ""


def _message_text(body: bytes) -> str:
    data = json.loads(body)
    choices = data.get("choices") or []
    if not choices:
        return ""
    content = (choices[0].get("message") or {}).get("content")
    return content.strip() if isinstance(content, str) else ""


class StreamingAggregator:
    """
    Consumes one provider response.

    Args:
        provider_id: Passed back to ``on_partial`` with every update
        on_partial: Sync or async callback receiving the accumulated text
        min_interval: Minimum seconds between intermediate updates; updates
            arriving sooner are folded into the next one. The complete text is
            always delivered.
        cancel_token: Aborts the read in progress when it fires
    """

    def __init__(
        self,
        provider_id: str,
        on_partial: Optional[PartialCallback] = None,
        *,
        min_interval: float = 0.0,
        cancel_token: Optional[CancellationToken] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider_id = provider_id
        self._on_partial = on_partial
        self._min_interval = min_interval
        self._cancel_token = cancel_token
        self._clock = clock
        self._text = ""
        self._last_delivered: Optional[str] = None
        self._last_delivery_at: Optional[float] = None

    @property
    def text(self) -> str:
        """Everything received so far."""
        return self._text

    async def consume(self, response: httpx.Response) -> str:
        """
        Read ``response`` to the end and return the final text.

        Raises:
            UpstreamError: Non-2xx status
            ContentError: The response carried no text
            ClientCancellation: The cancel token fired during a read
        """
        if not response.is_success:
            body = await self._guard(response.aread())
            raise UpstreamError(response.status_code, body.decode("utf-8", errors="replace"))

        content_type = response.headers.get("content-type", "").lower()
        if "text/event-stream" in content_type:
            return await self._consume_event_stream(response)
        return await self._consume_body(response)

    async def _consume_event_stream(self, response: httpx.Response) -> str:
        lines = response.aiter_lines()
        try:
            while True:
                line = await self._guard(_next_line(lines))
                if line is None:
                    break
                payload = _data_payload(line)
                if payload is None:
                    continue
                if payload == DONE_SENTINEL:
                    break
                delta = _delta_text(payload)
                if delta:
                    self._text += delta
                    await self._emit()
        finally:
            await lines.aclose()

        final = self._text.strip()
        if not final:
            raise ContentError()
        await self._flush()
        return final

    async def _consume_body(self, response: httpx.Response) -> str:
        body = await self._guard(response.aread())
        text = _message_text(body)
        if not text:
            raise ContentError()
        self._text = text
        await self._flush()
        return text

    async def _guard(self, awaitable: Awaitable):
        return await until_cancelled(awaitable, self._cancel_token, self._text)

    async def _emit(self) -> None:
        if self._on_partial is None:
            return
        if (
            self._min_interval > 0
            and self._last_delivery_at is not None
            and self._clock() - self._last_delivery_at < self._min_interval
        ):
            return
        await self._deliver(self._text)

    async def _flush(self) -> None:
        if self._on_partial is not None and self._last_delivered != self._text:
            await self._deliver(self._text)

    async def _deliver(self, text: str) -> None:
        self._last_delivered = text
        self._last_delivery_at = self._clock()
        result = self._on_partial(self.provider_id, text)
        if inspect.isawaitable(result):
            await result
