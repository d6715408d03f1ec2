"""Ordered answer streaming.

:class:`AnswerStream` is a single-producer channel: a background task
pumps chunks from an upstream async iterator into a bounded queue and the
caller drains it with ``async for``.  Completion and failure are distinct
terminal signals.  Closing the stream cancels the producer; the completion
callback only runs once the consumer has drained every chunk of an
upstream that finished normally.

Usage::

    async with orchestrator.stream(request) as stream:
        async for chunk in stream:
            print(chunk, end="")
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable

from sanctions_rag.exceptions import CompletionStreamError

logger = logging.getLogger(__name__)

_DONE = object()


class _Failure:
    __slots__ = ("exc",)

    def __init__(self, exc: BaseException) -> None:
        self.exc = exc


class AnswerStream:
    """Async iterator over answer chunks, in arrival order.

    Parameters
    ----------
    source:
        Upstream chunk producer (e.g. a completion engine stream).
    on_complete:
        Called with the full answer when the consumer reaches the end of a
        stream whose *source* finished without error.  A consumer that stops
        early never triggers it.
    max_buffer:
        Queue bound; the producer waits when the consumer falls behind.
    """

    def __init__(
        self,
        source: AsyncIterator[str],
        *,
        on_complete: Callable[[str], None] | None = None,
        max_buffer: int = 64,
    ) -> None:
        self._source = source
        self._on_complete = on_complete
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=max_buffer)
        self._producer: asyncio.Task[None] | None = None
        self._answer = ""
        self._finished = False
        self._closed = False

    @property
    def finished(self) -> bool:
        """``True`` once the terminal signal (done or error) was delivered."""
        return self._finished

    async def _produce(self) -> None:
        parts: list[str] = []
        try:
            async for chunk in self._source:
                parts.append(chunk)
                await self._queue.put(chunk)
        except asyncio.CancelledError:
            logger.debug("Answer stream cancelled after %d chunk(s)", len(parts))
            raise
        except Exception as exc:
            logger.warning("Answer stream failed after %d chunk(s): %s", len(parts), exc)
            await self._queue.put(_Failure(exc))
            return
        self._answer = "".join(parts)
        await self._queue.put(_DONE)

    def __aiter__(self) -> AnswerStream:
        return self

    async def __anext__(self) -> str:
        if self._finished or self._closed:
            raise StopAsyncIteration
        if self._producer is None:
            self._producer = asyncio.get_running_loop().create_task(self._produce())

        item = await self._queue.get()
        if item is _DONE:
            self._finished = True
            if self._on_complete is not None:
                self._on_complete(self._answer)
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finished = True
            if isinstance(item.exc, CompletionStreamError):
                raise item.exc
            raise CompletionStreamError(f"Answer stream failed: {item.exc}") from item.exc
        return item  # type: ignore[return-value]

    async def collect(self) -> str:
        """Drain the stream and return the concatenated answer."""
        return "".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        """Stop producing.  No further chunks are delivered."""
        if self._closed:
            return
        self._closed = True
        if self._producer is not None and not self._producer.done():
            self._producer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._producer
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> AnswerStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
