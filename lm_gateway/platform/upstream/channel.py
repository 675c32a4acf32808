"""Pull-based channel between the upstream fragment stream and one consumer.

A producer task pulls from the upstream iterator only when the consumer asks
for the next fragment, so at most one fragment is ever held ahead of the
consumer. Closing the channel cancels the producer and the request's
cancellation token.
"""

import asyncio
import contextlib
from collections.abc import AsyncIterator
from dataclasses import dataclass

from lm_gateway.platform.upstream.cancellation import CancellationToken
from lm_gateway.platform.upstream.messages import ResponseFragment

_END = object()


@dataclass(frozen=True)
class _Failure:
    exc: Exception


class FragmentChannel:
    """Single-consumer async iterator over upstream response fragments."""

    def __init__(
        self,
        source: AsyncIterator[ResponseFragment],
        cancellation: CancellationToken,
    ):
        self._source = source
        self._cancellation = cancellation
        self._demand = asyncio.Semaphore(0)
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=1)
        self._producer: asyncio.Task[None] | None = None
        self._finished = False

    @property
    def finished(self) -> bool:
        """True once the upstream sequence ended, failed, or the channel was closed."""
        return self._finished

    def __aiter__(self) -> "FragmentChannel":
        return self

    async def __anext__(self) -> ResponseFragment:
        if self._finished:
            raise StopAsyncIteration
        if self._producer is None:
            self._producer = asyncio.create_task(self._produce())

        self._demand.release()
        item = await self._queue.get()

        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finished = True
            raise item.exc
        return item  # type: ignore[return-value]

    async def _produce(self) -> None:
        try:
            while True:
                await self._demand.acquire()
                try:
                    fragment = await anext(self._source)
                except StopAsyncIteration:
                    await self._queue.put(_END)
                    return
                await self._queue.put(fragment)
        except Exception as exc:
            await self._queue.put(_Failure(exc))

    async def aclose(self) -> None:
        """Stop pulling from upstream.

        If the upstream sequence had not finished, the cancellation token is
        signalled so the backend can abandon the call.
        """
        if not self._finished:
            self._cancellation.cancel()
        self._finished = True

        if self._producer is not None and not self._producer.done():
            self._producer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._producer
