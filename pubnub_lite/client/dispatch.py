"""
MODULE OVERVIEW:
Delivery of decoded messages to consumers.

WHAT IS HAPPENING HERE:
A subscription can be consumed two ways, and both may be active at once:

  PUSH  - one replaceable handler (gets the payload) plus a list of listeners
          (get the full `Message` record). Each is awaited before the next message,
          so a slow consumer slows the poll loop instead of piling up messages.
  PULL  - `async for payload in subscription`. Backed by an unbounded queue that
          only starts collecting on the iterator's first request.

This is explicit fan-out: with both modes active, every message reaches both.
Pick one mode per subscription if you want single delivery.
"""
import asyncio
from typing import Any, Callable

from pubnub_lite.shared.client_utils import safe_invoke
from pubnub_lite.shared.models import Message, Payload

PayloadHandler = Callable[[Payload], Any]
MessageListener = Callable[[Message], Any]

_CLOSED = object()


class MessageStream:
    """Lazy, potentially infinite, non-restartable sequence of payloads."""

    def __init__(self):
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._armed = False
        self._finished = False

    def __aiter__(self) -> "MessageStream":
        return self

    async def __anext__(self) -> Payload:
        if self._finished:
            raise StopAsyncIteration
        self._armed = True
        item = await self._queue.get()
        if item is _CLOSED:
            self._finished = True
            raise StopAsyncIteration
        return item

    def feed(self, payload: Payload) -> None:
        # Messages that arrive before anyone asked are not this stream's business
        if self._armed and not self._finished:
            self._queue.put_nowait(payload)

    def close(self) -> None:
        self._queue.put_nowait(_CLOSED)


class MessageDispatcher:
    def __init__(self, handler: PayloadHandler | None = None, label: str = "subscription"):
        self._handler = handler
        self._listeners: list[MessageListener] = []
        self._stream: MessageStream | None = None
        self._closed = False
        self.label = label

    def set_handler(self, handler: PayloadHandler | None) -> None:
        self._handler = handler

    def add_listener(self, listener: MessageListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def stream(self) -> MessageStream:
        if self._stream is None:
            self._stream = MessageStream()
            if self._closed:
                self._stream.close()
        return self._stream

    async def dispatch(self, message: Message) -> None:
        if self._closed:
            return
        if self._handler is not None:
            await safe_invoke(self._handler, message.payload, label=f"{self.label} handler")
        # Copy: a listener may remove itself while we iterate
        for listener in list(self._listeners):
            await safe_invoke(listener, message, label=f"{self.label} listener")
        if self._stream is not None:
            self._stream.feed(message.payload)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._stream is not None:
            self._stream.close()
