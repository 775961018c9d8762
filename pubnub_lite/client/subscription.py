"""
MODULE OVERVIEW:
The long-poll subscribe engine and the public Subscription handle.

WHAT IS HAPPENING HERE:
One asyncio task per subscription runs:

    poll (held open by the server) -> decode envelope -> move cursor -> dispatch -> repeat

Our client timeout is deliberately HIGHER than the server's hold time (Server~300s,
Client=310s). An idle channel therefore comes back as an empty envelope, and the
rare client-side timeout is treated the same way: loop again immediately.
Anything else (network drop, 5xx, garbage body) keeps the cursor where it was and
pauses for a fixed delay so a broken channel does not hot-loop.

The cursor moves BEFORE dispatch. If a consumer blows up mid-envelope, the next
poll still starts after that envelope and nothing gets delivered twice.
"""
import asyncio
from typing import Any, Callable, Iterable, Literal

from loguru import logger
from pydantic import ValidationError

from pubnub_lite.client.dispatch import MessageDispatcher, MessageListener, MessageStream, PayloadHandler
from pubnub_lite.client.encoder import build_subscribe_request, join_channels
from pubnub_lite.client.http import HttpCall
from pubnub_lite.shared.client_utils import make_subscription_stats, mark_message, pause_unless_stopped
from pubnub_lite.shared.errors import MalformedResponse, RequestTimeout
from pubnub_lite.shared.models import ClientConfig, Cursor, Envelope

SubscriptionState = Literal["active", "stopped"]


def decode_envelope(body: object) -> Envelope:
    try:
        return Envelope.model_validate(body)
    except ValidationError as e:
        raise MalformedResponse(f"Subscribe response without a usable cursor: {e.error_count()} error(s)") from e


class Subscription:
    def __init__(
        self,
        config: ClientConfig,
        http: HttpCall,
        channels: str | Iterable[str],
        *,
        timetoken: str = "0",
        region: str | None = None,
        filter_expr: str | None = None,
        handler: PayloadHandler | None = None,
    ):
        self.config = config
        self.http = http
        self.channel = join_channels(channels)
        self.filter_expr = filter_expr or None

        self._cursor = Cursor(timetoken=timetoken or "0", region=region)
        # Encode once up front so a bad config fails here, not inside the retry loop
        build_subscribe_request(config, self.channel, self._cursor, self.filter_expr)
        self._state: SubscriptionState = "active"
        self._stopped = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._done_callbacks: list[Callable[["Subscription"], Any]] = []
        self.dispatcher = MessageDispatcher(handler, label=f"channel={self.channel}")
        self.stats = make_subscription_stats()

    def __repr__(self) -> str:
        return f"<Subscription channel={self.channel!r} state={self._state} tt={self._cursor.timetoken}>"

    # ==========================
    # STATE
    # ==========================
    @property
    def cursor(self) -> Cursor:
        return self._cursor

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state == "active"

    @property
    def messages_received(self): return self.stats["messages_received"]

    @property
    def empty_polls(self): return self.stats["empty_polls"]

    @property
    def poll_errors(self): return self.stats["poll_errors"]

    # ==========================
    # CONSUMERS
    # ==========================
    def set_handler(self, handler: PayloadHandler | None) -> None:
        """Replace the push handler. Takes effect from the next dispatched message."""
        self.dispatcher.set_handler(handler)

    def add_listener(self, listener: MessageListener) -> None:
        self.dispatcher.add_listener(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        self.dispatcher.remove_listener(listener)

    def __aiter__(self) -> MessageStream:
        return self.dispatcher.stream()

    # ==========================
    # LIFECYCLE
    # ==========================
    def start(self) -> "Subscription":
        """Spawn the poll task. Must be called from a running event loop; idempotent."""
        if self._task is None and self.active:
            self._task = asyncio.create_task(self._run(), name=f"pubnub-subscribe:{self.channel}")
            self._task.add_done_callback(self._finished)
            logger.info(f"channel={self.channel} event=subscribe tt={self._cursor.timetoken}")
        return self

    def cancel(self) -> None:
        """
        Stop polling. Safe to call any number of times. A poll already in flight is
        not interrupted, but whatever it returns is thrown away.
        """
        if self._state == "stopped":
            return
        self._state = "stopped"
        self._stopped.set()
        self.dispatcher.close()
        logger.info(f"channel={self.channel} event=unsubscribe tt={self._cursor.timetoken}")
        if self._task is None:
            self._finished()

    def add_done_callback(self, callback: Callable[["Subscription"], Any]) -> None:
        """Run `callback(subscription)` once the poll task has exited, or on cancel if it never started."""
        self._done_callbacks.append(callback)

    def _finished(self, _task: asyncio.Task | None = None) -> None:
        callbacks, self._done_callbacks = self._done_callbacks, []
        for callback in callbacks:
            callback(self)

    async def wait_closed(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel and wait for the poll task to finish, aborting an in-flight poll."""
        self.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        await self.wait_closed()

    async def __aenter__(self) -> "Subscription":
        return self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ==========================
    # POLL LOOP
    # ==========================
    async def poll_once(self) -> Envelope:
        request = build_subscribe_request(self.config, self.channel, self._cursor, self.filter_expr)
        return decode_envelope(await self.http(request))

    async def _run(self) -> None:
        try:
            while self.active:
                try:
                    envelope = await self.poll_once()
                except (RequestTimeout, TimeoutError):
                    # The long-poll window closed with nothing to say. Normal.
                    self.stats["empty_polls"] += 1
                    continue
                except Exception as e:
                    if not self.active:
                        break
                    self.stats["poll_errors"] += 1
                    logger.warning(
                        f"channel={self.channel} event=poll_error tt={self._cursor.timetoken} "
                        f"delay={self.config.retry_delay_s}s error={e!r}"
                    )
                    await pause_unless_stopped(self._stopped, self.config.retry_delay_s)
                    continue

                if not self.active:
                    break
                await self._deliver(envelope)
        except asyncio.CancelledError:
            pass
        finally:
            self.cancel()

    async def _deliver(self, envelope: Envelope) -> None:
        self._cursor = envelope.cursor
        if not envelope.messages:
            self.stats["empty_polls"] += 1
            return
        logger.debug(f"channel={self.channel} event=envelope count={len(envelope.messages)} tt={self._cursor.timetoken}")
        for message in envelope.messages:
            if not self.active:
                return
            mark_message(self.stats)
            await self.dispatcher.dispatch(message)

