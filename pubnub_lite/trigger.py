"""
MODULE OVERVIEW:
Adapter between the transport and a host that runs workflows on incoming messages.

WHAT IS HAPPENING HERE:
The host gives us three things: a comma-separated channel list typed by a user,
an `emit(records)` function, and a promise to call `close()` exactly once on
teardown. We open one subscription per channel (independent loops, independent
cursors), turn every received message into a flat record and emit it.
"""
import asyncio
from typing import Any, Callable

from loguru import logger

from pubnub_lite.client.pubnub_client import PubNubClient
from pubnub_lite.client.subscription import Subscription
from pubnub_lite.shared.client_utils import call_maybe_async
from pubnub_lite.shared.errors import ConfigurationError
from pubnub_lite.shared.models import Message

Emit = Callable[[list[dict[str, Any]]], Any]


def parse_channels(channels: str) -> list[str]:
    return [c.strip() for c in (channels or "").split(",") if c.strip()]


def message_record(message: Message, channel: str, include_meta: bool = False) -> dict[str, Any]:
    record = {
        "event": "signal" if message.is_signal else "message",
        "channel": message.channel or channel,
        "subscription": message.subscription,
        "message": message.payload,
        "timetoken": message.timetoken,
        "publisher": message.publisher,
    }
    if include_meta and message.metadata and not message.is_signal:
        record["metadata"] = message.metadata
    return record


class PubNubTrigger:
    def __init__(
        self,
        client: PubNubClient,
        channels: str,
        emit: Emit,
        *,
        timetoken: str | None = None,
        filter_expression: str | None = None,
        include_meta: bool = False,
    ):
        self.channels = parse_channels(channels)
        if not self.channels:
            raise ConfigurationError("You must specify at least one channel")
        self.client = client
        self.emit = emit
        self.timetoken = timetoken or None
        self.filter_expression = filter_expression or None
        self.include_meta = include_meta
        self.subscriptions: list[Subscription] = []

    def start(self) -> list[Subscription]:
        if self.subscriptions:
            return self.subscriptions
        for channel in self.channels:
            subscription = self.client.subscribe(
                channel,
                timetoken=self.timetoken,
                filter_expr=self.filter_expression,
            )
            subscription.add_listener(self._listener_for(channel))
            self.subscriptions.append(subscription)
        logger.info(f"event=trigger_start channels={','.join(self.channels)}")
        return self.subscriptions

    def _listener_for(self, channel: str):
        async def on_message(message: Message) -> None:
            await call_maybe_async(self.emit, [message_record(message, channel, self.include_meta)])
        return on_message

    async def manual_trigger(self, timeout_s: float = 30.0) -> None:
        """Block until the first message on any channel has been emitted, or until timeout."""
        if not self.subscriptions:
            self.start()
        first: asyncio.Future = asyncio.get_running_loop().create_future()

        def capture(message: Message) -> None:
            if not first.done():
                first.set_result(message)

        for subscription in self.subscriptions:
            subscription.add_listener(capture)
        try:
            await asyncio.wait_for(first, timeout=timeout_s)
        except asyncio.TimeoutError:
            logger.info(f"event=manual_trigger_timeout timeout={timeout_s}s")
        finally:
            for subscription in self.subscriptions:
                subscription.remove_listener(capture)

    async def close(self) -> None:
        """Teardown hook: cancel every subscription this trigger opened."""
        logger.info(f"event=trigger_close channels={','.join(self.channels)}")
        for subscription in self.subscriptions:
            subscription.cancel()
        await asyncio.gather(*(s.aclose() for s in self.subscriptions), return_exceptions=True)
        self.subscriptions = []
