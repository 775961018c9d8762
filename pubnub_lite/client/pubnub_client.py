"""
MODULE OVERVIEW:
The client factory: one immutable config + one HTTP primitive, shared by every
subscription and every publish/signal call it produces.

WHAT IS HAPPENING HERE:
Publish and signal skip the poll engine entirely: encode -> HTTP -> decoded reply.
A failed send comes back as a falsy `SendFailure` instead of an exception, so a
caller pushing a batch of items can decide per item whether to keep going.
Configuration mistakes are NOT softened that way; they raise before any I/O.
"""
import asyncio
from typing import Any, Iterable

from loguru import logger

from pubnub_lite.client.dispatch import PayloadHandler
from pubnub_lite.client.encoder import build_publish_request, build_signal_request
from pubnub_lite.client.http import HttpCall, HttpxTransport
from pubnub_lite.client.subscription import Subscription
from pubnub_lite.shared.config import Settings, settings as default_settings
from pubnub_lite.shared.errors import ConfigurationError
from pubnub_lite.shared.models import ClientConfig, HttpRequest


class SendFailure:
    """Falsy result of a publish/signal that did not go through. Keeps the cause."""

    def __init__(self, operation: str, channel: str, error: BaseException):
        self.operation = operation
        self.channel = channel
        self.error = error

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"<SendFailure {self.operation} channel={self.channel!r} error={self.error!r}>"


class PubNubClient:
    def __init__(self, config: ClientConfig, http: HttpCall):
        if not config.subscribe_key:
            raise ConfigurationError("A subscribe key is required")
        if http is None or not callable(http):
            raise ConfigurationError("An HTTP call function is required")
        self.config = config
        self.http = http
        self.subscriptions: set[Subscription] = set()

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> "PubNubClient":
        """Build a client from environment settings, talking HTTP through httpx."""
        config = ClientConfig.from_settings(settings or default_settings).with_overrides(**overrides)
        return cls(config, HttpxTransport())

    # ==========================
    # SUBSCRIBE
    # ==========================
    def subscribe(
        self,
        channels: str | Iterable[str],
        *,
        timetoken: str | None = None,
        region: str | None = None,
        filter_expr: str | None = None,
        handler: PayloadHandler | None = None,
        start: bool = True,
    ) -> Subscription:
        subscription = Subscription(
            self.config,
            self.http,
            channels,
            timetoken=timetoken or "0",
            region=region,
            filter_expr=filter_expr,
            handler=handler,
        )
        self.subscriptions.add(subscription)
        subscription.add_done_callback(self.subscriptions.discard)
        if start:
            subscription.start()
        return subscription

    # ==========================
    # ONE-SHOT SENDS
    # ==========================
    async def publish(
        self,
        channel: str,
        message: Any,
        metadata: dict[str, Any] | None = None,
        **overrides: Any,
    ) -> Any:
        config = self.config.with_overrides(**overrides)
        request = build_publish_request(config, channel, message, metadata)
        return await self._send("publish", channel, request)

    async def signal(self, channel: str, message: Any, **overrides: Any) -> Any:
        config = self.config.with_overrides(**overrides)
        request = build_signal_request(config, channel, message)
        return await self._send("signal", channel, request)

    async def _send(self, operation: str, channel: str, request: HttpRequest) -> Any:
        try:
            response = await self.http(request)
        except Exception as e:
            logger.warning(f"channel={channel} event={operation}_failed error={e!r}")
            return SendFailure(operation, channel, e)
        logger.debug(f"channel={channel} event={operation} response={response}")
        return response

    # ==========================
    # TEARDOWN
    # ==========================
    async def aclose(self) -> None:
        """Cancel every subscription this client produced and close the transport."""
        subscriptions = list(self.subscriptions)
        for subscription in subscriptions:
            subscription.cancel()
        if subscriptions:
            await asyncio.gather(*(s.aclose() for s in subscriptions), return_exceptions=True)
        self.subscriptions.clear()

        close = getattr(self.http, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "PubNubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
