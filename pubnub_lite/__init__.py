"""A hand-rolled PubNub REST client: long-poll subscribe, publish and signal over raw HTTP."""
from pubnub_lite.client.http import HttpxTransport
from pubnub_lite.client.pubnub_client import PubNubClient, SendFailure
from pubnub_lite.client.subscription import Subscription
from pubnub_lite.shared.errors import (
    ConfigurationError,
    MalformedResponse,
    OperationError,
    PubNubError,
    RequestTimeout,
    TransportError,
)
from pubnub_lite.shared.models import ClientConfig, Cursor, Envelope, HttpRequest, Message
from pubnub_lite.trigger import PubNubTrigger

__version__ = "1.0.0"

__all__ = [
    "ClientConfig",
    "ConfigurationError",
    "Cursor",
    "Envelope",
    "HttpRequest",
    "HttpxTransport",
    "MalformedResponse",
    "Message",
    "OperationError",
    "PubNubClient",
    "PubNubError",
    "PubNubTrigger",
    "RequestTimeout",
    "SendFailure",
    "Subscription",
    "TransportError",
]
