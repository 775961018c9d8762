"""
MODULE OVERVIEW:
Builds the raw HTTP requests for PubNub's REST surface.

WHAT IS HAPPENING HERE:
Three operations, three URL shapes:

    POST /publish/{pub}/{sub}/0/{channel}/0          body = JSON message
    GET  /signal/{pub}/{sub}/0/{channel}/0/{message}
    GET  /v2/subscribe/{sub}/{channels}/0            tt / tr carry the cursor

Every function here is pure: config in, `HttpRequest` out. Nothing touches the
network, so a missing key surfaces as a ConfigurationError before any I/O.
"""
import json
from typing import Any, Iterable
from urllib.parse import quote

from pubnub_lite.shared.errors import ConfigurationError
from pubnub_lite.shared.models import ClientConfig, Cursor, HttpRequest

# Signals are capped by the platform at 30 characters
SIGNAL_MAX_LENGTH = 30

JSON_HEADERS = {"Content-Type": "application/json"}


def to_json(value: Any) -> str:
    # Compact, like JSON.stringify, so `meta` and bodies match what the server expects
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def join_channels(channels: str | Iterable[str]) -> str:
    """Accepts 'a,b', ['a', 'b'] or 'a' and returns the comma list the server expects."""
    if isinstance(channels, str):
        names = channels.split(",")
    else:
        names = list(channels)
    names = [name.strip() for name in names if name and name.strip()]
    if not names:
        raise ConfigurationError("At least one channel is required")
    return ",".join(names)


def encode_segment(value: str, keep_commas: bool = False) -> str:
    return quote(value, safe="," if keep_commas else "")


def _require(config: ClientConfig, *fields: str) -> None:
    missing = [f for f in fields if not getattr(config, f)]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")


def _identity_query(config: ClientConfig) -> dict[str, str]:
    query = {"uuid": config.user_id}
    if config.auth_key:
        query["auth"] = config.auth_key
    return query


def build_publish_request(
    config: ClientConfig,
    channel: str,
    message: Any,
    metadata: dict[str, Any] | None = None,
) -> HttpRequest:
    _require(config, "publish_key", "subscribe_key")
    url = (
        f"{config.base_url}/publish/{encode_segment(config.publish_key)}"
        f"/{encode_segment(config.subscribe_key)}/0/{encode_segment(channel)}/0"
    )
    query = _identity_query(config)
    # An empty `meta` would only confuse server-side filters
    if metadata:
        query["meta"] = to_json(metadata)

    return HttpRequest(
        method="POST",
        url=url,
        query=query,
        body=to_json(message),
        headers=dict(JSON_HEADERS),
        timeout=config.request_timeout_s,
    )


def signal_text(message: Any) -> str:
    text = message if isinstance(message, str) else to_json(message)
    return text[:SIGNAL_MAX_LENGTH]


def build_signal_request(config: ClientConfig, channel: str, message: Any) -> HttpRequest:
    _require(config, "publish_key", "subscribe_key")
    url = (
        f"{config.base_url}/signal/{encode_segment(config.publish_key)}"
        f"/{encode_segment(config.subscribe_key)}/0/{encode_segment(channel)}/0"
        f"/{encode_segment(signal_text(message))}"
    )
    return HttpRequest(
        method="GET",
        url=url,
        query=_identity_query(config),
        timeout=config.request_timeout_s,
    )


def build_subscribe_request(
    config: ClientConfig,
    channels: str | Iterable[str],
    cursor: Cursor,
    filter_expr: str | None = None,
) -> HttpRequest:
    _require(config, "subscribe_key")
    channel_path = encode_segment(join_channels(channels), keep_commas=True)
    url = f"{config.base_url}/v2/subscribe/{encode_segment(config.subscribe_key)}/{channel_path}/0"

    query = {"uuid": config.user_id, "tt": cursor.timetoken}
    if cursor.region:
        query["tr"] = cursor.region
    if config.auth_key:
        query["auth"] = config.auth_key
    if filter_expr:
        query["filter-expr"] = filter_expr

    return HttpRequest(
        method="GET",
        url=url,
        query=query,
        timeout=config.subscribe_timeout_s,
    )
