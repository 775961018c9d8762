"""
MODULE OVERVIEW:
The strictly typed data structures shared by the encoder, the poll loop, the
trigger adapter and the local development origin, powered by Pydantic v2.

WHAT IS HAPPENING HERE:
PubNub's wire format uses one-letter keys (`t`, `r`, `m`, `d`, `c`...). We keep
those as aliases so `Envelope.model_validate(response_json)` parses a raw subscribe
response directly, while the rest of the code reads descriptive attribute names.
"""
import json
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator

from pubnub_lite.shared.config import Settings

# Any JSON value: str, int, float, bool, None, list, or str-keyed dict (recursively)
Payload = Any

# WHAT IS HAPPENING HERE:
# The resume point of one poll stream. The server dictates every new value; the
# client only ever replays what it was last given.
class Cursor(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timetoken: str = Field("0", alias="t")
    region: str | None = Field(None, alias="r")

    @field_validator("timetoken", mode="before")
    @classmethod
    def _timetoken_as_str(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("region", mode="before")
    @classmethod
    def _region_as_str(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)


# One element of the `m` array in a subscribe response.
class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payload: Payload = Field(None, alias="d")
    channel: str | None = Field(None, alias="c")
    subscription: str | None = Field(None, alias="b")
    publisher: str | None = Field(None, alias="i")
    metadata: Payload = Field(None, alias="u")
    message_type: int | None = Field(None, alias="e")
    published: Cursor | None = Field(None, alias="p")

    @property
    def is_signal(self) -> bool:
        return self.message_type == 1

    @property
    def timetoken(self) -> str | None:
        return self.published.timetoken if self.published else None


# WHAT IS HAPPENING HERE:
# A decoded subscribe response. `t` is mandatory: an envelope without a cursor is
# malformed and must not move the subscription anywhere.
class Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cursor: Cursor = Field(alias="t")
    messages: list[Message] = Field(default_factory=list, alias="m")

    @field_validator("cursor")
    @classmethod
    def _cursor_has_timetoken(cls, cursor: Cursor) -> Cursor:
        # `{"t": {}}` or `{"t": {"r": 3}}` would otherwise decode to "0" and rewind the stream
        if "timetoken" not in cursor.model_fields_set or not cursor.timetoken:
            raise ValueError("cursor carries no timetoken")
        return cursor


# What the host HTTP primitive receives. `query` stays separate from `url` so the
# primitive owns query-string encoding.
class HttpRequest(BaseModel):
    method: Literal["GET", "POST"]
    url: str
    query: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeout: float | None = None


class ClientConfig(BaseModel):
    """Immutable connection settings shared by a client and every subscription it makes.

    Per-call overrides never touch a shared instance; use `with_overrides`, which
    returns a copy.
    """
    model_config = ConfigDict(frozen=True)

    subscribe_key: str | None = None
    publish_key: str | None = None
    origin: str = "ps.pndsn.com"
    user_id: str = "user-default"
    auth_key: str | None = None
    secure: bool = True
    subscribe_timeout_s: float = 310.0
    request_timeout_s: float = 10.0
    retry_delay_s: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClientConfig":
        return cls(
            subscribe_key=settings.PUBNUB_SUBSCRIBE_KEY,
            publish_key=settings.PUBNUB_PUBLISH_KEY,
            origin=settings.PUBNUB_ORIGIN,
            user_id=settings.PUBNUB_USER_ID,
            auth_key=settings.PUBNUB_AUTH_KEY,
            secure=settings.PUBNUB_SECURE,
            subscribe_timeout_s=settings.SUBSCRIBE_TIMEOUT_S,
            request_timeout_s=settings.REQUEST_TIMEOUT_S,
            retry_delay_s=settings.RETRY_DELAY_S,
        )

    def with_overrides(self, **overrides: Any) -> "ClientConfig":
        updates = {k: v for k, v in overrides.items() if v is not None}
        return self.model_copy(update=updates) if updates else self

    @property
    def base_url(self) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.origin}"


# One row of a batch send (see pubnub_lite.batch).
class OutboundItem(BaseModel):
    channel: str
    message: Payload = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_from_json(cls, value: Any) -> Any:
        # Hosts often hand metadata over as a JSON string typed into a form field
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value or {}


class HubStats(BaseModel):
    channels: int
    stored_messages: int
    pending_polls: int
    total_published: int
    uptime_s: float
