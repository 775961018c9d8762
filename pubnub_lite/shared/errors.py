"""
Exception hierarchy shared by the encoder, the HTTP transport and the poll loop.

The long-poll engine only needs one distinction: `RequestTimeout` means the poll
window elapsed with no data (expected, retry immediately); every other
`TransportError` means back off before polling again.
"""


class PubNubError(Exception):
    """Base class for every error raised by pubnub_lite."""


class ConfigurationError(PubNubError, ValueError):
    """Missing keys, channels or HTTP primitive. Raised before any network call."""


class TransportError(PubNubError):
    """The HTTP call failed: network error, error status, unreadable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RequestTimeout(TransportError):
    """The client-side timeout fired before the server answered."""


class MalformedResponse(TransportError):
    """The body was not JSON, or not shaped like a subscribe envelope."""


class OperationError(PubNubError):
    """A batch send failed and the caller asked not to continue."""

    def __init__(self, message: str, item_index: int, cause: BaseException | None = None):
        super().__init__(message)
        self.item_index = item_index
        self.cause = cause
