"""
MODULE OVERVIEW:
The HTTP-call primitive the transport runs on, implemented with HTTPX.

WHAT IS HAPPENING HERE:
The poll loop never sees httpx exceptions. This adapter turns them into our own
taxonomy so any host-supplied primitive can be swapped in:

    httpx.ReadTimeout          -> RequestTimeout   (idle long poll, retry at once)
    other httpx.HTTPError      -> TransportError   (back off)
    non-JSON body              -> MalformedResponse (back off)
"""
from json import JSONDecodeError
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from pubnub_lite.shared.errors import MalformedResponse, RequestTimeout, TransportError
from pubnub_lite.shared.models import HttpRequest

# Anything with this shape can drive the client: the host's own helper, a test fake...
HttpCall = Callable[[HttpRequest], Awaitable[Any]]


class HttpxTransport:
    def __init__(self, client: httpx.AsyncClient | None = None):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient()

    async def __call__(self, request: HttpRequest) -> Any:
        timeout = request.timeout if request.timeout is not None else httpx.USE_CLIENT_DEFAULT
        try:
            response = await self.client.request(
                request.method,
                request.url,
                params=request.query,
                content=request.body,
                headers=request.headers,
                timeout=timeout,
            )
            response.raise_for_status()
            return response.json()
        except httpx.ReadTimeout as e:
            raise RequestTimeout(f"Timed out after {request.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"HTTP {e.response.status_code} from {request.method} {e.request.url.path}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e
        except (JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedResponse(f"Response body is not JSON: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            logger.debug("Closing owned httpx client")
            await self.client.aclose()
