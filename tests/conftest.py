import asyncio
from collections import deque

import pytest

from pubnub_lite.shared.models import ClientConfig, HttpRequest


def envelope(timetoken, *payloads, region=1, channel="room-1"):
    """A subscribe response as the server would send it."""
    return {
        "t": {"t": timetoken, "r": region},
        "m": [{"d": payload, "c": channel} for payload in payloads],
    }


class ScriptedHttp:
    """
    Fake HTTP primitive.

    Subscribe polls are answered from `script`, one step per poll. A step is a
    response body, an exception instance (raised), or an async callable (awaited,
    then treated as a step). Once the script runs out, polls either hang like an
    idle long poll (`after=None`) or keep producing `after`.
    Publish/signal calls get `reply` (raised when it is an exception).
    """

    def __init__(self, script=(), after=None, reply=None):
        self.script = deque(script)
        self.after = after
        self.reply = reply
        self.calls: list[HttpRequest] = []

    @property
    def polls(self) -> list[HttpRequest]:
        return [c for c in self.calls if "/v2/subscribe/" in c.url]

    async def __call__(self, request: HttpRequest):
        self.calls.append(request)
        if "/v2/subscribe/" not in request.url:
            return self._resolve(self.reply)

        if self.script:
            step = self.script.popleft()
        elif self.after is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(0.01)
            step = self.after

        if callable(step):
            step = await step()
        return self._resolve(step)

    @staticmethod
    def _resolve(step):
        if isinstance(step, BaseException):
            raise step
        return step


async def wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def config():
    return ClientConfig(
        subscribe_key="sub-c-test",
        publish_key="pub-c-test",
        user_id="tester",
        retry_delay_s=0.05,
    )
