import asyncio

import httpx
import pytest

from conftest import wait_until
from pubnub_lite.client.http import HttpxTransport
from pubnub_lite.client.pubnub_client import PubNubClient
from pubnub_lite.server.channel_hub import ChannelHub
from pubnub_lite.server.main import create_app
from pubnub_lite.shared.models import ClientConfig
from pubnub_lite.trigger import PubNubTrigger


def local_client(app):
    http = HttpxTransport(httpx.AsyncClient(transport=httpx.ASGITransport(app=app)))
    config = ClientConfig(
        subscribe_key="sub-c-dev",
        publish_key="pub-c-dev",
        origin="testserver",
        secure=False,
        user_id="dev-user",
        retry_delay_s=0.05,
    )
    return PubNubClient(config, http)


def test_hub_timetokens_strictly_increase():
    hub = ChannelHub()
    handshake = hub.current_timetoken()
    first = hub.publish("a", 1, publisher="p")
    second = hub.publish("a", 2, publisher="p")

    assert handshake < first < second
    assert [r["d"] for r in hub.messages_after({"a"}, handshake)] == [1, 2]
    assert [r["d"] for r in hub.messages_after({"a"}, first)] == [2]
    assert hub.messages_after({"b"}, handshake) == []


@pytest.mark.asyncio
async def test_publish_then_receive_end_to_end():
    app = create_app()
    client = local_client(app)
    seen = []
    subscription = client.subscribe("room-1", handler=seen.append)
    await wait_until(lambda: subscription.cursor.timetoken != "0", timeout=2.0)

    result = await client.publish("room-1", {"text": "hi"}, {"a": 1})
    await wait_until(lambda: seen == [{"text": "hi"}], timeout=2.0)

    assert result[0] == 1 and result[1] == "Sent"
    assert subscription.cursor.timetoken == result[2]
    assert subscription.poll_errors == 0

    await client.aclose()
    await client.http.client.aclose()


@pytest.mark.asyncio
async def test_multi_channel_poll_and_signal_records():
    app = create_app()
    client = local_client(app)
    emitted = []
    trigger = PubNubTrigger(client, "room-1", emit=emitted.extend, include_meta=True)
    combined = client.subscribe(["room-1", "room-2"])
    received = []
    combined.add_listener(received.append)

    trigger.start()
    await wait_until(lambda: all(s.cursor.timetoken != "0" for s in trigger.subscriptions + [combined]), timeout=2.0)

    await client.publish("room-2", "elsewhere")
    await client.signal("room-1", "typing-indicator-with-a-very-long-name")
    await wait_until(lambda: len(received) == 2 and len(emitted) == 1, timeout=2.0)

    assert sorted(m.channel for m in received) == ["room-1", "room-2"]
    record = emitted[0]
    assert record["event"] == "signal"
    assert record["channel"] == "room-1"
    assert record["message"] == "typing-indicator-with-a-very-l"
    assert record["publisher"] == "dev-user"
    assert "metadata" not in record

    await trigger.close()
    await client.aclose()
    await client.http.client.aclose()


@pytest.mark.asyncio
async def test_idle_poll_returns_same_cursor():
    app = create_app()
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as http:
        handshake = (await http.get("/v2/subscribe/sub/room-1/0", params={"tt": "0"})).json()
        cursor = handshake["t"]["t"]
        assert handshake["m"] == []

        idle = await http.get("/v2/subscribe/sub/room-1/0", params={"tt": cursor, "hold_s": 0.05})
        assert idle.json() == {"t": {"t": cursor, "r": 1}, "m": []}

        bad = await http.get("/v2/subscribe/sub/room-1/0", params={"tt": "yesterday"})
        assert bad.status_code == 400


@pytest.mark.asyncio
async def test_stats_and_health():
    app = create_app()
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as http:
        await http.post("/publish/pub/sub/0/room-1/0", content=b'"hello"')
        await http.post("/publish/pub/sub/0/room-1/0", content=b"{broken")

        stats = (await http.get("/stats")).json()
        health = (await http.get("/healthz")).json()

    assert stats["total_published"] == 1
    assert stats["channels"] == 1
    assert health == {"status": "ok"}


@pytest.mark.asyncio
async def test_release_all_answers_held_polls():
    hub = ChannelHub()
    app = create_app(hub)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as http:
        cursor = (await http.get("/v2/subscribe/sub/room-1/0", params={"tt": "0"})).json()["t"]["t"]
        held = asyncio.create_task(http.get("/v2/subscribe/sub/room-1/0", params={"tt": cursor, "hold_s": 30}))
        await wait_until(lambda: len(hub.poll_waiters) == 1)

        hub.release_all()
        response = await asyncio.wait_for(held, timeout=1.0)

    assert response.json()["m"] == []
    assert hub.poll_waiters == {}
