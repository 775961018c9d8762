import asyncio

import pytest

from conftest import ScriptedHttp, wait_until
from pubnub_lite.client.pubnub_client import PubNubClient
from pubnub_lite.shared.errors import ConfigurationError
from pubnub_lite.shared.models import Message
from pubnub_lite.trigger import PubNubTrigger, message_record, parse_channels


def wire(channel, payload, **extra):
    return {"c": channel, "d": payload, "i": "publisher-1", "p": {"t": "170", "r": 1}, **extra}


class ChannelScriptedHttp(ScriptedHttp):
    """Routes each poll to a per-channel script."""

    def __init__(self, scripts):
        super().__init__()
        self.scripts = {name: list(steps) for name, steps in scripts.items()}

    async def __call__(self, request):
        self.calls.append(request)
        channel = request.url.split("/")[-2]
        steps = self.scripts.get(channel)
        if not steps:
            await asyncio.Event().wait()
        step = steps.pop(0)
        if callable(step):
            step = await step()
        return step


def test_parse_channels_trims_and_drops_empties():
    assert parse_channels(" a, b ,,c ") == ["a", "b", "c"]
    assert parse_channels("") == []


def test_message_record_shapes():
    message = Message.model_validate(wire("room-1", {"x": 1}, u={"lang": "en"}, b="room-*"))

    assert message_record(message, "room-1") == {
        "event": "message",
        "channel": "room-1",
        "subscription": "room-*",
        "message": {"x": 1},
        "timetoken": "170",
        "publisher": "publisher-1",
    }
    assert message_record(message, "room-1", include_meta=True)["metadata"] == {"lang": "en"}

    signal = Message.model_validate(wire("room-1", "typing", e=1, u={"lang": "en"}))
    assert message_record(signal, "room-1")["event"] == "signal"
    assert "metadata" not in message_record(signal, "room-1", include_meta=True)


def test_trigger_requires_a_channel(config):
    with pytest.raises(ConfigurationError):
        PubNubTrigger(PubNubClient(config, ScriptedHttp()), " , ", emit=print)


@pytest.mark.asyncio
async def test_one_loop_per_channel_emitting_records(config):
    http = ChannelScriptedHttp({
        "alpha": [{"t": {"t": "10", "r": 1}, "m": [wire("alpha", "a1"), wire("alpha", "a2")]}],
        "beta": [{"t": {"t": "20", "r": 1}, "m": [wire("beta", "b1", e=1)]}],
    })
    emitted = []
    trigger = PubNubTrigger(
        PubNubClient(config, http),
        "alpha, beta",
        emit=emitted.append,
        timetoken="5",
        filter_expression="uuid != 'me'",
    )

    subscriptions = trigger.start()
    await wait_until(lambda: len(emitted) == 3)

    assert [s.channel for s in subscriptions] == ["alpha", "beta"]
    assert all(len(batch) == 1 for batch in emitted)
    records = [batch[0] for batch in emitted]
    assert [r["message"] for r in records if r["channel"] == "alpha"] == ["a1", "a2"]
    assert [r["event"] for r in records if r["channel"] == "beta"] == ["signal"]
    first_polls = [p for p in http.polls if p.query["tt"] == "5"]
    assert len(first_polls) == 2
    assert all(p.query["filter-expr"] == "uuid != 'me'" for p in first_polls)

    await trigger.close()
    assert all(s.state == "stopped" for s in subscriptions)
    assert trigger.subscriptions == []
    await wait_until(lambda: trigger.client.subscriptions == set())


@pytest.mark.asyncio
async def test_async_emit_is_awaited(config):
    http = ChannelScriptedHttp({"alpha": [{"t": {"t": "10"}, "m": [wire("alpha", "hi")]}]})
    emitted = []

    async def emit(records):
        await asyncio.sleep(0)
        emitted.extend(records)

    trigger = PubNubTrigger(PubNubClient(config, http), "alpha", emit=emit)
    trigger.start()
    await wait_until(lambda: len(emitted) == 1)

    assert emitted[0]["message"] == "hi"
    await trigger.close()


@pytest.mark.asyncio
async def test_manual_trigger_returns_after_first_message(config):
    gate = asyncio.Event()

    async def held():
        await gate.wait()
        return {"t": {"t": "10"}, "m": [wire("alpha", "first")]}

    http = ChannelScriptedHttp({"alpha": [held]})
    emitted = []
    trigger = PubNubTrigger(PubNubClient(config, http), "alpha", emit=emitted.append)

    waiting = asyncio.create_task(trigger.manual_trigger(timeout_s=5.0))
    await asyncio.sleep(0.01)
    gate.set()
    await asyncio.wait_for(waiting, timeout=1.0)

    assert emitted == [[message_record(Message.model_validate(wire("alpha", "first")), "alpha")]]
    await trigger.close()


@pytest.mark.asyncio
async def test_manual_trigger_times_out_quietly(config):
    trigger = PubNubTrigger(PubNubClient(config, ScriptedHttp()), "alpha", emit=print)

    await trigger.manual_trigger(timeout_s=0.05)

    assert len(trigger.subscriptions) == 1
    await trigger.close()
