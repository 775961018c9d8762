"""
MODULE OVERVIEW:
The long-poll subscribe endpoint of the local development origin.

WHAT IS HAPPENING HERE:
The request waits on an asyncio.Event until a publish wakes it or the hold time
elapses, exactly like PubNub's own subscribe:
  - tt=0 is a handshake: answer at once with the current timetoken, no messages.
  - otherwise return everything newer than `tt` on the requested channels, or an
    empty envelope carrying the same cursor when the hold time runs out.
`filter-expr` is accepted but not evaluated here.
"""
import asyncio
import uuid as uuidlib

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from pubnub_lite.server.channel_hub import REGION, ChannelHub
from pubnub_lite.server.dependencies import get_hub
from pubnub_lite.shared.config import settings

router = APIRouter()


def _envelope(timetoken: int, messages: list) -> dict:
    return {"t": {"t": str(timetoken), "r": REGION}, "m": messages}


@router.get("/v2/subscribe/{sub_key}/{channels}/0")
async def subscribe(
    sub_key: str,
    channels: str,
    uuid: str = Query("anonymous"),
    tt: str = Query("0"),
    tr: str | None = Query(None),
    filter_expr: str | None = Query(None, alias="filter-expr"),
    hold_s: float = Query(settings.LONG_POLL_TIMEOUT_S, description="Server hold time before an empty answer"),
    hub: ChannelHub = Depends(get_hub),
):
    try:
        cursor = int(tt)
    except ValueError:
        return JSONResponse({"status": 400, "message": "Invalid timetoken"}, status_code=400)

    if cursor == 0:
        return _envelope(hub.current_timetoken(), [])

    wanted = {c for c in channels.split(",") if c}
    poll_id = f"{uuid}-{uuidlib.uuid4().hex[:8]}"
    loop = asyncio.get_running_loop()
    deadline = loop.time() + hold_s

    wake = hub.register_poll(poll_id)
    try:
        while True:
            wake.clear()
            messages = hub.messages_after(wanted, cursor)
            if messages:
                return _envelope(hub.latest_timetoken(messages, cursor), messages)

            remaining = deadline - loop.time()
            if remaining <= 0 or hub.closing:
                return _envelope(cursor, [])
            try:
                await asyncio.wait_for(wake.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                return _envelope(cursor, [])
    finally:
        hub.unregister_poll(poll_id)
