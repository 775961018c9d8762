"""
MODULE OVERVIEW:
Publish and signal endpoints of the local development origin.

WHAT IS HAPPENING HERE:
Both answer the way PubNub does, `[1, "Sent", "<timetoken>"]`, so the client's
decoding path is exercised for real. A signal is stored with message type 1.
"""
import json
from json import JSONDecodeError

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from pubnub_lite.server.channel_hub import ChannelHub
from pubnub_lite.server.dependencies import get_hub

router = APIRouter()

SIGNAL_TYPE = 1


def _sent(timetoken: int) -> list:
    return [1, "Sent", str(timetoken)]


@router.post("/publish/{pub_key}/{sub_key}/0/{channel}/0")
async def publish(
    request: Request,
    pub_key: str,
    sub_key: str,
    channel: str,
    uuid: str = Query("anonymous"),
    meta: str | None = Query(None),
    hub: ChannelHub = Depends(get_hub),
):
    try:
        payload = json.loads(await request.body())
        metadata = json.loads(meta) if meta else None
    except JSONDecodeError:
        return JSONResponse([0, "Invalid JSON", "0"], status_code=400)

    timetoken = hub.publish(channel, payload, publisher=uuid, metadata=metadata)
    return _sent(timetoken)


@router.get("/signal/{pub_key}/{sub_key}/0/{channel}/0/{message:path}")
async def signal(
    pub_key: str,
    sub_key: str,
    channel: str,
    message: str,
    uuid: str = Query("anonymous"),
    hub: ChannelHub = Depends(get_hub),
):
    try:
        payload = json.loads(message)
    except JSONDecodeError:
        payload = message
    timetoken = hub.publish(channel, payload, publisher=uuid, message_type=SIGNAL_TYPE)
    return _sent(timetoken)
