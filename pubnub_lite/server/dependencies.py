from fastapi import Request

from pubnub_lite.server.channel_hub import ChannelHub


def get_hub(request: Request) -> ChannelHub:
    return request.app.state.hub
