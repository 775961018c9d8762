from pubnub_lite.client.pubnub_client import PubNubClient, SendFailure
from pubnub_lite.client.subscription import Subscription

__all__ = ["PubNubClient", "SendFailure", "Subscription"]
