"""
MODULE OVERVIEW:
Application-wide configuration using Pydantic Settings.

WHAT IS HAPPENING HERE:
Keys, origin, identity and every protocol timing live here. The long-poll client
timeout must stay ABOVE the server's hold time (PubNub holds a subscribe for ~300s),
otherwise a healthy idle channel would look like a failing one.
Values come from the environment or a local `.env` file.
"""
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    LOG_LEVEL: str = "INFO"

    # Credentials & identity. "demo" is PubNub's public demo keyset.
    PUBNUB_PUBLISH_KEY: str = "demo"
    PUBNUB_SUBSCRIBE_KEY: str = "demo"
    PUBNUB_ORIGIN: str = "ps.pndsn.com"
    PUBNUB_USER_ID: str = "user-default"
    PUBNUB_AUTH_KEY: str | None = None
    PUBNUB_SECURE: bool = True

    # Subscribe long poll: server hold (~300s) + margin
    SUBSCRIBE_TIMEOUT_S: float = 310.0

    # Publish / signal one-shot calls
    REQUEST_TIMEOUT_S: float = 10.0

    # Fixed pause after a failed poll
    RETRY_DELAY_S: float = 1.0

    # Local development origin
    PORT: int = 8000
    LONG_POLL_TIMEOUT_S: float = 30.0

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'

settings = Settings()
