"""
MODULE OVERVIEW:
The FastAPI application factory for the local development origin.

WHAT IS HAPPENING HERE:
A stand-in for PubNub's REST surface, good enough to run the client end to end
without a network. Each app owns its own ChannelHub (so tests never share state).
On shutdown the lifespan releases every held subscribe so Uvicorn can exit
without waiting out the long-poll hold time.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from pubnub_lite.server.channel_hub import ChannelHub
from pubnub_lite.server.routes import publish, subscribe


def create_app(hub: ChannelHub | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # STARTUP
        logger.info("Development origin starting up...")

        yield

        # SHUTDOWN
        logger.info(f"Shutting down. Releasing {len(app.state.hub.poll_waiters)} held subscribe(s)...")
        app.state.hub.release_all()
        logger.info("Shutdown complete.")

    app = FastAPI(
        title="pubnub-lite development origin",
        description="In-memory stand-in for the PubNub publish/signal/subscribe REST API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.hub = hub or ChannelHub()

    app.include_router(publish.router, tags=["Messages"])
    app.include_router(subscribe.router, tags=["Messages"])

    @app.get("/healthz", tags=["Ops"])
    async def health_check():
        return {"status": "ok"}

    @app.get("/stats", tags=["Ops"])
    async def get_stats():
        return app.state.hub.get_stats()

    return app


app = create_app()
