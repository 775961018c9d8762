"""
CLI entrypoint for pubnub-lite.
"""
import asyncio
import json
import sys

import typer
from loguru import logger

from pubnub_lite.client.pubnub_client import PubNubClient
from pubnub_lite.client.visualizer import Visualizer
from pubnub_lite.shared.config import settings

app = typer.Typer(help="pubnub-lite: long-poll subscribe, publish and signal over raw HTTP")

LocalOption = typer.Option(False, "--local", help="Talk to the development origin on 127.0.0.1 instead of PubNub")


def _configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL.upper())


def _make_client(local: bool) -> PubNubClient:
    if local:
        return PubNubClient.from_settings(origin=f"127.0.0.1:{settings.PORT}", secure=False)
    return PubNubClient.from_settings()


def _parse_json(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


@app.callback()
def main():
    _configure_logging()


@app.command()
def server():
    """Start the development origin using Uvicorn."""
    import uvicorn
    typer.echo(f"Starting development origin on port {settings.PORT}...")
    uvicorn.run("pubnub_lite.server.main:app", host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


@app.command()
def subscribe(
    channels: str = typer.Argument(..., help="Comma-separated channels, one poll loop each"),
    duration: float = typer.Option(60.0, help="How long to stay subscribed, in seconds"),
    timetoken: str = typer.Option("0", help="Start from this timetoken"),
    filter_expr: str = typer.Option("", "--filter", help="Server-side filter expression"),
    plain: bool = typer.Option(False, "--plain", help="Print one JSON line per message instead of the dashboard"),
    local: bool = LocalOption,
):
    """Subscribe to channels and watch messages arrive."""
    names = [c.strip() for c in channels.split(",") if c.strip()]
    if not names:
        typer.echo("At least one channel is required.")
        raise typer.Exit(1)

    async def run() -> None:
        async with _make_client(local) as client:
            subscriptions = [
                client.subscribe(name, timetoken=timetoken, filter_expr=filter_expr or None)
                for name in names
            ]
            if plain:
                for s in subscriptions:
                    s.set_handler(lambda payload, channel=s.channel: typer.echo(json.dumps({"channel": channel, "message": payload})))
                await asyncio.sleep(duration)
            else:
                await Visualizer(subscriptions).run(duration)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


@app.command()
def publish(
    channel: str = typer.Argument(...),
    message: str = typer.Argument(..., help="JSON value, or plain text"),
    meta: str = typer.Option("", help="JSON object sent as message metadata"),
    local: bool = LocalOption,
):
    """Publish one message."""
    metadata = json.loads(meta) if meta else None

    async def run():
        async with _make_client(local) as client:
            return await client.publish(channel, _parse_json(message), metadata)

    result = asyncio.run(run())
    typer.echo(result)
    if not result:
        raise typer.Exit(1)


@app.command()
def signal(
    channel: str = typer.Argument(...),
    message: str = typer.Argument(..., help="Truncated to 30 characters"),
    local: bool = LocalOption,
):
    """Send one signal."""
    async def run():
        async with _make_client(local) as client:
            return await client.signal(channel, message)

    result = asyncio.run(run())
    typer.echo(result)
    if not result:
        raise typer.Exit(1)


@app.command()
def stats():
    """Query the development origin for live stats."""
    import httpx
    resp = httpx.get(f"http://127.0.0.1:{settings.PORT}/stats")
    typer.echo(resp.json())


if __name__ == "__main__":
    app()
