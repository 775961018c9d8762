import asyncio
import inspect
from typing import Any, Callable
from datetime import datetime, timezone
from loguru import logger

def make_subscription_stats() -> dict:
    """
    Returns a fresh stats dictionary with zeroed counters.
    Every Subscription calls this once in __init__.
    Keys: messages_received, empty_polls, poll_errors,
          last_message_at, started_at.
    """
    return {
        "messages_received": 0,
        "empty_polls": 0,
        "poll_errors": 0,
        "last_message_at": None,
        "started_at": datetime.now(timezone.utc).isoformat()
    }

def mark_message(stats: dict) -> None:
    stats["messages_received"] += 1
    stats["last_message_at"] = datetime.now(timezone.utc).isoformat()

async def pause_unless_stopped(stopped: asyncio.Event, delay_s: float) -> bool:
    """
    Sleeps for `delay_s` but wakes up early if `stopped` gets set.
    Returns True when the pause was cut short by a stop request.
    """
    try:
        await asyncio.wait_for(stopped.wait(), timeout=delay_s)
        return True
    except asyncio.TimeoutError:
        return False

async def call_maybe_async(fn: Callable[..., Any], *args: Any) -> Any:
    """Calls a sync or async callable and awaits the result when needed."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result

async def safe_invoke(fn: Callable[..., Any], *args: Any, label: str = "callback") -> None:
    """
    Runs a consumer-supplied callback. A failing consumer is logged, never
    allowed to break the loop that called it.
    """
    try:
        await call_maybe_async(fn, *args)
    except Exception as e:
        logger.error(f"Error in {label} during dispatch: {e!r}")
