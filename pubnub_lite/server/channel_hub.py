"""
MODULE OVERVIEW:
The in-memory state behind the local development origin.

WHAT IS HAPPENING HERE:
A rolling log of published messages, each stamped with a strictly increasing
timetoken (100ns ticks, like PubNub's), plus one asyncio.Event per subscribe
request currently held open. `publish()` appends to the log and `.set()`s every
waiting event; the woken requests then read whatever is newer than their cursor.
"""
import asyncio
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from pubnub_lite.shared.models import HubStats

# The dev origin has a single "region"
REGION = 1


class ChannelHub:
    def __init__(self, max_messages: int = 1000):
        # (timetoken, wire record) pairs, oldest first
        self.log: deque[tuple[int, dict[str, Any]]] = deque(maxlen=max_messages)
        self.poll_waiters: dict[str, asyncio.Event] = {}
        self.total_published = 0
        self._last_timetoken = 0
        self.closing = False
        self.startup_time = datetime.now(timezone.utc)

    def _next_timetoken(self) -> int:
        self._last_timetoken = max(time.time_ns() // 100, self._last_timetoken + 1)
        return self._last_timetoken

    def current_timetoken(self) -> int:
        # Anything published from now on must sort strictly after this value
        self._last_timetoken = max(time.time_ns() // 100, self._last_timetoken)
        return self._last_timetoken

    # ==========================
    # PUBLISH
    # ==========================
    def publish(
        self,
        channel: str,
        payload: Any,
        publisher: str,
        metadata: Any = None,
        message_type: int | None = None,
    ) -> int:
        timetoken = self._next_timetoken()
        record = {
            "c": channel,
            "d": payload,
            "i": publisher,
            "p": {"t": str(timetoken), "r": REGION},
        }
        if metadata:
            record["u"] = metadata
        if message_type is not None:
            record["e"] = message_type

        self.log.append((timetoken, record))
        self.total_published += 1
        logger.debug(f"channel={channel} event=publish tt={timetoken} waiters={len(self.poll_waiters)}")
        self._notify_polls()
        return timetoken

    def messages_after(self, channels: set[str], timetoken: int) -> list[dict[str, Any]]:
        return [record for tt, record in self.log if tt > timetoken and record["c"] in channels]

    def latest_timetoken(self, records: list[dict[str, Any]], default: int) -> int:
        if not records:
            return default
        return max(int(record["p"]["t"]) for record in records)

    # ==========================
    # HELD SUBSCRIBE REQUESTS
    # ==========================
    def register_poll(self, poll_id: str) -> asyncio.Event:
        event = asyncio.Event()
        self.poll_waiters[poll_id] = event
        return event

    def unregister_poll(self, poll_id: str) -> None:
        self.poll_waiters.pop(poll_id, None)

    def _notify_polls(self) -> None:
        # The route handler removes its own waiter once it wakes up
        for event in self.poll_waiters.values():
            event.set()

    def release_all(self) -> None:
        """Answer every held subscribe at once. Used on shutdown."""
        self.closing = True
        self._notify_polls()

    def get_stats(self) -> HubStats:
        return HubStats(
            channels=len({record["c"] for _, record in self.log}),
            stored_messages=len(self.log),
            pending_polls=len(self.poll_waiters),
            total_published=self.total_published,
            uptime_s=(datetime.now(timezone.utc) - self.startup_time).total_seconds(),
        )
