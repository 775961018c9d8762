"""
MODULE OVERVIEW:
The Rich Terminal Dashboard.

WHAT IS HAPPENING HERE:
Shows live subscriptions: a message feed across all channels, per-channel
cursors (watch the timetoken jump after every envelope, even empty ones) and the
poll counters. It only listens; the subscriptions run on their own tasks.
"""

from rich.live import Live
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from collections import deque
from datetime import datetime
import asyncio

from pubnub_lite.client.subscription import Subscription
from pubnub_lite.shared.models import Message

class Visualizer:
    def __init__(self, subscriptions: list[Subscription]):
        self.subscriptions = subscriptions
        self.recent_messages = deque(maxlen=12)

    def on_message(self, message: Message, channel: str):
        ts = datetime.now().strftime("%H:%M:%S")
        payload_str = str(message.payload)
        if len(payload_str) > 60:
            payload_str = payload_str[:60] + "..."
        kind = "signal" if message.is_signal else "message"
        self.recent_messages.appendleft((ts, message.channel or channel, kind, payload_str))

    def generate_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=1)
        )

        active = sum(1 for s in self.subscriptions if s.active)
        color = "green" if active else "red"
        layout["header"].update(Panel(f"[{color} bold]Subscriptions: {active}/{len(self.subscriptions)} active[/]", style=color))

        feed = Table(title="Live Message Feed", expand=True)
        feed.add_column("Time", justify="left", style="cyan", no_wrap=True)
        feed.add_column("Channel", style="magenta")
        feed.add_column("Kind", style="blue")
        feed.add_column("Payload", style="green")
        for row in self.recent_messages:
            feed.add_row(*row)
        layout["left"].update(Panel(feed, title="Feed"))

        cursors = Table(expand=True)
        cursors.add_column("Channel", style="magenta")
        cursors.add_column("Timetoken", style="cyan")
        cursors.add_column("Msgs", justify="right")
        cursors.add_column("Empty", justify="right")
        cursors.add_column("Errors", justify="right", style="red")
        for s in self.subscriptions:
            cursors.add_row(
                s.channel, s.cursor.timetoken,
                str(s.messages_received), str(s.empty_polls), str(s.poll_errors),
            )
        layout["right"].update(Panel(cursors, title="Cursors"))

        return layout

    async def run(self, duration_s: float):
        for s in self.subscriptions:
            s.add_listener(lambda message, channel=s.channel: self.on_message(message, channel))

        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration_s
        with Live(self.generate_layout(), refresh_per_second=4) as live:
            while loop.time() < deadline and any(s.active for s in self.subscriptions):
                live.update(self.generate_layout())
                await asyncio.sleep(0.25)
