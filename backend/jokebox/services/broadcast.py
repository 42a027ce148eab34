"""
Jokebox Backend — Broadcast Registry (live joke fan-out)
==========================================================

What:  In-process fan-out of newly created jokes to every open /events client.
Why:   Clients watching the feed should see a joke the moment it is committed,
       without polling GET /jokes.
How:   Each subscriber gets a Channel wrapping a bounded asyncio.Queue. publish()
       serializes the joke once and put_nowait()s it onto every channel. A
       per-channel asyncio task writes a heartbeat marker on a fixed interval.
Who:   POST /jokes and POST /advanced-joke publish; GET /events subscribes.

Channel Lifecycle:
    subscribe()  → OPEN   (added to the membership set, heartbeat armed)
    write ok     → OPEN
    write fails  → CLOSED (queue full or already closed; heartbeat cancelled,
                           removed from the membership set in the same call)
    disconnect   → CLOSED (the stream generator calls unsubscribe())
    shutdown     → CLOSED (close_all() from the lifespan)

    A CLOSED channel is never reopened and never written to again.

Concurrency:
    The membership set is only touched under a lock, and publish() iterates a
    snapshot of it, so subscribe/unsubscribe running while a publish is in
    progress cannot break the iteration or cause a double delivery. Writes
    never await: a subscriber too slow to drain its queue is dropped instead
    of stalling the publisher.
"""

import asyncio
import json
import logging
import threading
import uuid
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from pydantic import BaseModel

from jokebox.config import settings
from jokebox.exceptions import ChannelWriteError

logger = logging.getLogger(__name__)

HEARTBEAT_MESSAGE = json.dumps({"type": "heartbeat"})


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:  # no running loop
        return None


class ChannelState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class Channel:
    """
    One open delivery path to a single /events client.

    Only the BroadcastRegistry writes to or closes a channel; the route that
    owns the HTTP connection only reads from messages().
    """

    def __init__(self, queue_size: int = 100):
        self.id = uuid.uuid4().hex[:8]
        self.state = ChannelState.OPEN
        # None is the end-of-stream sentinel placed by close()
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=queue_size)

    @property
    def is_open(self) -> bool:
        return self.state is ChannelState.OPEN

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def write(self, message: str) -> None:
        """
        Queue a message without waiting.

        Raises:
            ChannelWriteError: The channel is closed or its queue is full.
        """
        if not self.is_open:
            raise ChannelWriteError(
                message="Channel is closed",
                context={"channel": self.id},
            )
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            raise ChannelWriteError(
                message="Subscriber is not keeping up",
                context={"channel": self.id, "pending": self._queue.qsize()},
            )

    def close(self) -> bool:
        """
        Move to CLOSED, drop undelivered messages and wake the reader.

        Returns False if the channel was already closed.
        """
        if not self.is_open:
            return False
        self.state = ChannelState.CLOSED
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        self._queue.put_nowait(None)
        return True

    async def messages(self) -> AsyncIterator[str]:
        """Yields queued messages until the channel is closed."""
        while self.is_open or not self._queue.empty():
            message = await self._queue.get()
            if message is None:
                return
            yield message

    def __repr__(self) -> str:
        return f"<Channel(id={self.id}, state='{self.state.value}')>"


class BroadcastRegistry:
    """
    Membership set of open channels plus their heartbeat tasks.

    Attributes:
        heartbeat_interval: Seconds between heartbeat markers per channel
        queue_size:         Per-channel buffer; a full buffer counts as a failed write
    """

    def __init__(
        self,
        heartbeat_interval: Optional[float] = None,
        queue_size: Optional[int] = None,
    ):
        self.heartbeat_interval = (
            settings.heartbeat_interval if heartbeat_interval is None else heartbeat_interval
        )
        self.queue_size = settings.channel_queue_size if queue_size is None else queue_size
        self._channels: Dict[Channel, Optional[asyncio.Task]] = {}
        self._lock = threading.Lock()
        self._dropped = 0

    # ── Membership ────────────────────────────────────────────────────────

    def subscribe(self, channel: Optional[Channel] = None) -> Channel:
        """
        Register a new OPEN channel and arm its heartbeat.

        Must be called from a running event loop. Passing `channel` lets
        callers supply their own Channel (subclass); by default a fresh one
        is created.
        """
        if channel is None:
            channel = Channel(queue_size=self.queue_size)
        elif not channel.is_open:
            raise ValueError(f"Cannot subscribe closed channel {channel.id}")

        task = asyncio.get_running_loop().create_task(
            self._heartbeat(channel),
            name=f"heartbeat-{channel.id}",
        )
        with self._lock:
            self._channels[channel] = task
            total = len(self._channels)

        logger.info("Channel %s subscribed (%d open)", channel.id, total)
        return channel

    def unsubscribe(self, channel: Channel) -> bool:
        """
        Remove a channel, cancel its heartbeat and close it.

        Idempotent: returns False when the channel was not a member.
        """
        with self._lock:
            if channel not in self._channels:
                return False
            task = self._channels.pop(channel)
            total = len(self._channels)

        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        undelivered = channel.pending
        channel.close()

        logger.info(
            "Channel %s unsubscribed (%d open, %d undelivered)",
            channel.id, total, undelivered,
        )
        return True

    def is_subscribed(self, channel: Channel) -> bool:
        with self._lock:
            return channel in self._channels

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._channels)

    @property
    def dropped(self) -> int:
        """Channels removed because a write to them failed."""
        return self._dropped

    # ── Delivery ──────────────────────────────────────────────────────────

    @staticmethod
    def serialize(record: Any) -> str:
        if isinstance(record, BaseModel):
            return record.model_dump_json()
        return json.dumps(record, default=str)

    def publish(self, record: Any) -> int:
        """
        Send one record to every open channel.

        A failed write drops that channel and moves on to the next one; the
        caller never sees the failure.

        Returns:
            Number of channels the message was queued on.
        """
        message = self.serialize(record)
        with self._lock:
            targets: List[Channel] = list(self._channels)

        delivered = 0
        for channel in targets:
            if not channel.is_open:
                continue
            try:
                channel.write(message)
                delivered += 1
            except ChannelWriteError as e:
                self._drop(channel, e)

        logger.debug("Published to %d/%d channels", delivered, len(targets))
        return delivered

    def _drop(self, channel: Channel, error: ChannelWriteError) -> None:
        if self.unsubscribe(channel):
            self._dropped += 1
            logger.info("Dropped channel %s: %s", channel.id, error.message)

    async def _heartbeat(self, channel: Channel) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                channel.write(HEARTBEAT_MESSAGE)
            except ChannelWriteError as e:
                self._drop(channel, e)
                return

    # ── Shutdown ──────────────────────────────────────────────────────────

    async def close_all(self) -> int:
        """
        Close every channel and wait for their heartbeat tasks to finish.

        Returns:
            Number of channels closed.
        """
        with self._lock:
            members = list(self._channels.items())

        for channel, _ in members:
            self.unsubscribe(channel)

        tasks = [task for _, task in members if task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if members:
            logger.info("Closed %d live event channel(s)", len(members))
        return len(members)


# ── Singleton Instance ────────────────────────────────────────────────────
# Process-wide: every request publishes to and subscribes on the same set.
broadcast_registry = BroadcastRegistry()
