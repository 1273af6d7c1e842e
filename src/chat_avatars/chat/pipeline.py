"""Chat pipeline - resolve emotes off the UI thread and hand messages over.

The producer side (a QThread running its own asyncio loop) probes each
never-seen emote once and pushes the resolved message into a bounded
MessageChannel. The Qt main thread drains the channel once per tick.
"""

import asyncio
import logging
import queue
import threading
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace

import aiohttp
from PySide6.QtCore import QThread

from ..emotes.models import ImageMeta
from ..emotes.probe import probe
from .connection import BaseChatConnection
from .models import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_CAPACITY = 100
MAX_MESSAGES_PER_TICK = 200
SEND_POLL_SECONDS = 0.1  # How often a blocked send rechecks for close()

Prober = Callable[[str, aiohttp.ClientSession | None], Awaitable[ImageMeta]]


class MessageChannel:
    """Bounded FIFO between the chat thread and the UI thread.

    send() waits while the channel is full instead of dropping messages,
    until close() is called.
    """

    def __init__(self, capacity: int = DEFAULT_CHANNEL_CAPACITY):
        self._capacity = capacity
        self._queue: queue.Queue[ChatMessage] = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Stop accepting messages and release any send() waiting for room."""
        self._closed.set()

    async def send(self, message: ChatMessage) -> bool:
        """Enqueue a message, waiting for room without blocking the event loop.

        Returns False if the channel was closed before the message fit.
        """
        if self._closed.is_set():
            return False
        try:
            self._queue.put_nowait(message)
            return True
        except queue.Full:
            logger.debug("Message channel full, waiting for the overlay to catch up")
            return await asyncio.to_thread(self._put_until_closed, message)

    def _put_until_closed(self, message: ChatMessage) -> bool:
        while not self._closed.is_set():
            try:
                self._queue.put(message, timeout=SEND_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def drain(self, limit: int = MAX_MESSAGES_PER_TICK) -> list[ChatMessage]:
        """Take up to limit queued messages without blocking."""
        messages: list[ChatMessage] = []
        while len(messages) < limit:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return messages


class EmoteResolver:
    """Probes each distinct emote name at most once per process."""

    def __init__(self, known_names: Iterable[str] = (), prober: Prober = probe):
        self._seen: set[str] = set(known_names)
        self._probe = prober

    def is_seen(self, name: str) -> bool:
        return name in self._seen

    async def resolve(
        self, message: ChatMessage, session: aiohttp.ClientSession | None = None
    ) -> ChatMessage:
        """Return message with never-seen emote hints probed."""
        if not message.emotes:
            return message

        resolved = []
        for hint in message.emotes:
            if hint.name in self._seen or hint.probed:
                self._seen.add(hint.name)
                resolved.append(hint)
                continue
            meta = await self._probe(hint.url, session)
            self._seen.add(hint.name)
            resolved.append(hint.with_meta(meta))
        return replace(message, emotes=tuple(resolved))


class ChatWorker(QThread):
    """Worker thread that runs the chat connection and emote probing."""

    def __init__(
        self,
        connection: BaseChatConnection,
        channel_name: str,
        channel: MessageChannel,
        resolver: EmoteResolver,
        parent=None,
    ):
        super().__init__(parent)
        self.connection = connection
        self.channel_name = channel_name
        self.channel = channel
        self.resolver = resolver
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None
        self._stopping = False

    def run(self):
        """Run the connection in a new event loop."""
        if self._stopping:
            return
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._task = loop.create_task(self._run())
        self._loop = loop
        if self._stopping:
            # stop() ran before the loop was published
            self._task.cancel()
        try:
            loop.run_until_complete(self._task)
        except asyncio.CancelledError:
            logger.info("Chat worker stopped")
        except Exception as e:
            logger.error(f"Chat worker error: {e!r}")
        finally:
            self._loop = None
            self._task = None
            # Joins any send() thread; close() has already released it
            loop.run_until_complete(loop.shutdown_default_executor())
            loop.close()

    async def _run(self) -> None:
        async with aiohttp.ClientSession() as session:

            async def on_message(message: ChatMessage) -> None:
                resolved = await self.resolver.resolve(message, session)
                if not await self.channel.send(resolved):
                    # Channel closed by stop(); yield so the cancellation lands
                    await asyncio.sleep(0)

            await self.connection.connect_to_channel(self.channel_name, on_message)

    def stop(self):
        """Request the worker to stop.

        Closes the channel so a send waiting for room gives up, then
        cancels the connection task, including any reconnect backoff.
        """
        self._stopping = True
        self.channel.close()
        loop = self._loop
        if loop is None:
            return
        try:
            loop.call_soon_threadsafe(self._cancel)
        except RuntimeError:
            # Loop already closed; the worker has finished
            pass

    def _cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
