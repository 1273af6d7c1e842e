"""Base chat connection abstract class."""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from .models import ChatMessage

logger = logging.getLogger(__name__)

# Exponential backoff constants for reconnection
INITIAL_RECONNECT_DELAY = 1.0  # seconds
MAX_RECONNECT_DELAY = 60.0  # seconds
RECONNECT_BACKOFF_FACTOR = 2.0
RECONNECT_JITTER = 0.1  # 10% jitter to prevent thundering herd

MessageCallback = Callable[[ChatMessage], Awaitable[None]]


class BaseChatConnection(ABC):
    """Abstract base class for chat connections.

    Subclasses run inside an asyncio event loop and hand every received
    message to an async callback, awaiting it before reading the next
    one so ordering is preserved.
    """

    def __init__(self):
        self._channel_id: str = ""
        self._is_connected: bool = False
        self._reconnect_delay: float = INITIAL_RECONNECT_DELAY
        self._should_stop: bool = False

    @property
    def channel_id(self) -> str:
        """The channel currently connected to."""
        return self._channel_id

    @property
    def is_connected(self) -> bool:
        """Whether the connection is active."""
        return self._is_connected

    @abstractmethod
    async def connect_to_channel(self, channel_id: str, on_message: MessageCallback) -> None:
        """Connect to a channel's chat and deliver messages until stopped.

        Args:
            channel_id: The channel identifier.
            on_message: Awaited for every chat message, in arrival order.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the current channel and stop reconnecting."""

    def _set_connected(self, channel_id: str) -> None:
        """Mark as connected."""
        self._channel_id = channel_id
        self._is_connected = True
        logger.info(f"{self.__class__.__name__}: joined #{channel_id}")

    def _set_disconnected(self) -> None:
        """Mark as disconnected."""
        if self._is_connected:
            logger.info(f"{self.__class__.__name__}: disconnected from #{self._channel_id}")
        self._is_connected = False

    def _reset_backoff(self) -> None:
        """Reset reconnection backoff delay after successful connection."""
        self._reconnect_delay = INITIAL_RECONNECT_DELAY

    def _get_next_backoff(self) -> float:
        """Get the next backoff delay with jitter and update for next call."""
        delay = self._reconnect_delay
        # Add jitter (±10%)
        jitter = delay * RECONNECT_JITTER * (2 * random.random() - 1)
        delay_with_jitter = delay + jitter

        # Increase delay for next time with exponential backoff
        self._reconnect_delay = min(
            self._reconnect_delay * RECONNECT_BACKOFF_FACTOR,
            MAX_RECONNECT_DELAY,
        )

        return delay_with_jitter

    async def _sleep_with_backoff(self) -> None:
        """Sleep for the current backoff delay before reconnecting."""
        delay = self._get_next_backoff()
        logger.info(
            f"{self.__class__.__name__}: reconnecting in {delay:.1f}s "
            f"(next delay: {self._reconnect_delay:.1f}s)"
        )
        await asyncio.sleep(delay)
