"""Overlay manager - consumes resolved chat messages on the UI thread.

Each tick drains the message channel, folds emote hints into the
catalog, lays the message out and keeps avatars and message lifetimes
up to date. Nothing here performs I/O; asset loads are started through
the AssetCache's loader.
"""

import logging
import time
from dataclasses import dataclass

from ..core.avatars import AvatarRegistry
from ..core.lifetime import MessageLifetimeTracker
from ..core.settings import Settings
from ..emotes.cache import AssetCache
from ..emotes.catalog import EmoteCatalog
from ..layout.engine import LayoutConfig, MessageLayout, layout_message
from .models import ChatMessage
from .pipeline import MAX_MESSAGES_PER_TICK, MessageChannel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisplayedMessage:
    """A laid-out message shown above a user's avatar."""

    id: str
    user: str
    layout: MessageLayout
    spawned_at: float


class OverlayManager:
    """Single-threaded consumer owning the catalog, assets and avatars."""

    def __init__(
        self,
        settings: Settings,
        catalog: EmoteCatalog,
        assets: AssetCache,
        channel: MessageChannel,
        avatars: AvatarRegistry | None = None,
    ):
        self.settings = settings
        self.catalog = catalog
        self.assets = assets
        self.channel = channel
        self.layout_config: LayoutConfig = settings.messages.layout_config()
        self.avatars = avatars or AvatarRegistry(settings.avatars)
        self.lifetimes = MessageLifetimeTracker(settings.messages.message_despawn_ms / 1000)
        self._displayed: dict[str, DisplayedMessage] = {}  # user -> newest message

    def displayed(self, user: str) -> DisplayedMessage | None:
        return self._displayed.get(user)

    def displayed_messages(self) -> list[DisplayedMessage]:
        return list(self._displayed.values())

    def tick(
        self,
        viewport_width: float,
        viewport_height: float,
        dt: float,
        now: float | None = None,
    ) -> int:
        """Run one consumer pass. Returns the number of messages processed."""
        if now is None:
            now = time.monotonic()

        messages = self.channel.drain(MAX_MESSAGES_PER_TICK)
        for message in messages:
            self.process(message, viewport_width, viewport_height, now)

        self.avatars.step(dt, viewport_width, now)

        for message_id in self.lifetimes.pop_expired(now):
            self._drop_message(message_id)

        for user in self.avatars.despawn_inactive(now):
            shown = self._displayed.pop(user, None)
            if shown is not None:
                self.lifetimes.discard(shown.id)

        return len(messages)

    def process(
        self,
        message: ChatMessage,
        viewport_width: float,
        viewport_height: float,
        now: float | None = None,
    ) -> DisplayedMessage:
        """Display one message above its sender's avatar."""
        if now is None:
            now = time.monotonic()

        for hint in message.emotes:
            self.catalog.absorb(hint)

        self.avatars.touch(message.user, viewport_width, viewport_height, now)
        layout = layout_message(message.text, self.catalog, self.assets, self.layout_config)

        # A user's new message replaces the one they were showing
        previous = self._displayed.get(message.user)
        if previous is not None:
            self.lifetimes.discard(previous.id)

        shown = DisplayedMessage(id=message.id, user=message.user, layout=layout, spawned_at=now)
        self._displayed[message.user] = shown
        self.lifetimes.spawn(message.id, now)
        logger.debug(
            f"Displaying message from {message.user}: {layout.line_count} lines, "
            f"{len(layout.placements)} emotes"
        )
        return shown

    def _drop_message(self, message_id: str) -> None:
        for user, shown in list(self._displayed.items()):
            if shown.id == message_id:
                del self._displayed[user]
