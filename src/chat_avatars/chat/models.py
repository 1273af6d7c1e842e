"""Data models for incoming chat."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..emotes.models import Emote


@dataclass(frozen=True)
class ChatMessage:
    """A chat message as delivered to the overlay.

    ``emotes`` holds emote hints taken from the chat protocol's emote
    tags; by the time a message leaves the producer, hints for never-seen
    names carry probed metadata.
    """

    id: str
    user: str  # Display name of the sender
    text: str
    emotes: tuple[Emote, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_action: bool = False  # /me messages
