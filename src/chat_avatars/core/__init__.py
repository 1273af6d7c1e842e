"""Core models and utilities for Chat Avatars."""

from .avatars import Avatar, AvatarAction, AvatarRegistry
from .lifetime import MessageLifetimeTracker
from .settings import AvatarSettings, ChannelSettings, MessageSettings, Settings

__all__ = [
    "Avatar",
    "AvatarAction",
    "AvatarRegistry",
    "MessageLifetimeTracker",
    "Settings",
    "ChannelSettings",
    "AvatarSettings",
    "MessageSettings",
]
