"""Emote catalog, probing, providers and asset caching."""

from .cache import AssetCache, AssetLoader
from .catalog import EmoteCatalog
from .models import AssetHandle, Emote, EmoteSource, ImageFormat, ImageMeta, LoadedEmote
from .provider import BaseEmoteProvider, SevenTVProvider

__all__ = [
    "AssetCache",
    "AssetHandle",
    "AssetLoader",
    "BaseEmoteProvider",
    "Emote",
    "EmoteCatalog",
    "EmoteSource",
    "ImageFormat",
    "ImageMeta",
    "LoadedEmote",
    "SevenTVProvider",
]
