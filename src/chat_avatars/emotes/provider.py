"""Emote providers - 7TV channel emotes and Twitch native emote hints."""

import logging
from abc import ABC, abstractmethod

import aiohttp

from .models import Emote, EmoteSource, ImageFormat

logger = logging.getLogger(__name__)

SEVENTV_BASE_URL = "https://7tv.io/v3"
TWITCH_EMOTE_URL = "https://static-cdn.jtvnw.net/emoticons/v2/{id}/default/light/4.0"

# "Technical difficulties" emote used when 7TV lists no usable file
FALLBACK_EMOTE_URL = "https://cdn.7tv.app/emote/63384017cf7eb48c4e731a79/4x.webp"
FALLBACK_EMOTE_SIZE = 128


class BaseEmoteProvider(ABC):
    """Base class for channel emote providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""

    @abstractmethod
    async def get_channel_emotes(self, channel_id: str) -> list[Emote]:
        """Fetch the channel's emote set. Returns [] on failure."""


class SevenTVProvider(BaseEmoteProvider):
    """7TV emote provider."""

    def __init__(self, base_url: str = SEVENTV_BASE_URL):
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "7tv"

    async def get_channel_emotes(self, channel_id: str) -> list[Emote]:
        """Fetch 7TV channel emotes for a Twitch channel."""
        emotes: list[Emote] = []
        logger.info("Getting the 7TV channel emotes")
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    f"{self.base_url}/users/twitch/{channel_id}",
                    timeout=aiohttp.ClientTimeout(total=15),
                ) as resp:
                    if resp.status != 200:
                        logger.warning(f"7TV channel emotes failed: {resp.status}")
                        return emotes
                    data = await resp.json()
        except Exception as e:
            logger.warning(f"Cannot get 7TV emotes for {channel_id}: {e!r}")
            return emotes

        if not isinstance(data, dict):
            logger.warning(f"Unexpected 7TV response for {channel_id}")
            return emotes

        emote_set = data.get("emote_set") or {}
        for emote_data in emote_set.get("emotes") or []:
            try:
                emote = parse_seventv_emote(emote_data)
            except (TypeError, ValueError, AttributeError, KeyError) as e:
                logger.warning(f"Skipping malformed 7TV emote: {e!r}")
                continue
            if emote:
                emotes.append(emote)

        logger.info(f"Loaded {len(emotes)} 7TV emotes for {channel_id}")
        return emotes


def parse_seventv_emote(data: dict) -> Emote | None:
    """Parse one entry of a 7TV emote set.

    The largest .webp file gives the URL and natural size.
    """
    if not isinstance(data, dict):
        return None
    emote_data = data.get("data") or data
    emote_id = emote_data.get("id") or data.get("id", "")
    name = data.get("name") or emote_data.get("name", "")  # Channel alias wins

    if not emote_id or not name:
        return None

    host = emote_data.get("host") or {}
    webp_files = [
        f for f in host.get("files") or [] if str(f.get("name", "")).endswith(".webp")
    ]

    if not webp_files:
        return Emote(
            id=emote_id,
            name=name,
            source=EmoteSource.SEVENTV,
            url=FALLBACK_EMOTE_URL,
            animated=True,
            format=ImageFormat.WEBP,
            width=FALLBACK_EMOTE_SIZE,
            height=FALLBACK_EMOTE_SIZE,
        )

    largest = max(webp_files, key=lambda f: int(f.get("width") or 0))
    base_url = host.get("url", "")
    if base_url.startswith("//"):
        base_url = "https:" + base_url

    return Emote(
        id=emote_id,
        name=name,
        source=EmoteSource.SEVENTV,
        url=f"{base_url}/{largest['name']}",
        animated=bool(emote_data.get("animated", False)),
        format=ImageFormat.WEBP,
        width=int(largest.get("width") or 0),
        height=int(largest.get("height") or 0),
    )


def twitch_emote_hint(emote_id: str, code: str) -> Emote:
    """Build an unprobed emote from a Twitch chat emote tag."""
    return Emote(
        id=emote_id,
        name=code,
        source=EmoteSource.TWITCH,
        url=TWITCH_EMOTE_URL.format(id=emote_id),
        animated=False,
    )
