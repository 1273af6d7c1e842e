"""Shared test fixtures for chat_avatars tests."""

from datetime import datetime, timezone

import pytest

from chat_avatars.chat.models import ChatMessage
from chat_avatars.core.settings import Settings
from chat_avatars.emotes.cache import AssetCache
from chat_avatars.emotes.catalog import EmoteCatalog
from chat_avatars.emotes.models import Emote, EmoteSource, ImageFormat
from chat_avatars.layout.engine import LayoutConfig


class FakeAssetLoader:
    """Records load requests and hands back the URL as the asset."""

    def __init__(self):
        self.static_requests: list[str] = []
        self.animated_requests: list[str] = []

    def load_static(self, url):
        self.static_requests.append(url)
        return f"static:{url}"

    def load_animated(self, url):
        self.animated_requests.append(url)
        return f"animated:{url}"


@pytest.fixture
def layout_config():
    return LayoutConfig(font_size=20, emote_size_multiplier=1.7, box_width=200)


@pytest.fixture
def pogchamp():
    return Emote(
        id="305954156",
        name="PogChamp",
        source=EmoteSource.TWITCH,
        url="https://static-cdn.jtvnw.net/emoticons/v2/305954156/default/light/4.0",
        animated=False,
        format=ImageFormat.PNG,
        width=64,
        height=64,
    )


@pytest.fixture
def catjam():
    return Emote(
        id="60ae7316f7c927fad14e6ca2",
        name="catJAM",
        source=EmoteSource.SEVENTV,
        url="https://cdn.7tv.app/emote/60ae7316f7c927fad14e6ca2/4x.webp",
        animated=True,
        format=ImageFormat.WEBP,
        width=128,
        height=128,
    )


@pytest.fixture
def catalog(pogchamp, catjam):
    catalog = EmoteCatalog()
    catalog.seed([pogchamp, catjam])
    return catalog


@pytest.fixture
def loader():
    return FakeAssetLoader()


@pytest.fixture
def assets(loader):
    return AssetCache(loader)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def chat_message():
    return ChatMessage(
        id="msg-001",
        user="TestUser",
        text="Hello world!",
        timestamp=datetime(2025, 1, 1, 12, 30, 0, tzinfo=timezone.utc),
    )
