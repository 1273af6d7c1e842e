"""Main Qt application."""

import asyncio
import logging
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from ..__version__ import __version__
from ..chat.manager import OverlayManager
from ..chat.pipeline import ChatWorker, EmoteResolver, MessageChannel
from ..chat.twitch import TwitchChatConnection
from ..core.settings import Settings, get_config_dir
from ..emotes.cache import AssetCache
from ..emotes.catalog import EmoteCatalog
from ..emotes.models import Emote
from ..emotes.provider import SevenTVProvider
from .loader import QtAssetLoader
from .overlay import OverlayWindow

logger = logging.getLogger(__name__)


def fetch_seed_emotes(settings: Settings) -> list[Emote]:
    """Fetch the channel's 7TV emotes. Empty on failure or without a channel ID."""
    channel_id = settings.channel.channel_id
    if not channel_id:
        logger.warning("No channel_id configured, starting without 7TV emotes")
        return []
    provider = SevenTVProvider(settings.channel.seventv_url)
    return asyncio.run(provider.get_channel_emotes(channel_id))


def run(settings_path: Path | None = None) -> int:
    """Run the overlay."""
    app = QApplication(sys.argv)
    app.setApplicationName("chat-avatars")
    app.setApplicationVersion(__version__)
    app.setQuitOnLastWindowClosed(True)

    settings = Settings.load(settings_path)
    if not settings.channel.channel_name:
        path = settings_path or get_config_dir() / "settings.json"
        logger.error(f"No channel configured. Set channel.channel_name in {path}")
        if not path.exists():
            settings.save(path)
        return 1

    # Seed before the chat thread starts, so the catalog needs no locking
    catalog = EmoteCatalog()
    catalog.seed(fetch_seed_emotes(settings))

    loader = QtAssetLoader()
    assets = AssetCache(loader)
    channel = MessageChannel(settings.messages.channel_capacity)
    manager = OverlayManager(settings, catalog, assets, channel)

    worker = ChatWorker(
        TwitchChatConnection(),
        settings.channel.channel_name,
        channel,
        EmoteResolver(known_names=catalog.names()),
    )

    window = OverlayWindow(manager, assets, loader.load_animated(settings.avatars.avatar_url))

    def shutdown() -> None:
        logger.info("Shutting down")
        window.stop()
        worker.stop()
        worker.wait(3000)
        loader.stop()

    app.aboutToQuit.connect(shutdown)

    window.showMaximized()
    window.start()
    worker.start()
    logger.info(f"Overlay running for #{settings.channel.channel_name}")
    return app.exec()
