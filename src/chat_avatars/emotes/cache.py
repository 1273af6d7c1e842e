"""Asset cache - one load request per emote name for the session."""

import logging
from typing import Any, Protocol

from .models import AssetHandle, Emote, LoadedEmote

logger = logging.getLogger(__name__)


class AssetLoader(Protocol):
    """Starts loading an emote image and returns a handle to it.

    Handles may still be loading when returned; the front end decides
    how to draw an asset that isn't ready yet.
    """

    def load_static(self, url: str) -> Any: ...

    def load_animated(self, url: str) -> Any: ...


class AssetCache:
    """Owns the loaded emote assets.

    Placements only ever hold an AssetHandle (the emote name plus the
    animated flag); the asset itself is looked up with resolve() at
    draw time.
    """

    def __init__(self, loader: AssetLoader):
        self._loader = loader
        self._loaded: dict[str, LoadedEmote] = {}
        self._request_count = 0

    def __len__(self) -> int:
        return len(self._loaded)

    def __contains__(self, name: object) -> bool:
        return name in self._loaded

    @property
    def request_count(self) -> int:
        """Number of load requests issued to the loader."""
        return self._request_count

    def get_or_request(self, name: str, emote: Emote) -> AssetHandle:
        """Return a handle for name, issuing a load on first use only."""
        loaded = self._loaded.get(name)
        if loaded is None:
            loaded = self._request(name, emote)
            self._loaded[name] = loaded
        return AssetHandle(name=name, animated=loaded.animated)

    def resolve(self, handle: AssetHandle) -> Any:
        """Return the asset behind handle, or None if it isn't cached."""
        loaded = self._loaded.get(handle.name)
        if loaded is None:
            return None
        return loaded.asset

    def _request(self, name: str, emote: Emote) -> LoadedEmote:
        self._request_count += 1
        if emote.animated:
            logger.debug(f"Requesting animated emote {name}: {emote.url}")
            return LoadedEmote(
                name=name,
                animated=True,
                animated_handle=self._loader.load_animated(emote.url),
            )
        logger.debug(f"Requesting static emote {name}: {emote.url}")
        return LoadedEmote(
            name=name,
            animated=False,
            static_handle=self._loader.load_static(emote.url),
        )
