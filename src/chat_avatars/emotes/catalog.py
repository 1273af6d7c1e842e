"""Emote catalog - name to Emote mapping for the session."""

import logging
from collections.abc import Iterable

from .models import Emote, ImageMeta

logger = logging.getLogger(__name__)


class EmoteCatalog:
    """Name -> Emote mapping.

    Seeded once from the channel emote provider, then extended from
    chat emote tags. Entries are never removed; an unprobed entry is
    replaced by its probed copy at most once.
    """

    def __init__(self):
        self._emotes: dict[str, Emote] = {}

    def __len__(self) -> int:
        return len(self._emotes)

    def __contains__(self, name: object) -> bool:
        return name in self._emotes

    def names(self) -> list[str]:
        return list(self._emotes)

    def seed(self, provider_emotes: Iterable[Emote]) -> int:
        """Bulk insert provider emotes. Returns the number added."""
        added = 0
        for emote in provider_emotes:
            if emote.name in self._emotes:
                continue
            self._emotes[emote.name] = emote
            added += 1
        logger.info(f"Seeded emote catalog with {added} emotes")
        return added

    def ensure(self, name: str, hint: Emote) -> Emote:
        """Insert hint if name is unknown; return the catalog entry."""
        existing = self._emotes.get(name)
        if existing is not None:
            return existing
        self._emotes[name] = hint
        logger.debug(f"Added emote to catalog: {name} ({hint.source.value})")
        return hint

    def lookup(self, name: str) -> Emote | None:
        """Exact-match lookup."""
        return self._emotes.get(name)

    def record_probe(self, name: str, meta: ImageMeta) -> Emote:
        """Write probed metadata back into an unprobed entry.

        Probed entries are returned unchanged. Raises KeyError for
        unknown names.
        """
        existing = self._emotes[name]
        if existing.probed:
            return existing
        probed = existing.with_meta(meta)
        self._emotes[name] = probed
        return probed

    def absorb(self, hint: Emote) -> Emote:
        """Ensure a chat emote hint, keeping any metadata it carries."""
        entry = self.ensure(hint.name, hint)
        meta = hint.meta
        if not entry.probed and meta is not None:
            entry = self.record_probe(hint.name, meta)
        return entry
