"""Data models for emotes and their loaded assets."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class EmoteSource(str, Enum):
    """Where an emote definition came from."""

    SEVENTV = "7tv"
    TWITCH = "twitch"


class ImageFormat(str, Enum):
    """Pixel container formats recognised by the metadata prober."""

    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    JPEG = "jpeg"
    BMP = "bmp"
    OTHER = "other"

    @property
    def animated(self) -> bool:
        """Whether emotes in this container are treated as animated."""
        return self in (ImageFormat.GIF, ImageFormat.WEBP)


# Used when a probe fails and nothing is known about the image
FALLBACK_STATIC_FORMAT = ImageFormat.PNG


@dataclass(frozen=True)
class ImageMeta:
    """Result of probing an image header."""

    width: int
    height: int
    format: ImageFormat
    animated: bool = False

    @classmethod
    def fallback(cls) -> "ImageMeta":
        """Degenerate metadata used when probing fails."""
        return cls(width=0, height=0, format=FALLBACK_STATIC_FORMAT, animated=False)


@dataclass(frozen=True)
class Emote:
    """A single emote known to the overlay.

    Emotes are immutable. An entry starts unprobed (format/width/height
    unset) and becomes probed by replacement via ``with_meta``.
    """

    id: str
    name: str  # Text code as it appears in chat (e.g., "PogChamp")
    source: EmoteSource
    url: str
    animated: bool = False
    format: ImageFormat | None = None
    width: int | None = None
    height: int | None = None

    @property
    def probed(self) -> bool:
        """Whether size and format are known."""
        return self.format is not None and self.width is not None and self.height is not None

    @property
    def meta(self) -> ImageMeta | None:
        """Probed metadata, or None while unprobed."""
        if not self.probed:
            return None
        return ImageMeta(
            width=self.width,
            height=self.height,
            format=self.format,
            animated=self.animated,
        )

    def with_meta(self, meta: ImageMeta) -> "Emote":
        """Return a probed copy of this emote."""
        return replace(
            self,
            animated=meta.animated,
            format=meta.format,
            width=meta.width,
            height=meta.height,
        )


@dataclass(frozen=True)
class AssetHandle:
    """Non-owning reference to an asset held by the AssetCache."""

    name: str
    animated: bool


@dataclass
class LoadedEmote:
    """A requested emote asset. Exactly one of the handles is set."""

    name: str
    animated: bool
    animated_handle: Any = None
    static_handle: Any = None

    @property
    def asset(self) -> Any:
        return self.animated_handle if self.animated else self.static_handle
