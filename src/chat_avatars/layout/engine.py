"""Message layout engine - wraps words and inline emotes into a fixed-width box.

Coordinates are y-up. Segments and placements are relative to
``MessageLayout.origin``: the top-left corner of the background box, or
the centre point above the avatar for a lone emote. The font is assumed
to be monospaced so emote placeholder columns line up with the text.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Protocol

from ..emotes.models import AssetHandle, Emote

logger = logging.getLogger(__name__)

# Font metrics derived from the configured font size
FONT_HEIGHT_RATIO = 0.7
FONT_WIDTH_RATIO = 0.67  # of font height
TOP_MARGIN_RATIO = 0.15  # of font height
LINE_SPACE_RATIO = 0.43  # of font height

BOX_PADDING = 10.0
SINGLE_EMOTE_SCALE = 1.0  # Lone emotes are drawn at natural size
DEFAULT_TEXT_COLOR = "#000000"


class EmoteLookup(Protocol):
    def lookup(self, name: str) -> Emote | None: ...


class AssetRequester(Protocol):
    def get_or_request(self, name: str, emote: Emote) -> AssetHandle: ...


@dataclass(frozen=True)
class LayoutConfig:
    """Geometry used to lay out a message box."""

    font_size: float = 20.0
    emote_size_multiplier: float = 1.7
    box_width: float = 200.0
    vertical_offset: float = 150.0

    @property
    def font_height(self) -> float:
        return self.font_size * FONT_HEIGHT_RATIO

    @property
    def font_width(self) -> float:
        return self.font_height * FONT_WIDTH_RATIO

    @property
    def top_margin(self) -> float:
        return self.font_height * TOP_MARGIN_RATIO

    @property
    def line_space(self) -> float:
        return self.font_height * LINE_SPACE_RATIO

    @property
    def line_height(self) -> float:
        return self.font_height + self.line_space

    def line_center_y(self, line_number: int) -> float:
        """Vertical centre of a text line, relative to the box top."""
        return -line_number * self.line_height - self.top_margin - 0.5 * self.font_height


@dataclass(frozen=True)
class TextStyle:
    font_size: float
    color: str = DEFAULT_TEXT_COLOR


@dataclass(frozen=True)
class TextSegment:
    """One wrapped line of text (emote columns are spaces)."""

    text: str
    style: TextStyle
    line: int


@dataclass(frozen=True)
class Placement:
    """An emote image positioned within the layout."""

    emote: Emote
    handle: AssetHandle
    x: float
    y: float
    scale: float
    animated: bool


@dataclass(frozen=True)
class BackgroundBox:
    """Message box rectangle; (x, y) is the top-left corner."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class MessageLayout:
    segments: tuple[TextSegment, ...] = ()
    placements: tuple[Placement, ...] = ()
    line_count: int = 0
    token_count: int = 0
    background: BackgroundBox | None = None
    origin: tuple[float, float] = (0.0, 0.0)

    @property
    def is_single_emote(self) -> bool:
        return self.background is None and len(self.placements) == 1 and not self.segments


@dataclass(frozen=True)
class WordToken:
    text: str
    width: float


@dataclass(frozen=True)
class EmoteToken:
    emote: Emote
    scale: float
    slots: int  # Monospace columns the scaled emote covers
    width: float


Token = WordToken | EmoteToken


def emote_scale(emote: Emote, config: LayoutConfig) -> float:
    """Scale that makes the emote emote_size_multiplier font heights tall."""
    height = emote.height or 0
    if height <= 0:
        return 0.0
    return config.font_height * config.emote_size_multiplier / height


def tokenize(text: str, catalog: EmoteLookup, config: LayoutConfig) -> list[Token]:
    """Split text on whitespace into word and emote tokens with their widths."""
    tokens: list[Token] = []
    font_width = config.font_width
    for raw in text.split():
        emote = catalog.lookup(raw)
        if emote is None:
            tokens.append(WordToken(text=raw, width=(len(raw) + 1) * font_width))
            continue
        scale = emote_scale(emote, config)
        slots = math.ceil((emote.width or 0) * scale / font_width) if font_width > 0 else 0
        tokens.append(EmoteToken(emote=emote, scale=scale, slots=slots, width=slots * font_width))
    return tokens


def layout_message(
    text: str,
    catalog: EmoteLookup,
    assets: AssetRequester,
    config: LayoutConfig,
) -> MessageLayout:
    """Greedy line wrap of a chat message containing inline emotes.

    A line is flushed when the next token (including its trailing space
    column) would push it past box_width. A token that is wider than the
    box on its own is never split; it takes a line by itself and overflows.
    """
    tokens = tokenize(text, catalog, config)
    if not tokens:
        return MessageLayout()

    style = TextStyle(font_size=config.font_size)
    segments: list[TextSegment] = []
    placements: list[Placement] = []
    line = ""
    line_length = 0.0
    line_number = 0

    def flush() -> None:
        visible = line.rstrip(" ")
        if visible:
            segments.append(TextSegment(text=visible, style=style, line=line_number))

    for token in tokens:
        if line and line_length + token.width > config.box_width:
            flush()
            line = ""
            line_length = 0.0
            line_number += 1

        if isinstance(token, WordToken):
            line += token.text + " "
            line_length += token.width
            continue

        line += " " * token.slots
        line_length += token.width
        emote = token.emote
        placements.append(
            Placement(
                emote=emote,
                handle=assets.get_or_request(emote.name, emote),
                x=line_length - config.font_width * token.slots / 2,
                y=config.line_center_y(line_number),
                scale=token.scale,
                animated=emote.animated,
            )
        )

    flush()

    if len(tokens) == 1 and len(placements) == 1:
        return _single_emote_layout(placements[0], config)

    box_height = (line_number + 1) * config.line_height + config.top_margin + BOX_PADDING
    top_left = (-config.box_width / 2, config.vertical_offset + box_height)
    logger.debug(f"Laid out {len(tokens)} tokens on {line_number + 1} lines")
    return MessageLayout(
        segments=tuple(segments),
        placements=tuple(placements),
        line_count=line_number + 1,
        token_count=len(tokens),
        background=BackgroundBox(
            x=top_left[0], y=top_left[1], width=config.box_width, height=box_height
        ),
        origin=top_left,
    )


def _single_emote_layout(placement: Placement, config: LayoutConfig) -> MessageLayout:
    """Lone emote: drawn large and centred, without a box."""
    scale = SINGLE_EMOTE_SCALE if placement.scale > 0 else 0.0
    return MessageLayout(
        placements=(replace(placement, x=0.0, y=0.0, scale=scale),),
        line_count=1,
        token_count=1,
        origin=(0.0, config.vertical_offset),
    )
