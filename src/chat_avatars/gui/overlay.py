"""Transparent always-on-top overlay window that paints avatars and messages."""

import logging
import time

from PySide6.QtCore import QPointF, QRectF, Qt, QTimer
from PySide6.QtGui import QColor, QFont, QFontMetricsF, QPainter, QPaintEvent
from PySide6.QtWidgets import QWidget

from ..chat.manager import DisplayedMessage, OverlayManager
from ..emotes.cache import AssetCache
from .loader import EmoteAsset

logger = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 16  # ~60fps
BOX_COLOR = QColor(255, 255, 255, 230)
BOX_RADIUS = 6.0


class OverlayWindow(QWidget):
    """Frameless, click-through window covering the screen.

    Layout coordinates are y-up with the origin at the avatar; painting
    flips them into Qt's y-down widget coordinates.
    """

    def __init__(self, manager: OverlayManager, assets: AssetCache, avatar: EmoteAsset):
        super().__init__()
        self.manager = manager
        self.assets = assets
        self.avatar = avatar
        self._avatar_scale = manager.settings.avatars.scale
        self._font = self._build_font()
        self._last_tick = time.monotonic()

        self.setWindowTitle("Chat Avatars")
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.Tool
        )
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
        self.setAttribute(Qt.WidgetAttribute.WA_ShowWithoutActivating)

        self._timer = QTimer(self)
        self._timer.setInterval(FRAME_INTERVAL_MS)
        self._timer.timeout.connect(self._on_frame)

    def _build_font(self) -> QFont:
        """Monospaced font whose advance matches the layout's column width."""
        config = self.manager.layout_config
        font = QFont(self.manager.settings.messages.font_family)
        font.setStyleHint(QFont.StyleHint.Monospace)
        font.setFixedPitch(True)
        font.setPixelSize(max(1, round(config.font_size)))
        advance = QFontMetricsF(font).horizontalAdvance("M")
        font.setLetterSpacing(QFont.SpacingType.AbsoluteSpacing, config.font_width - advance)
        return font

    def start(self) -> None:
        self._last_tick = time.monotonic()
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def _on_frame(self) -> None:
        now = time.monotonic()
        dt = now - self._last_tick
        self._last_tick = now
        self.manager.tick(self.width(), self.height(), dt, now)
        self.update()

    def _to_screen(self, x: float, y: float) -> QPointF:
        return QPointF(self.width() / 2 + x, self.height() / 2 - y)

    def paintEvent(self, event: QPaintEvent) -> None:
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.setFont(self._font)
        try:
            avatar_pixmap = self.avatar.current_pixmap()
            for avatar in self.manager.avatars:
                if avatar_pixmap is not None and not avatar_pixmap.isNull():
                    width = avatar_pixmap.width() * self._avatar_scale
                    height = avatar_pixmap.height() * self._avatar_scale
                    center = self._to_screen(avatar.x, avatar.y)
                    painter.drawPixmap(
                        QRectF(center.x() - width / 2, center.y() - height / 2, width, height),
                        avatar_pixmap,
                        QRectF(avatar_pixmap.rect()),
                    )
                shown = self.manager.displayed(avatar.user)
                if shown is not None:
                    self._paint_message(painter, avatar.x, avatar.y, shown)
        finally:
            painter.end()

    def _paint_message(
        self, painter: QPainter, anchor_x: float, anchor_y: float, shown: DisplayedMessage
    ) -> None:
        layout = shown.layout
        config = self.manager.layout_config
        origin_x = anchor_x + layout.origin[0]
        origin_y = anchor_y + layout.origin[1]

        if layout.background is not None:
            box = layout.background
            top_left = self._to_screen(anchor_x + box.x, anchor_y + box.y)
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(BOX_COLOR)
            painter.drawRoundedRect(
                QRectF(top_left.x(), top_left.y(), box.width, box.height), BOX_RADIUS, BOX_RADIUS
            )

        for segment in layout.segments:
            center = self._to_screen(origin_x, origin_y + config.line_center_y(segment.line))
            painter.setPen(QColor(segment.style.color))
            painter.drawText(
                QRectF(center.x(), center.y() - config.line_height / 2, 10000, config.line_height),
                Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter,
                segment.text,
            )

        for placement in layout.placements:
            if placement.scale <= 0:
                continue
            asset = self.assets.resolve(placement.handle)
            pixmap = asset.current_pixmap() if asset is not None else None
            if pixmap is None or pixmap.isNull():
                continue
            natural_width = placement.emote.width or pixmap.width()
            natural_height = placement.emote.height or pixmap.height()
            width = natural_width * placement.scale
            height = natural_height * placement.scale
            center = self._to_screen(origin_x + placement.x, origin_y + placement.y)
            painter.drawPixmap(
                QRectF(center.x() - width / 2, center.y() - height / 2, width, height),
                pixmap,
                QRectF(pixmap.rect()),
            )
