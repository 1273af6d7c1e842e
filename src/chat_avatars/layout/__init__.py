"""Message layout engine."""

from .engine import LayoutConfig, MessageLayout, layout_message

__all__ = ["LayoutConfig", "MessageLayout", "layout_message"]
