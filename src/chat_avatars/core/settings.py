"""Settings management for Chat Avatars."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from appdirs import user_config_dir

from ..layout.engine import LayoutConfig

logger = logging.getLogger(__name__)

APP_NAME = "chat-avatars"
APP_AUTHOR = "chat-avatars"

DEFAULT_AVATAR_URL = "https://cdn.7tv.app/emote/66bd095b0d8502f0629f69de/4x.webp"


def get_config_dir() -> Path:
    """Get the configuration directory."""
    path = Path(user_config_dir(APP_NAME, APP_AUTHOR))
    path.mkdir(parents=True, exist_ok=True)
    return path


@dataclass
class ChannelSettings:
    """Which Twitch channel to follow."""

    channel_name: str = ""  # IRC channel (login name)
    channel_id: str = ""  # Numeric Twitch user ID, used for 7TV lookup
    seventv_url: str = "https://7tv.io/v3"


@dataclass
class AvatarSettings:
    """Avatar appearance and movement."""

    avatar_url: str = DEFAULT_AVATAR_URL
    scale: float = 0.5
    action_duration_ms: int = 800
    wait_duration_ms: int = 2000
    move_speed: float = 100.0  # pixels per second
    user_despawn_secs: int = 1800  # 30 minutes
    edge_buffer: float = 100.0


@dataclass
class MessageSettings:
    """Message box layout and lifetime."""

    font_family: str = "DejaVu Sans Mono"  # Must be monospaced
    font_size: float = 20.0
    emote_size_multiplier: float = 1.7
    message_box_width: float = 250.0
    message_box_vertical_offset: float = 150.0
    message_despawn_ms: int = 10000
    channel_capacity: int = 100  # Max resolved messages waiting for display

    def layout_config(self) -> LayoutConfig:
        """Geometry for the layout engine."""
        return LayoutConfig(
            font_size=self.font_size,
            emote_size_multiplier=self.emote_size_multiplier,
            box_width=self.message_box_width,
            vertical_offset=self.message_box_vertical_offset,
        )


@dataclass
class Settings:
    """Application settings."""

    channel: ChannelSettings = field(default_factory=ChannelSettings)
    avatars: AvatarSettings = field(default_factory=AvatarSettings)
    messages: MessageSettings = field(default_factory=MessageSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from file. Missing or corrupt files give defaults."""
        if path is None:
            path = get_config_dir() / "settings.json"

        if not path.exists():
            logger.info(f"No settings file at {path}, using defaults")
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return cls._from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Invalid settings file {path}: {e}, using defaults")
            return cls()

    def save(self, path: Path | None = None) -> None:
        """Save settings to file."""
        if path is None:
            path = get_config_dir() / "settings.json"

        path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: write to temp file then rename to prevent corruption on crash
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix="settings_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._to_dict(), f, indent=2)
            os.replace(tmp_path, path)  # Atomic on POSIX
        except Exception:
            # Clean up temp file on error
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    @staticmethod
    def _validate_int(value, default: int, min_val: int = 0, max_val: int | None = None) -> int:
        """Validate and constrain an integer value."""
        if not isinstance(value, int) or isinstance(value, bool):
            return default
        if value < min_val:
            return min_val
        if max_val is not None and value > max_val:
            return max_val
        return value

    @staticmethod
    def _validate_float(
        value, default: float, min_val: float = 0.0, max_val: float | None = None
    ) -> float:
        """Validate and constrain a float value (ints are accepted)."""
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return default
        value = float(value)
        if value < min_val:
            return min_val
        if max_val is not None and value > max_val:
            return max_val
        return value

    @classmethod
    def _from_dict(cls, data: dict) -> "Settings":
        """Create Settings from a dictionary with validation."""
        settings = cls()

        if "channel" in data:
            c = data["channel"]
            settings.channel = ChannelSettings(
                channel_name=str(c.get("channel_name") or "").lstrip("#").lower(),
                channel_id=str(c.get("channel_id") or ""),
                seventv_url=str(c.get("seventv_url") or settings.channel.seventv_url),
            )

        if "avatars" in data:
            a = data["avatars"]
            defaults = AvatarSettings()
            settings.avatars = AvatarSettings(
                avatar_url=str(a.get("avatar_url") or defaults.avatar_url),
                scale=cls._validate_float(a.get("scale"), defaults.scale, 0.01, 10.0),
                action_duration_ms=cls._validate_int(
                    a.get("action_duration_ms"), defaults.action_duration_ms, 50, 60000
                ),
                wait_duration_ms=cls._validate_int(
                    a.get("wait_duration_ms"), defaults.wait_duration_ms, 50, 60000
                ),
                move_speed=cls._validate_float(
                    a.get("move_speed"), defaults.move_speed, 0.0, 2000.0
                ),
                user_despawn_secs=cls._validate_int(
                    a.get("user_despawn_secs"), defaults.user_despawn_secs, 10, 86400
                ),
                edge_buffer=cls._validate_float(a.get("edge_buffer"), defaults.edge_buffer),
            )

        if "messages" in data:
            m = data["messages"]
            defaults = MessageSettings()
            settings.messages = MessageSettings(
                font_family=str(m.get("font_family") or defaults.font_family),
                font_size=cls._validate_float(m.get("font_size"), defaults.font_size, 4.0, 200.0),
                emote_size_multiplier=cls._validate_float(
                    m.get("emote_size_multiplier"), defaults.emote_size_multiplier, 0.1, 10.0
                ),
                message_box_width=cls._validate_float(
                    m.get("message_box_width"), defaults.message_box_width, 20.0
                ),
                message_box_vertical_offset=cls._validate_float(
                    m.get("message_box_vertical_offset"),
                    defaults.message_box_vertical_offset,
                    min_val=-10000.0,
                ),
                message_despawn_ms=cls._validate_int(
                    m.get("message_despawn_ms"), defaults.message_despawn_ms, 500
                ),
                channel_capacity=cls._validate_int(
                    m.get("channel_capacity"), defaults.channel_capacity, 1, 10000
                ),
            )

        return settings

    def _to_dict(self) -> dict:
        """Convert Settings to a dictionary."""
        return {
            "channel": {
                "channel_name": self.channel.channel_name,
                "channel_id": self.channel.channel_id,
                "seventv_url": self.channel.seventv_url,
            },
            "avatars": {
                "avatar_url": self.avatars.avatar_url,
                "scale": self.avatars.scale,
                "action_duration_ms": self.avatars.action_duration_ms,
                "wait_duration_ms": self.avatars.wait_duration_ms,
                "move_speed": self.avatars.move_speed,
                "user_despawn_secs": self.avatars.user_despawn_secs,
                "edge_buffer": self.avatars.edge_buffer,
            },
            "messages": {
                "font_family": self.messages.font_family,
                "font_size": self.messages.font_size,
                "emote_size_multiplier": self.messages.emote_size_multiplier,
                "message_box_width": self.messages.message_box_width,
                "message_box_vertical_offset": self.messages.message_box_vertical_offset,
                "message_despawn_ms": self.messages.message_despawn_ms,
                "channel_capacity": self.messages.channel_capacity,
            },
        }
