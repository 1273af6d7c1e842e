"""Tests for Settings load/save and validation."""

import json

from chat_avatars.core.settings import AvatarSettings, MessageSettings, Settings
from chat_avatars.emotes.provider import SEVENTV_BASE_URL, SevenTVProvider


def test_missing_file_gives_defaults(tmp_path):
    settings = Settings.load(tmp_path / "settings.json")
    assert settings == Settings()


def test_save_and_load_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    settings = Settings()
    settings.channel.channel_name = "somechannel"
    settings.channel.channel_id = "12345"
    settings.avatars.move_speed = 250.0
    settings.messages.font_size = 24.0
    settings.save(path)

    loaded = Settings.load(path)

    assert loaded == settings
    assert list(tmp_path.iterdir()) == [path]


def test_corrupt_file_gives_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert Settings.load(path) == Settings()


def test_channel_name_normalized(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"channel": {"channel_name": "#SomeChannel"}}), encoding="utf-8")
    assert Settings.load(path).channel.channel_name == "somechannel"


def test_invalid_values_fall_back_or_clamp(tmp_path):
    path = tmp_path / "settings.json"
    data = {
        "avatars": {"move_speed": "fast", "user_despawn_secs": 1, "scale": True},
        "messages": {"font_size": 1000, "channel_capacity": 0, "message_despawn_ms": 2.5},
    }
    path.write_text(json.dumps(data), encoding="utf-8")

    settings = Settings.load(path)

    assert settings.avatars.move_speed == AvatarSettings().move_speed
    assert settings.avatars.user_despawn_secs == 10
    assert settings.avatars.scale == AvatarSettings().scale
    assert settings.messages.font_size == 200.0
    assert settings.messages.channel_capacity == 1
    assert settings.messages.message_despawn_ms == MessageSettings().message_despawn_ms


def test_layout_config_from_message_settings():
    messages = MessageSettings(font_size=30, message_box_width=320, message_box_vertical_offset=90)
    config = messages.layout_config()

    assert config.font_size == 30
    assert config.box_width == 320
    assert config.vertical_offset == 90
    assert config.emote_size_multiplier == messages.emote_size_multiplier


def test_non_string_urls_are_coerced(tmp_path):
    path = tmp_path / "settings.json"
    data = {
        "channel": {"channel_name": "chan", "channel_id": 12345, "seventv_url": 42},
        "avatars": {"avatar_url": None},
        "messages": {"font_family": ["Mono"]},
    }
    path.write_text(json.dumps(data), encoding="utf-8")

    settings = Settings.load(path)

    assert settings.channel.seventv_url == "42"
    assert settings.channel.channel_id == "12345"
    assert settings.avatars.avatar_url == AvatarSettings().avatar_url
    assert isinstance(settings.messages.font_family, str)
    # The provider accepts whatever the settings produced
    assert SevenTVProvider(settings.channel.seventv_url).base_url == "42"


def test_missing_seventv_url_uses_default(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"channel": {"seventv_url": None}}), encoding="utf-8")

    assert Settings.load(path).channel.seventv_url == SEVENTV_BASE_URL
