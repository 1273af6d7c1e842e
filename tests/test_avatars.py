"""Tests for avatar spawning, movement and despawn."""

import random

import pytest

from chat_avatars.core.avatars import SPAWN_HEIGHT_ABOVE_BOTTOM, AvatarAction, AvatarRegistry
from chat_avatars.core.settings import AvatarSettings


@pytest.fixture
def avatar_settings():
    return AvatarSettings(
        action_duration_ms=800,
        wait_duration_ms=2000,
        move_speed=100.0,
        user_despawn_secs=60,
        edge_buffer=100.0,
    )


@pytest.fixture
def registry(avatar_settings):
    return AvatarRegistry(avatar_settings, rng=random.Random(42))


def test_touch_spawns_within_middle_of_screen(registry):
    avatar = registry.touch("alice", 900, 600, now=0.0)

    assert -150 <= avatar.x <= 150
    assert avatar.y == -300 + SPAWN_HEIGHT_ABOVE_BOTTOM
    assert avatar.action is AvatarAction.STOP
    assert len(registry) == 1


def test_touch_existing_updates_activity(registry):
    first = registry.touch("alice", 900, 600, now=0.0)
    x = first.x
    second = registry.touch("alice", 900, 600, now=30.0)

    assert second is first
    assert second.x == x
    assert second.last_message_time == 30.0


def test_stopped_avatar_waits_before_acting(registry):
    avatar = registry.touch("alice", 900, 600, now=0.0)
    registry.step(0.5, 900, now=1.0)

    assert avatar.action is AvatarAction.STOP
    assert avatar.action_started == 0.0


def test_avatar_moves_after_wait(registry, avatar_settings):
    avatar = registry.touch("alice", 900, 600, now=0.0)
    avatar.action = AvatarAction.MOVE_RIGHT
    start_x = avatar.x

    registry.step(0.5, 900, now=0.1)

    assert avatar.x == pytest.approx(start_x + avatar_settings.move_speed * 0.5)


def test_avatar_picks_new_action_after_duration(registry):
    avatar = registry.touch("alice", 900, 600, now=0.0)
    registry.step(0.016, 900, now=2.5)

    assert avatar.action_started == 2.5


def test_edge_steering(avatar_settings):
    class FixedRoll(random.Random):
        def randrange(self, *args, **kwargs):
            return 0  # Always "move left"

    registry = AvatarRegistry(avatar_settings, rng=FixedRoll())
    avatar = registry.touch("alice", 1000, 600, now=0.0)

    avatar.x = -480  # Inside the left edge buffer
    registry.step(0.0, 1000, now=5.0)
    assert avatar.action is AvatarAction.MOVE_RIGHT

    avatar.x = 0
    avatar.action = AvatarAction.STOP
    registry.step(0.0, 1000, now=10.0)
    assert avatar.action is AvatarAction.MOVE_LEFT


def test_despawn_inactive(registry, avatar_settings):
    registry.touch("alice", 900, 600, now=0.0)
    registry.touch("bob", 900, 600, now=50.0)

    expired = registry.despawn_inactive(now=avatar_settings.user_despawn_secs + 1)

    assert expired == ["alice"]
    assert "alice" not in registry
    assert registry.get("bob") is not None
