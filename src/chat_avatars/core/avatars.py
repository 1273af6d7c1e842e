"""Avatar state - spawn, random walk and inactivity despawn.

Positions use the overlay's y-up coordinates with the origin at the
centre of the viewport.
"""

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum

from .settings import AvatarSettings

logger = logging.getLogger(__name__)

SPAWN_HEIGHT_ABOVE_BOTTOM = 50.0


class AvatarAction(str, Enum):
    """Possible actions for an avatar."""

    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    STOP = "stop"


@dataclass
class Avatar:
    """An on-screen avatar for one chatter."""

    user: str
    x: float
    y: float
    action: AvatarAction = AvatarAction.STOP
    action_started: float = 0.0
    last_message_time: float = 0.0


class AvatarRegistry:
    """Tracks the avatars of active chatters."""

    def __init__(self, settings: AvatarSettings, rng: random.Random | None = None):
        self.settings = settings
        self._rng = rng or random.Random()
        self._avatars: dict[str, Avatar] = {}

    def __len__(self) -> int:
        return len(self._avatars)

    def __contains__(self, user: object) -> bool:
        return user in self._avatars

    def __iter__(self):
        return iter(list(self._avatars.values()))

    def get(self, user: str) -> Avatar | None:
        return self._avatars.get(user)

    def touch(
        self,
        user: str,
        viewport_width: float,
        viewport_height: float,
        now: float | None = None,
    ) -> Avatar:
        """Record activity for user, spawning an avatar if needed."""
        if now is None:
            now = time.monotonic()
        avatar = self._avatars.get(user)
        if avatar is not None:
            avatar.last_message_time = now
            return avatar

        # Middle third of the viewport
        spread = viewport_width / 6
        avatar = Avatar(
            user=user,
            x=self._rng.uniform(-spread, spread) if spread > 0 else 0.0,
            y=-(viewport_height / 2) + SPAWN_HEIGHT_ABOVE_BOTTOM,
            action_started=now,
            last_message_time=now,
        )
        self._avatars[user] = avatar
        logger.info(f"New user: {user}")
        return avatar

    def step(self, dt: float, viewport_width: float, now: float | None = None) -> None:
        """Advance every avatar by dt seconds."""
        if now is None:
            now = time.monotonic()
        half_width = viewport_width / 2
        for avatar in self._avatars.values():
            if now - avatar.action_started > self._action_wait(avatar.action):
                avatar.action = self._pick_action(avatar, half_width)
                avatar.action_started = now

            if avatar.action is AvatarAction.MOVE_LEFT:
                avatar.x -= self.settings.move_speed * dt
            elif avatar.action is AvatarAction.MOVE_RIGHT:
                avatar.x += self.settings.move_speed * dt

    def despawn_inactive(self, now: float | None = None) -> list[str]:
        """Remove avatars idle for longer than user_despawn_secs."""
        if now is None:
            now = time.monotonic()
        expired = [
            user
            for user, avatar in self._avatars.items()
            if now - avatar.last_message_time > self.settings.user_despawn_secs
        ]
        for user in expired:
            logger.info(f"Despawning user: {user}")
            del self._avatars[user]
        return expired

    def _action_wait(self, action: AvatarAction) -> float:
        if action is AvatarAction.STOP:
            return self.settings.wait_duration_ms / 1000
        return self.settings.action_duration_ms / 1000

    def _pick_action(self, avatar: Avatar, half_width: float) -> AvatarAction:
        buffer = self.settings.edge_buffer
        close_to_left_edge = avatar.x <= -half_width + buffer
        close_to_right_edge = avatar.x >= half_width - buffer

        roll = self._rng.randrange(3)
        if roll == 0:
            return AvatarAction.MOVE_RIGHT if close_to_left_edge else AvatarAction.MOVE_LEFT
        if roll == 1:
            return AvatarAction.MOVE_LEFT if close_to_right_edge else AvatarAction.MOVE_RIGHT
        return AvatarAction.STOP
