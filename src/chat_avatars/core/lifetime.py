"""Message lifetime tracking."""

import time


class MessageLifetimeTracker:
    """Records when each displayed message was spawned."""

    def __init__(self, lifetime_seconds: float):
        self.lifetime_seconds = lifetime_seconds
        self._spawned: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._spawned)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._spawned

    def spawn(self, message_id: str, now: float | None = None) -> None:
        self._spawned[message_id] = time.monotonic() if now is None else now

    def discard(self, message_id: str) -> None:
        self._spawned.pop(message_id, None)

    def pop_expired(self, now: float | None = None) -> list[str]:
        """Remove and return ids older than the configured lifetime."""
        if now is None:
            now = time.monotonic()
        expired = [
            message_id
            for message_id, spawned_at in self._spawned.items()
            if now - spawned_at > self.lifetime_seconds
        ]
        for message_id in expired:
            del self._spawned[message_id]
        return expired
