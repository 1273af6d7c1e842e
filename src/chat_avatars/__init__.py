"""Chat Avatars - Twitch chat rendered as avatars with speech boxes."""

from .__version__ import __version__

__all__ = ["__version__"]
