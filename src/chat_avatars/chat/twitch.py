"""Twitch IRC chat connection over WebSocket (anonymous, read-only)."""

import logging
import time
import uuid
from datetime import datetime, timezone

import aiohttp

from ..emotes.models import Emote
from ..emotes.provider import twitch_emote_hint
from .connection import BaseChatConnection, MessageCallback
from .models import ChatMessage

logger = logging.getLogger(__name__)

TWITCH_IRC_WS_URL = "wss://irc-ws.chat.twitch.tv:443"

# IRC capabilities to request
IRC_CAPS = [
    "twitch.tv/tags",
    "twitch.tv/commands",
]


def parse_irc_tags(tag_string: str) -> dict[str, str]:
    """Parse IRC tags string into a dictionary.

    Tags format: @key1=value1;key2=value2;...
    """
    tags: dict[str, str] = {}
    if not tag_string:
        return tags

    # Remove leading '@' if present
    if tag_string.startswith("@"):
        tag_string = tag_string[1:]

    for pair in tag_string.split(";"):
        if "=" in pair:
            key, value = pair.split("=", 1)
            # Unescape IRC tag values
            value = (
                value.replace("\\:", ";")
                .replace("\\s", " ")
                .replace("\\\\", "\\")
                .replace("\\r", "\r")
                .replace("\\n", "\n")
            )
            tags[key] = value
        else:
            tags[pair] = ""

    return tags


def parse_irc_message(raw: str) -> dict:
    """Parse a raw IRC message into components.

    Returns dict with keys: tags, prefix, command, params, trailing
    """
    result: dict = {"tags": {}, "prefix": "", "command": "", "params": [], "trailing": ""}

    pos = 0

    # Parse tags
    if raw.startswith("@"):
        space_idx = raw.find(" ")
        if space_idx < 0:
            return result
        result["tags"] = parse_irc_tags(raw[:space_idx])
        pos = space_idx + 1

    if pos >= len(raw):
        return result

    # Parse prefix
    if raw[pos] == ":":
        space_idx = raw.find(" ", pos)
        if space_idx < 0:
            return result
        result["prefix"] = raw[pos + 1 : space_idx]
        pos = space_idx + 1

    # Parse command and params
    trailing_idx = raw.find(" :", pos)
    if trailing_idx >= 0:
        result["trailing"] = raw[trailing_idx + 2 :]
        remaining = raw[pos:trailing_idx]
    else:
        remaining = raw[pos:]

    parts = remaining.split(" ")
    result["command"] = parts[0]
    result["params"] = parts[1:] if len(parts) > 1 else []

    return result


def parse_emote_tag(emotes_tag: str, text: str) -> list[tuple[str, str]]:
    """Resolve a Twitch emotes tag into (id, code) pairs.

    Format: emote_id:start-end,start-end/emote_id:start-end
    Positions are inclusive code point offsets into text. Each code is
    returned once, in order of first appearance.
    """
    if not emotes_tag:
        return []

    found: list[tuple[int, str, str]] = []
    for emote_section in emotes_tag.split("/"):
        if ":" not in emote_section:
            continue
        emote_id, ranges = emote_section.split(":", 1)
        for range_str in ranges.split(","):
            if "-" not in range_str:
                continue
            start_str, end_str = range_str.split("-", 1)
            try:
                start = int(start_str)
                end = int(end_str) + 1  # Twitch uses inclusive end
            except ValueError:
                continue
            if 0 <= start < end <= len(text):
                found.append((start, emote_id, text[start:end]))

    hints: list[tuple[str, str]] = []
    seen: set[str] = set()
    for _start, emote_id, code in sorted(found):
        if code in seen:
            continue
        seen.add(code)
        hints.append((emote_id, code))
    return hints


def parse_privmsg(parsed: dict) -> ChatMessage | None:
    """Build a ChatMessage from a parsed PRIVMSG."""
    tags = parsed["tags"]
    text = parsed["trailing"]

    # Check for /me action
    is_action = False
    if text.startswith("\x01ACTION ") and text.endswith("\x01"):
        is_action = True
        text = text[8:-1]

    username = parsed["prefix"].split("!")[0] if "!" in parsed["prefix"] else ""
    display_name = tags.get("display-name", "") or username
    if not display_name:
        return None

    emotes: tuple[Emote, ...] = tuple(
        twitch_emote_hint(emote_id, code)
        for emote_id, code in parse_emote_tag(tags.get("emotes", ""), text)
    )

    tmi_sent = tags.get("tmi-sent-ts", "")
    timestamp = datetime.now(timezone.utc)
    if tmi_sent:
        try:
            timestamp = datetime.fromtimestamp(int(tmi_sent) / 1000, tz=timezone.utc)
        except (ValueError, OSError):
            pass

    return ChatMessage(
        id=tags.get("id") or str(uuid.uuid4()),
        user=display_name,
        text=text,
        emotes=emotes,
        timestamp=timestamp,
        is_action=is_action,
    )


class TwitchChatConnection(BaseChatConnection):
    """Twitch IRC chat connection over WebSocket.

    Logs in anonymously (justinfan), joins one channel and delivers
    PRIVMSGs. Reconnects with exponential backoff until disconnect().
    """

    def __init__(self):
        super().__init__()
        self._nick = ""
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._session: aiohttp.ClientSession | None = None

    async def connect_to_channel(self, channel_id: str, on_message: MessageCallback) -> None:
        """Connect to a Twitch channel's chat and read until stopped."""
        self._should_stop = False
        channel = channel_id.lower().lstrip("#")

        while not self._should_stop:
            try:
                await self._connect(channel, on_message)
            except Exception as e:
                if not self._should_stop:
                    logger.error(f"Twitch IRC connection failed: {e!r}")
            finally:
                await self._cleanup()
                self._set_disconnected()

            if self._should_stop:
                break
            await self._sleep_with_backoff()

    async def disconnect(self) -> None:
        """Disconnect from the channel."""
        self._should_stop = True
        await self._cleanup()

    async def _connect(self, channel: str, on_message: MessageCallback) -> None:
        """Establish an anonymous IRC connection and run the read loop."""
        self._session = aiohttp.ClientSession()
        self._ws = await self._session.ws_connect(TWITCH_IRC_WS_URL, heartbeat=60)

        await self._ws.send_str(f"CAP REQ :{' '.join(IRC_CAPS)}")
        self._nick = f"justinfan{int(time.time()) % 100000}"
        logger.info(f"Twitch IRC: connecting as {self._nick} to #{channel}")
        await self._ws.send_str(f"NICK {self._nick}")
        await self._ws.send_str(f"JOIN #{channel}")

        self._set_connected(channel)
        self._reset_backoff()

        async for msg in self._ws:
            if self._should_stop:
                break
            if msg.type == aiohttp.WSMsgType.TEXT:
                for line in msg.data.split("\r\n"):
                    if line and not await self._handle_line(line, on_message):
                        return
            elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                break

    async def _handle_line(self, raw: str, on_message: MessageCallback) -> bool:
        """Handle a single IRC line. Returns False when the server asks us to reconnect."""
        if raw.startswith("PING"):
            if self._ws and not self._ws.closed:
                await self._ws.send_str(f"PONG {raw[5:]}")
            return True

        parsed = parse_irc_message(raw)
        command = parsed["command"]

        if command == "PRIVMSG":
            message = parse_privmsg(parsed)
            if message is None:
                logger.debug(f"Skipping malformed PRIVMSG: {raw[:200]}")
                return True
            logger.info(f"{message.user}: {message.text}")
            await on_message(message)
        elif command == "RECONNECT":
            logger.info("Twitch IRC: server requested reconnect")
            return False
        elif command == "NOTICE":
            logger.warning(f"Twitch IRC notice: {parsed['trailing']}")
        return True

    async def _cleanup(self) -> None:
        """Close the WebSocket and HTTP session."""
        ws, self._ws = self._ws, None
        session, self._session = self._session, None
        if ws is not None and not ws.closed:
            await ws.close()
        if session is not None and not session.closed:
            await session.close()
