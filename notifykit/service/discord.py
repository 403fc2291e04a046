"""Messages delivered to Discord channels."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import requests

from notifykit.context import Context

API_BASE = "https://discord.com/api/v9"
_TIMEOUT_SECONDS = 10.0


class DiscordError(Exception):
    """Raised when a message could not be delivered to Discord."""


class ChannelSender(Protocol):
    """Posts a text message to a channel."""

    def channel_message_send(self, channel_id: str, content: str) -> Any:
        """Post ``content`` to the channel; raise on failure."""


class _RestSession:
    """Minimal REST client that posts channel messages."""

    def __init__(self, token: str = "", session: Optional[requests.Session] = None) -> None:
        self.token = token
        self._http = session or requests.Session()

    def channel_message_send(self, channel_id: str, content: str) -> Any:
        headers = {"Authorization": self.token} if self.token else {}
        try:
            resp = self._http.post(
                f"{API_BASE}/channels/{channel_id}/messages",
                json={"content": content},
                headers=headers,
                timeout=_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise DiscordError(str(exc)) from exc
        with resp:
            if not 200 <= resp.status_code < 300:
                raise DiscordError(f"HTTP {resp.status_code}: {resp.text}")
            try:
                return resp.json()
            except ValueError:
                return None


class Discord:
    """Sends messages to a list of Discord channels."""

    def __init__(self) -> None:
        self.client: ChannelSender = _RestSession()
        self._channel_ids: list[str] = []

    @property
    def channel_ids(self) -> tuple[str, ...]:
        """The receiving channel IDs, in order."""
        return tuple(self._channel_ids)

    def _authenticate(self, token: str) -> None:
        self.client = _RestSession(token)

    def authenticate_with_bot_token(self, token: str) -> None:
        """Authenticate as a bot with the given token."""
        self._authenticate("Bot " + token)

    def authenticate_with_oauth2_token(self, token: str) -> None:
        """Authenticate with the given OAuth2 token."""
        self._authenticate("Bearer " + token)

    def add_receivers(self, *channel_ids: str) -> None:
        """Add channels that every message is sent to."""
        self._channel_ids.extend(channel_ids)

    def send(self, ctx: Optional[Context], subject: str, message: str) -> None:
        """Send the subject as title line followed by the message to every channel."""
        full_message = subject + "\n" + message
        for channel_id in self._channel_ids:
            if ctx is not None:
                ctx.check()
            try:
                self.client.channel_message_send(channel_id, full_message)
            except Exception as exc:
                raise DiscordError(
                    f"failed to send message to Discord channel '{channel_id}': {exc}"
                ) from exc