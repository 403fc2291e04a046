"""Push notifications delivered to the Bark app through one or more Bark servers.

A device key is generated when the app is installed. Messages go to the
default server unless other servers are given::

    service = Service("device key")
    service = Service("device key", "bark.example.com")
    service.send(Context(), "Subject", "The actual message")
"""

from __future__ import annotations

import json
from typing import Optional

import requests

from notifykit.context import Context

DEFAULT_SERVER_URL = "https://api.day.app/"
_TIMEOUT_SECONDS = 5.0
_SOUND = "alarm.caf"


class BarkError(Exception):
    """Raised when a message could not be delivered to a Bark server."""


def normalize_server_url(server_url: str) -> str:
    """Return ``server_url`` with an https scheme and a trailing slash.

    An empty URL yields :data:`DEFAULT_SERVER_URL`. The URL is not validated.
    """
    if not server_url:
        return DEFAULT_SERVER_URL
    if not server_url.startswith("http"):
        server_url = "https://" + server_url
    if not server_url.endswith("/"):
        server_url += "/"
    return server_url


class Service:
    """Sends messages to a Bark device through a list of servers."""

    def __init__(self, device_key: str, *server_urls: str) -> None:
        self._device_key = device_key
        self.client: Optional[requests.Session] = requests.Session()
        self._server_urls: list[str] = []
        self.add_receivers(*(server_urls or (DEFAULT_SERVER_URL,)))

    @property
    def server_urls(self) -> tuple[str, ...]:
        """The normalized server URLs, in order."""
        return tuple(self._server_urls)

    def add_receivers(self, *server_urls: str) -> None:
        """Add servers that every message is sent through."""
        self._server_urls.extend(normalize_server_url(url) for url in server_urls)

    def _payload(self, subject: str, content: str) -> bytes:
        data = {"device_key": self._device_key, "title": subject}
        if content:
            data["body"] = content
        data["sound"] = _SOUND
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    def _send(self, client: requests.Session, server_url: str, subject: str, content: str) -> None:
        if not server_url:
            raise BarkError("server url is empty")
        try:
            resp = client.post(
                server_url + "push",
                data=self._payload(subject, content),
                headers={"Content-Type": "application/json; charset=utf-8"},
                timeout=_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise BarkError(f"send request: {exc}") from exc
        with resp:
            if resp.status_code != 200:
                raise BarkError(f"bark returned status code {resp.status_code}: {resp.text}")

    def send(self, ctx: Optional[Context], subject: str, content: str) -> None:
        """Send the subject and content through every server in order."""
        client = self.client
        if client is None:
            raise BarkError("client is nil")
        for server_url in self._server_urls:
            if ctx is not None:
                ctx.check()
            try:
                self._send(client, server_url, subject, content)
            except BarkError as exc:
                raise BarkError(
                    f'failed to send message to bark server "{server_url}": {exc}'
                ) from exc