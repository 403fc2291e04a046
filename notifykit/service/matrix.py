"""Messages delivered to a Matrix room.

You need an account, an access token and the ID of the room::

    service = Matrix("@user:example.com", "!room:example.com", "matrix.example.com", "token")
    service.send(Context(), "subject", "message")
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol
from urllib.parse import quote

import requests

from notifykit.context import Context

EVENT_MESSAGE = "m.room.message"
MSG_TEXT = "m.text"
_TIMEOUT_SECONDS = 10.0


class MatrixError(Exception):
    """Raised when a message could not be delivered to Matrix."""


@dataclass(frozen=True)
class ServiceOptions:
    """Connection settings of a Matrix service."""

    home_server: str
    access_token: str
    user_id: str
    room_id: str


@dataclass
class Message:
    """Content of a room message event."""

    body: str
    msgtype: str
    format: str = ""
    formatted_body: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the event content, leaving out empty optional fields."""
        content = {"body": self.body}
        if self.format:
            content["format"] = self.format
        if self.formatted_body:
            content["formatted_body"] = self.formatted_body
        content["msgtype"] = self.msgtype
        return content


def create_message(message: str) -> Message:
    """Return a plain text message holding ``message``."""
    return Message(body=message, msgtype=MSG_TEXT)


class MessageEventSender(Protocol):
    """Sends events into a room."""

    def send_message_event(self, room_id: str, event_type: str, content: Any) -> Any:
        """Send ``content`` as an event of ``event_type``; raise on failure."""


def _normalize_base_url(home_server: str) -> str:
    if not home_server.startswith("http"):
        home_server = "https://" + home_server
    return home_server.rstrip("/")


class _HttpClient:
    """Client-server API client that sends room events."""

    _txn_counter = itertools.count()

    def __init__(
        self,
        home_server: str,
        user_id: str,
        access_token: str,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = _normalize_base_url(home_server)
        self._user_id = user_id
        self._access_token = access_token
        self._session = session or requests.Session()

    def _txn_id(self) -> str:
        return f"notifykit_{time.time_ns()}_{next(self._txn_counter)}"

    def send_message_event(self, room_id: str, event_type: str, content: Any) -> Any:
        body = content.to_dict() if isinstance(content, Message) else content
        url = "/".join(
            (
                self._base_url,
                "_matrix/client/v3/rooms",
                quote(room_id, safe=""),
                "send",
                quote(event_type, safe=""),
                quote(self._txn_id(), safe=""),
            )
        )
        try:
            resp = self._session.put(
                url,
                json=body,
                headers={"Authorization": "Bearer " + self._access_token},
                timeout=_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise MatrixError(str(exc)) from exc
        with resp:
            if not 200 <= resp.status_code < 300:
                raise MatrixError(f"HTTP {resp.status_code}: {resp.text}")
            try:
                return resp.json()
            except ValueError as exc:
                raise MatrixError(f"invalid response: {exc}") from exc


class Matrix:
    """Sends messages to a single Matrix room."""

    def __init__(
        self,
        user_id: str,
        room_id: str,
        home_server: str,
        access_token: str,
        client: Optional[MessageEventSender] = None,
    ) -> None:
        self.options = ServiceOptions(
            home_server=home_server,
            access_token=access_token,
            user_id=user_id,
            room_id=room_id,
        )
        self.client: MessageEventSender = (
            client if client is not None else _HttpClient(home_server, user_id, access_token)
        )

    def send(self, ctx: Optional[Context], subject: str, message: str) -> None:
        """Send the message to the room; the subject is not used."""
        content = create_message(message)
        if ctx is not None:
            ctx.check()
        try:
            self.client.send_message_event(self.options.room_id, EVENT_MESSAGE, content)
        except Exception as exc:
            raise MatrixError("failed to send message to the room using Matrix") from exc