"""Text messages delivered to a DingTalk group robot."""

from __future__ import annotations

import base64
import hashlib
import hmac
import time
from dataclasses import dataclass, replace
from typing import Optional, Protocol

import requests

from notifykit.context import Context

API_URL = "https://oapi.dingtalk.com/robot/send"
_TIMEOUT_SECONDS = 10.0


class DingTalkError(Exception):
    """Raised when a message could not be delivered to DingTalk."""


@dataclass
class Config:
    """Robot access token and signing secret."""

    token: str = ""
    secret: str = ""


class TextSender(Protocol):
    """Delivers a plain text message."""

    def send_text_message(self, text: str) -> None:
        """Deliver ``text``; raise on failure."""


class _RobotClient:
    """Posts text messages to a robot webhook, signing them when a secret is set."""

    def __init__(self, token: str, secret: str, session: Optional[requests.Session] = None) -> None:
        self._token = token
        self._secret = secret
        self._session = session or requests.Session()

    def _params(self) -> dict[str, str]:
        params = {"access_token": self._token}
        if self._secret:
            timestamp = str(int(time.time() * 1000))
            digest = hmac.new(
                self._secret.encode("utf-8"),
                f"{timestamp}\n{self._secret}".encode("utf-8"),
                hashlib.sha256,
            ).digest()
            params["timestamp"] = timestamp
            params["sign"] = base64.b64encode(digest).decode("ascii")
        return params

    def send_text_message(self, text: str) -> None:
        try:
            resp = self._session.post(
                API_URL,
                params=self._params(),
                json={"msgtype": "text", "text": {"content": text}},
                timeout=_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise DingTalkError(str(exc)) from exc
        with resp:
            if resp.status_code != 200:
                raise DingTalkError(f"dingtalk returned status code {resp.status_code}")
            try:
                result = resp.json()
            except ValueError as exc:
                raise DingTalkError(f"invalid response: {exc}") from exc
        if result.get("errcode", 0) != 0:
            raise DingTalkError(f"{result.get('errcode')}: {result.get('errmsg', '')}")


class Service:
    """Sends messages to a DingTalk robot."""

    def __init__(self, config: Config, client: Optional[TextSender] = None) -> None:
        self.config = replace(config)
        self.client: TextSender = (
            client if client is not None else _RobotClient(config.token, config.secret)
        )

    def send(self, ctx: Optional[Context], subject: str, content: str) -> None:
        """Send the subject and content as one text message."""
        if ctx is not None:
            ctx.check()
        text = subject + "\n" + content
        try:
            self.client.send_text_message(text)
        except Exception as exc:
            raise DingTalkError(f"failed to send message: {exc}") from exc