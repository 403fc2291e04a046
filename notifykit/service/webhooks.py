"""Notifications delivered as HTTP requests to webhook endpoints.

Each :class:`Webhook` names the endpoint URL, the request method, the content
type and a function that builds the payload from the subject and message.
Pre-send hooks may inspect or change a request before it goes out; post-send
hooks see the request together with its response. Hooks run in the order
they were registered, and a hook reports failure by raising.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

import requests
from requests.structures import CaseInsensitiveDict

from notifykit.context import Context

PreSendHook = Callable[[requests.PreparedRequest], None]
PostSendHook = Callable[[requests.PreparedRequest, requests.Response], None]
BuildPayload = Callable[[str, str], Any]

_DEFAULT_USER_AGENT = "notifykit"
_DEFAULT_CONTENT_TYPE = "application/json; charset=utf-8"
_DEFAULT_REQUEST_METHOD = "POST"

SUBJECT_KEY = "subject"
MESSAGE_KEY = "message"

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class WebhookError(Exception):
    """Raised when a webhook request could not be built, sent or accepted."""


class MarshalError(WebhookError):
    """Raised when a payload cannot be serialized for its content type."""


class Serializer(Protocol):
    """Turns a payload into the raw request body for a content type."""

    def marshal(self, content_type: str, payload: Any) -> bytes:
        """Return the serialized payload; raise if it cannot be serialized."""


class DefaultMarshaller:
    """Serializes payloads as JSON or plain text, chosen by content type."""

    def marshal(self, content_type: str, payload: Any) -> bytes:
        """Serialize ``payload`` for ``content_type``.

        ``application/json`` payloads become compact JSON with sorted keys;
        ``text/plain`` payloads must be strings. Anything else is rejected.
        """
        if content_type.startswith("application/json"):
            try:
                text = json.dumps(
                    payload,
                    separators=(",", ":"),
                    sort_keys=True,
                    ensure_ascii=False,
                    allow_nan=False,
                )
            except (TypeError, ValueError) as exc:
                raise MarshalError(f"marshal json: {exc}") from exc
            for char, escaped in _JSON_ESCAPES.items():
                text = text.replace(char, escaped)
            return text.encode("utf-8")
        if content_type.startswith("text/plain"):
            if not isinstance(payload, str):
                raise MarshalError(
                    f"payload was expected to be string, but was {type(payload).__name__}"
                )
            return payload.encode("utf-8")
        raise MarshalError("unsupported content type")


def build_default_payload(subject: str, message: str) -> dict[str, str]:
    """Build a mapping holding the subject and the message."""
    return {SUBJECT_KEY: subject, MESSAGE_KEY: message}


@dataclass
class Webhook:
    """A single HTTP endpoint that receives notifications."""

    url: str = ""
    method: str = ""
    content_type: str = ""
    header: dict[str, str] = field(default_factory=dict)
    build_payload: BuildPayload = build_default_payload

    def __str__(self) -> str:
        return f"{self.method.upper()} {self.url} {self.content_type}".strip()


def new_webhook(url: str) -> Webhook:
    """Return a webhook that POSTs a JSON payload to ``url``."""
    return Webhook(
        url=url,
        method=_DEFAULT_REQUEST_METHOD,
        content_type=_DEFAULT_CONTENT_TYPE,
        header={},
        build_payload=build_default_payload,
    )


class Service:
    """Sends notifications to a list of webhooks."""

    def __init__(self) -> None:
        self._client = requests.Session()
        self._webhooks: list[Optional[Webhook]] = []
        self._pre_send_hooks: list[PreSendHook] = []
        self._post_send_hooks: list[PostSendHook] = []
        self.serializer: Serializer = DefaultMarshaller()

    @property
    def client(self) -> requests.Session:
        """The session used to send requests."""
        return self._client

    @property
    def webhooks(self) -> tuple[Optional[Webhook], ...]:
        """The registered webhooks, in order."""
        return tuple(self._webhooks)

    @property
    def pre_send_hooks(self) -> tuple[PreSendHook, ...]:
        """The registered pre-send hooks, in order."""
        return tuple(self._pre_send_hooks)

    @property
    def post_send_hooks(self) -> tuple[PostSendHook, ...]:
        """The registered post-send hooks, in order."""
        return tuple(self._post_send_hooks)

    def add_receivers(self, *webhooks: Optional[Webhook]) -> None:
        """Add webhooks as receivers."""
        self._webhooks.extend(webhooks)

    def add_receivers_urls(self, *urls: str) -> None:
        """Add URLs as receivers using JSON over POST."""
        self.add_receivers(*(new_webhook(url) for url in urls))

    def with_client(self, client: Optional[requests.Session]) -> None:
        """Use ``client`` for sending requests; None leaves the current one."""
        if client is not None:
            self._client = client

    def pre_send(self, hook: PreSendHook) -> None:
        """Register a hook that runs before each request is sent."""
        self._pre_send_hooks.append(hook)

    def post_send(self, hook: PostSendHook) -> None:
        """Register a hook that runs after each response is received."""
        self._post_send_hooks.append(hook)

    def _new_request(self, webhook: Webhook, payload: bytes) -> requests.PreparedRequest:
        headers: CaseInsensitiveDict = CaseInsensitiveDict(webhook.header)
        if not headers.get("User-Agent"):
            headers["User-Agent"] = _DEFAULT_USER_AGENT
        if not headers.get("Content-Type"):
            headers["Content-Type"] = webhook.content_type
        request = requests.Request(webhook.method, webhook.url, headers=headers, data=payload)
        return self._client.prepare_request(request)

    def _run_pre_send_hooks(self, req: requests.PreparedRequest) -> None:
        for hook in self._pre_send_hooks:
            try:
                hook(req)
            except Exception as exc:
                raise WebhookError(f"pre-send hooks: {exc}") from exc

    def _run_post_send_hooks(self, req: requests.PreparedRequest, resp: requests.Response) -> None:
        for hook in self._post_send_hooks:
            try:
                hook(req, resp)
            except Exception as exc:
                raise WebhookError(f"post-send hooks: {exc}") from exc

    def _do(self, req: requests.PreparedRequest) -> None:
        self._run_pre_send_hooks(req)
        # Hooks may have replaced the body; keep the length header in step.
        req.prepare_content_length(req.body)
        try:
            resp = self._client.send(req)
        except requests.RequestException as exc:
            raise WebhookError(str(exc)) from exc
        try:
            self._run_post_send_hooks(req, resp)
            if not 200 <= resp.status_code < 300:
                raise WebhookError(f"responded with status code: {resp.status_code}")
        finally:
            resp.close()

    def _send(self, webhook: Webhook, payload: bytes) -> None:
        try:
            req = self._new_request(webhook, payload)
        except (requests.RequestException, ValueError) as exc:
            raise WebhookError(f"create request {str(webhook)!r}: {exc}") from exc
        self._do(req)

    def send(self, ctx: Optional[Context], subject: str, message: str) -> None:
        """Send the subject and message to every webhook in order.

        Raises :class:`~notifykit.context.Cancelled` if ``ctx`` is cancelled
        and :class:`WebhookError` on the first failing webhook.
        """
        for webhook in self._webhooks:
            if ctx is not None:
                ctx.check()
            if webhook is None:
                continue
            payload = webhook.build_payload(subject, message)
            try:
                raw = self.serializer.marshal(webhook.content_type, payload)
            except Exception as exc:
                raise WebhookError(f"marshal payload: {exc}") from exc
            try:
                self._send(webhook, raw)
            except WebhookError as exc:
                raise WebhookError(f"send request {str(webhook)!r}: {exc}") from exc