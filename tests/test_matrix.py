import json
import re

import pytest
import responses

from notifykit.context import Cancelled, Context
from notifykit.service.matrix import (
    EVENT_MESSAGE,
    MSG_TEXT,
    Matrix,
    MatrixError,
    Message,
    create_message,
)


class FakeClient:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def send_message_event(self, room_id, event_type, content):
        self.calls.append((room_id, event_type, content))
        if self.error is not None:
            raise self.error
        return {}


def test_new_stores_options():
    service = Matrix("fake-user-id", "fake-home-server", "fake-home-server", "token")
    assert service.options.user_id == "fake-user-id"
    assert service.options.home_server == "fake-home-server"
    assert service.options.access_token == "token"


def test_create_message():
    assert create_message("fake-message") == Message(body="fake-message", msgtype=MSG_TEXT)


def test_message_to_dict_omits_empty_fields():
    assert create_message("fake-message").to_dict() == {"body": "fake-message", "msgtype": "m.text"}


def test_send_success():
    fake = FakeClient()
    service = Matrix("fake-user-id", "fake-room-id", "fake-home-server", "token", fake)
    service.send(Context(), "", "fake-message")
    assert fake.calls == [
        ("fake-room-id", EVENT_MESSAGE, Message(body="fake-message", msgtype=MSG_TEXT))
    ]


def test_send_error():
    boom = RuntimeError("some-error")
    fake = FakeClient(boom)
    service = Matrix("fake-user-id", "fake-room-id", "fake-home-server", "token", fake)
    with pytest.raises(MatrixError, match="failed to send message to the room using Matrix") as info:
        service.send(Context(), "", "fake-message")
    assert info.value.__cause__ is boom
    assert len(fake.calls) == 1


def test_send_cancelled():
    fake = FakeClient()
    service = Matrix("fake-user-id", "fake-room-id", "fake-home-server", "token", fake)
    ctx = Context()
    ctx.cancel()
    with pytest.raises(Cancelled):
        service.send(ctx, "", "fake-message")
    assert fake.calls == []


def test_default_client_puts_event():
    service = Matrix("fake-user-id", "fake-room-id", "fake-home-server", "token")
    pattern = re.compile(
        r"https://fake-home-server/_matrix/client/v3/rooms/fake-room-id/send/m\.room\.message/.+"
    )
    with responses.RequestsMock() as rsps:
        rsps.add(responses.PUT, pattern, json={"event_id": "$event"})
        result = service.send(Context(), "subject", "fake-message")
        request = rsps.calls[0].request
    assert result is None
    assert request.headers["Authorization"] == "Bearer token"
    assert json.loads(request.body) == {"body": "fake-message", "msgtype": "m.text"}


def test_default_client_http_error():
    service = Matrix("fake-user-id", "fake-room-id", "fake-home-server", "token")
    pattern = re.compile(r"https://fake-home-server/_matrix/client/v3/rooms/.+")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.PUT, pattern, status=403, json={"errcode": "M_FORBIDDEN"})
        with pytest.raises(MatrixError) as info:
            service.send(Context(), "", "fake-message")
    assert "403" in str(info.value.__cause__)