from unittest import mock

import pytest

from notifykit.context import Cancelled, Context
from notifykit.service.mail import BodyType, Mail, MailError


def test_new_email_html():
    m = Mail("foo", "server")
    mail = m._new_email("test", "test")
    assert m._use_plain_text is False
    assert mail.text is None
    assert mail.html == b"test"


def test_new_email_text():
    m = Mail("foo", "server")
    m.body_format(BodyType.PLAIN_TEXT)
    mail = m._new_email("test", "test")
    assert m._use_plain_text is True
    assert mail.text == b"test"
    assert mail.html is None


def test_body_format_html_resets_plain_text():
    m = Mail("foo", "server")
    m.body_format(BodyType.PLAIN_TEXT)
    m.body_format(BodyType.HTML)
    assert m._use_plain_text is False


def test_add_receivers():
    m = Mail("foo", "server")
    m.add_receivers("test")
    assert m._receiver_addresses == ["test"]


def test_authenticate_smtp():
    m = Mail("foo", "server")
    assert m._smtp_auth is None
    m.authenticate_smtp("test", "test", "test", "test")
    assert m._smtp_auth.username == "test"
    assert m._smtp_auth.host == "test"


def test_mime_content_type_follows_format():
    m = Mail("sender@example.com", "server")
    m.add_receivers("a@example.com", "b@example.com")
    html_msg = m._new_email("subj", "<b>hi</b>").to_mime()
    assert html_msg.get_content_type() == "text/html"
    assert html_msg["To"] == "a@example.com, b@example.com"
    m.body_format(BodyType.PLAIN_TEXT)
    text_msg = m._new_email("subj", "hi").to_mime()
    assert text_msg.get_content_type() == "text/plain"
    assert text_msg["Subject"] == "subj"


def test_send_without_addresses_fails():
    with pytest.raises(MailError):
        Mail("", "").send(Context(), "subject", "message")


def test_send_cancelled_context():
    m = Mail("sender@example.com", "localhost:25")
    m.add_receivers("a@example.com")
    ctx = Context()
    ctx.cancel()
    with pytest.raises(Cancelled):
        m.send(ctx, "subject", "message")


def test_send_delivers_through_smtp():
    m = Mail("sender@example.com", "smtp.example.com:2525")
    m.add_receivers("a@example.com")
    with mock.patch("smtplib.SMTP") as smtp_cls:
        client = smtp_cls.return_value
        client.__enter__.return_value = client
        client.has_extn.return_value = False
        result = m.send(Context(), "subject", "message")
    assert result is None
    smtp_cls.assert_called_once_with("smtp.example.com", 2525)
    _, kwargs = client.send_message.call_args
    assert kwargs["from_addr"] == "sender@example.com"
    assert kwargs["to_addrs"] == ["a@example.com"]


def test_send_logs_in_when_authenticated():
    password = "password"
    m = Mail("sender@example.com", "smtp.example.com:587")
    m.add_receivers("a@example.com")
    m.authenticate_smtp("", "user", password, "smtp.example.com")
    with mock.patch("smtplib.SMTP") as smtp_cls:
        client = smtp_cls.return_value
        client.__enter__.return_value = client
        client.has_extn.return_value = True
        result = m.send(Context(), "subject", "message")
    assert result is None
    client.starttls.assert_called_once()
    client.login.assert_called_once_with("user", password)


def test_send_rejects_wrong_auth_host():
    password = "password"
    m = Mail("sender@example.com", "smtp.example.com:587")
    m.add_receivers("a@example.com")
    m.authenticate_smtp("", "user", password, "other.example.com")
    with mock.patch("smtplib.SMTP") as smtp_cls:
        client = smtp_cls.return_value
        client.__enter__.return_value = client
        client.has_extn.return_value = False
        with pytest.raises(MailError, match="wrong host name"):
            m.send(Context(), "subject", "message")