"""E-mail notifications delivered over SMTP."""

from __future__ import annotations

import enum
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Optional

from notifykit.context import Context


class MailError(Exception):
    """Raised when an e-mail could not be sent."""


class BodyType(enum.IntEnum):
    """Format of the message body."""

    PLAIN_TEXT = 0
    HTML = 1


@dataclass(frozen=True)
class _PlainAuth:
    identity: str
    username: str
    password: str
    host: str


@dataclass
class _Email:
    to: list[str]
    sender: str
    subject: str
    text: Optional[bytes] = None
    html: Optional[bytes] = None
    headers: dict[str, str] = field(default_factory=dict)

    def to_mime(self) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = ", ".join(self.to)
        msg["Subject"] = self.subject
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()
        for name, value in self.headers.items():
            msg[name] = value
        if self.text is not None:
            msg.set_content(self.text.decode("utf-8"))
        else:
            msg.set_content((self.html or b"").decode("utf-8"), subtype="html")
        return msg


def _split_host_port(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        return address, smtplib.SMTP_PORT
    try:
        return host, int(port)
    except ValueError as exc:
        raise MailError(f"invalid port in SMTP address {address!r}") from exc


class Mail:
    """Sends messages as e-mail to a list of receiver addresses."""

    def __init__(self, sender_address: str, smtp_host_address: str) -> None:
        self._use_plain_text = False
        self._sender_address = sender_address
        self._smtp_host_addr = smtp_host_address
        self._smtp_auth: Optional[_PlainAuth] = None
        self._receiver_addresses: list[str] = []

    def authenticate_smtp(self, identity: str, user_name: str, password: str, host: str) -> None:
        """Use PLAIN authentication against the SMTP server named ``host``."""
        self._smtp_auth = _PlainAuth(identity, user_name, password, host)

    def add_receivers(self, *addresses: str) -> None:
        """Add e-mail addresses that every message is sent to."""
        self._receiver_addresses.extend(addresses)

    def body_format(self, format: BodyType) -> None:
        """Choose the body format; anything but plain text means HTML."""
        self._use_plain_text = format == BodyType.PLAIN_TEXT

    def _new_email(self, subject: str, message: str) -> _Email:
        mail = _Email(
            to=list(self._receiver_addresses),
            sender=self._sender_address,
            subject=subject,
        )
        if self._use_plain_text:
            mail.text = message.encode("utf-8")
        else:
            mail.html = message.encode("utf-8")
        return mail

    def _deliver(self, mail: _Email) -> None:
        if not mail.sender or not mail.to:
            raise MailError("must specify at least one From address and one To address")
        if not self._smtp_host_addr:
            raise MailError("no SMTP host address given")
        host, port = _split_host_port(self._smtp_host_addr)
        with smtplib.SMTP(host, port) as client:
            client.ehlo()
            if client.has_extn("starttls"):
                client.starttls()
                client.ehlo()
            if self._smtp_auth is not None:
                if self._smtp_auth.host != host:
                    raise MailError("wrong host name")
                client.login(self._smtp_auth.username, self._smtp_auth.password)
            client.send_message(mail.to_mime(), from_addr=mail.sender, to_addrs=mail.to)

    def send(self, ctx: Optional[Context], subject: str, message: str) -> None:
        """Send the subject and message to all receivers as one e-mail."""
        mail = self._new_email(subject, message)
        if ctx is not None:
            ctx.check()
        try:
            self._deliver(mail)
        except MailError as exc:
            raise MailError(f"failed to send mail: {exc}") from exc
        except (OSError, smtplib.SMTPException) as exc:
            raise MailError(f"failed to send mail: {exc}") from exc