"""Signed calls to AWS services that speak the Query protocol."""

from __future__ import annotations

import hashlib
import hmac
import xml.etree.ElementTree as ET
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote, urlencode

import requests

_ALGORITHM = "AWS4-HMAC-SHA256"
_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=utf-8"
_SIGNED_HEADERS = "content-type;host;x-amz-date"
_TIMEOUT_SECONDS = 30.0

# Signing name -> (endpoint prefix, API version).
_SERVICES = {
    "ses": ("email", "2010-12-01"),
    "sns": ("sns", "2010-03-31"),
}


class AwsError(Exception):
    """Raised when an AWS call fails; ``code`` holds the AWS error code if any."""

    def __init__(self, message: str, code: str = "") -> None:
        super().__init__(message)
        self.code = code


def _flatten(value: Any, prefix: str = "") -> Iterator[tuple[str, str]]:
    if isinstance(value, Mapping):
        for key, item in value.items():
            yield from _flatten(item, f"{prefix}.{key}" if prefix else str(key))
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value, start=1):
            yield from _flatten(item, f"{prefix}.member.{index}")
    elif value is not None:
        yield prefix, str(value)


def _local_name(tag: str) -> str:
    return tag.rpartition("}")[2]


def _hmac(key: bytes, text: str) -> bytes:
    return hmac.new(key, text.encode("utf-8"), hashlib.sha256).digest()


def _parse_error(content: bytes) -> tuple[str, str]:
    try:
        root = ET.fromstring(content)
    except ET.ParseError:
        return "", ""
    code = message = ""
    for element in root.iter():
        name = _local_name(element.tag)
        if name == "Code" and not code:
            code = (element.text or "").strip()
        elif name == "Message" and not message:
            message = (element.text or "").strip()
    return code, message


class AwsQueryClient:
    """Sends Signature Version 4 signed Query protocol requests to one AWS service."""

    def __init__(
        self,
        service: str,
        access_key_id: str,
        secret_key: str,
        region: str,
        session: Optional[requests.Session] = None,
    ) -> None:
        try:
            self._endpoint_prefix, self._version = _SERVICES[service]
        except KeyError:
            raise ValueError(f"unsupported AWS service {service!r}") from None
        self._service = service
        self._access_key_id = access_key_id
        self._secret_key = secret_key
        self._region = region
        self._session = session or requests.Session()

    def _signing_key(self, date: str) -> bytes:
        key = _hmac(("AWS4" + self._secret_key).encode("utf-8"), date)
        key = _hmac(key, self._region)
        key = _hmac(key, self._service)
        return _hmac(key, "aws4_request")

    def _headers(self, host: str, body: bytes) -> dict[str, str]:
        now = datetime.now(timezone.utc)
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        date = now.strftime("%Y%m%d")
        canonical_headers = f"content-type:{_CONTENT_TYPE}\nhost:{host}\nx-amz-date:{amz_date}\n"
        canonical_request = "\n".join(
            (
                "POST",
                "/",
                "",
                canonical_headers,
                _SIGNED_HEADERS,
                hashlib.sha256(body).hexdigest(),
            )
        )
        scope = f"{date}/{self._region}/{self._service}/aws4_request"
        string_to_sign = "\n".join(
            (
                _ALGORITHM,
                amz_date,
                scope,
                hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
            )
        )
        signature = hmac.new(
            self._signing_key(date), string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()
        return {
            "Content-Type": _CONTENT_TYPE,
            "X-Amz-Date": amz_date,
            "Authorization": (
                f"{_ALGORITHM} Credential={self._access_key_id}/{scope}, "
                f"SignedHeaders={_SIGNED_HEADERS}, Signature={signature}"
            ),
        }

    def call(self, action: str, params: Optional[Mapping[str, Any]] = None) -> ET.Element:
        """Invoke ``action`` with ``params`` and return the parsed XML response.

        Nested mappings and lists in ``params`` are flattened the way the
        Query protocol expects.
        """
        if not self._region:
            raise AwsError("failed to resolve service endpoint: missing region")
        host = f"{self._endpoint_prefix}.{self._region}.amazonaws.com"
        form = {"Action": action, "Version": self._version}
        form.update(_flatten(params or {}))
        body = urlencode(sorted(form.items()), quote_via=quote, safe="").encode("ascii")
        try:
            resp = self._session.post(
                f"https://{host}/",
                data=body,
                headers=self._headers(host, body),
                timeout=_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise AwsError(str(exc)) from exc
        with resp:
            content = resp.content
            status = resp.status_code
        if not 200 <= status < 300:
            code, message = _parse_error(content)
            if code:
                raise AwsError(f"{code}: {message}", code=code)
            raise AwsError(f"HTTP {status}")
        try:
            return ET.fromstring(content)
        except ET.ParseError as exc:
            raise AwsError(f"invalid response: {exc}") from exc