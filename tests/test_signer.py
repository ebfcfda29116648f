# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for s3sign/signer.py."""

import dataclasses
import logging
import re
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from s3sign.aws_signing import UNSIGNED_PAYLOAD, parse_auth_header
from s3sign.context import Credentials, SigningContext
from s3sign.crypto import CryptographyCrypto
from s3sign.errors import CryptoFailure, InvalidCredentials, MalformedRequest
from s3sign.signer import (
    RequestDescriptor,
    host_header,
    normalize_method,
    resolve_url,
    sign_request,
)
from tests.vectors import (
    EMPTY_SHA256,
    S3_GET_OBJECT_SIGNATURE,
    S3_OBJECT_URL,
    S3_SECRET_KEY,
)


_SIGNATURE_RE = re.compile(r"Signature=([0-9a-f]{64})$")


def _signature(headers: dict[str, str]) -> str:
    match = _SIGNATURE_RE.search(headers["Authorization"])
    assert match is not None
    return match.group(1)


def _sign(context: SigningContext, method: str, url: str, **kwargs) -> dict:
    return sign_request(context, RequestDescriptor(method, url, **kwargs))


class TestPublishedExample:
    """The S3 GET Object example with a Range header."""

    def test_get_object_signature(
        self, context: SigningContext
    ) -> None:
        headers = _sign(
            context,
            "GET",
            S3_OBJECT_URL,
            headers={
                "Range": "bytes=0-9",
                "x-amz-content-sha256": EMPTY_SHA256,
            },
        )
        assert headers["Authorization"] == (
            "AWS4-HMAC-SHA256 "
            "Credential=AKIDEXAMPLE/20130524/us-east-1/s3/aws4_request, "
            "SignedHeaders=host;range;x-amz-content-sha256;x-amz-date, "
            f"Signature={S3_GET_OBJECT_SIGNATURE}"
        )
        assert headers["host"] == "examplebucket.s3.amazonaws.com"
        assert headers["x-amz-date"] == "20130524T000000Z"
        assert headers["x-amz-content-sha256"] == EMPTY_SHA256
        assert headers["Range"] == "bytes=0-9"

    def test_plain_get_scope(self, context: SigningContext) -> None:
        headers = _sign(context, "GET", S3_OBJECT_URL)
        assert (
            "Credential=AKIDEXAMPLE/20130524/us-east-1/s3/aws4_request"
            in headers["Authorization"]
        )
        assert len(_signature(headers)) == 64

    def test_cryptography_provider_matches(
        self, context: SigningContext
    ) -> None:
        ctx = dataclasses.replace(context, crypto=CryptographyCrypto())
        headers = _sign(
            ctx,
            "GET",
            S3_OBJECT_URL,
            headers={
                "Range": "bytes=0-9",
                "x-amz-content-sha256": EMPTY_SHA256,
            },
        )
        assert _signature(headers) == S3_GET_OBJECT_SIGNATURE


class TestSignRequest:
    """Tests for sign_request."""

    def test_simple_get(self, context: SigningContext) -> None:
        headers = _sign(context, "GET", "/bucket/file.txt")
        auth = headers["Authorization"]
        assert auth.startswith(
            "AWS4-HMAC-SHA256 "
            "Credential=AKIDEXAMPLE/20130524/us-east-1/s3/aws4_request, "
            "SignedHeaders=host;x-amz-content-sha256;x-amz-date, "
            "Signature="
        )
        assert _SIGNATURE_RE.search(auth)
        assert headers["x-amz-content-sha256"] == UNSIGNED_PAYLOAD

    def test_output_parses(self, context: SigningContext) -> None:
        headers = _sign(context, "GET", "/bucket/file.txt")
        parsed = parse_auth_header(headers["Authorization"])
        assert parsed is not None
        assert parsed.key_id == "AKIDEXAMPLE"
        assert parsed.date == "20130524"
        assert parsed.region == "us-east-1"
        assert parsed.service == "s3"

    def test_put_hashes_body(self, context: SigningContext) -> None:
        headers = _sign(context, "PUT", "/bucket/empty", body=b"")
        assert headers["x-amz-content-sha256"] == EMPTY_SHA256

    def test_str_body_encoded_as_utf8(self, context: SigningContext) -> None:
        text = _sign(context, "PUT", "/b/k", body="héllo")
        raw = _sign(context, "PUT", "/b/k", body="héllo".encode())
        assert text == raw

    def test_deterministic(self, context: SigningContext) -> None:
        first = _sign(context, "PUT", "/b/k", body=b"data")
        second = _sign(context, "PUT", "/b/k", body=b"data")
        assert first == second

    def test_does_not_mutate_caller_headers(
        self, context: SigningContext
    ) -> None:
        original = {"Content-Type": "text/plain"}
        snapshot = dict(original)
        headers = _sign(context, "GET", "/b/k", headers=original)
        assert original == snapshot
        assert headers is not original

    def test_header_name_case_invariant(
        self, context: SigningContext
    ) -> None:
        upper = _sign(
            context,
            "GET",
            "/b/k",
            headers={"Content-Type": "text/plain", "X-Amz-Meta-Author": "me"},
        )
        lower = _sign(
            context,
            "GET",
            "/b/k",
            headers={"content-type": "text/plain", "x-amz-meta-author": "me"},
        )
        assert _signature(upper) == _signature(lower)

    def test_query_order_invariant(self, context: SigningContext) -> None:
        a = _sign(context, "GET", "/b?prefix=a&list-type=2")
        b = _sign(context, "GET", "/b?list-type=2&prefix=a")
        assert _signature(a) == _signature(b)

    @pytest.mark.parametrize(
        ("first", "second"),
        [
            ({"url": "/b/a"}, {"url": "/b/b"}),
            ({"body": b"hello"}, {"body": b"hellp"}),
            (
                {"headers": {"x-amz-meta-a": "1"}},
                {"headers": {"x-amz-meta-a": "2"}},
            ),
            ({"method": "PUT"}, {"method": "POST"}),
            ({"url": "/b/%FF"}, {"url": "/b/%FE"}),
        ],
        ids=["path", "body", "header", "method", "raw-byte-path"],
    )
    def test_any_change_changes_signature(
        self, context: SigningContext, first: dict, second: dict
    ) -> None:
        def sign(overrides: dict) -> str:
            args = {"method": "PUT", "url": "/b/a", **overrides}
            return _signature(
                sign_request(context, RequestDescriptor(**args))
            )

        assert sign(first) != sign(second)

    def test_caller_content_sha256_wins(
        self, context: SigningContext
    ) -> None:
        headers = _sign(
            context,
            "PUT",
            "/b/k",
            headers={"X-Amz-Content-Sha256": UNSIGNED_PAYLOAD},
            body=b"streamed",
        )
        assert headers["x-amz-content-sha256"] == UNSIGNED_PAYLOAD
        assert "X-Amz-Content-Sha256" not in headers

    def test_existing_authorization_replaced(
        self, context: SigningContext
    ) -> None:
        plain = _sign(context, "GET", "/b/k")
        stale = _sign(
            context, "GET", "/b/k", headers={"authorization": "stale"}
        )
        assert "authorization" not in stale
        assert stale["Authorization"] == plain["Authorization"]

    def test_caller_host_overridden(self, context: SigningContext) -> None:
        headers = _sign(
            context, "GET", "/b/k", headers={"Host": "evil.example"}
        )
        assert "Host" not in headers
        assert headers["host"] == "s3.example.com"

    def test_padded_host_name_overridden(
        self, context: SigningContext
    ) -> None:
        headers = _sign(
            context, "GET", "/b/k", headers={" Host ": "evil.example"}
        )
        assert " Host " not in headers
        assert headers["host"] == "s3.example.com"
        assert headers == _sign(context, "GET", "/b/k")

    def test_padded_authorization_dropped(
        self, context: SigningContext
    ) -> None:
        headers = _sign(
            context, "GET", "/b/k", headers={"Authorization ": "stale"}
        )
        assert "Authorization " not in headers
        assert headers == _sign(context, "GET", "/b/k")

    def test_padded_content_sha256_used(
        self, context: SigningContext
    ) -> None:
        headers = _sign(
            context,
            "PUT",
            "/b/k",
            headers={" X-Amz-Content-Sha256": UNSIGNED_PAYLOAD},
            body=b"data",
        )
        assert headers["x-amz-content-sha256"] == UNSIGNED_PAYLOAD
        assert " X-Amz-Content-Sha256" not in headers

    def test_relative_equals_absolute(self, context: SigningContext) -> None:
        relative = _sign(context, "GET", "/bucket/key?prefix=a")
        absolute = _sign(
            context, "GET", "https://s3.example.com/bucket/key?prefix=a"
        )
        assert relative == absolute

    def test_lowercase_method(self, context: SigningContext) -> None:
        assert _sign(context, "get", "/b/k") == _sign(context, "GET", "/b/k")

    def test_non_default_port_in_host(self, context: SigningContext) -> None:
        headers = _sign(context, "GET", "http://localhost:9000/bucket/k")
        assert headers["host"] == "localhost:9000"


class TestClock:
    """Clock handling in sign_request."""

    def test_clock_read_once(self, context: SigningContext) -> None:
        clock = MagicMock(
            side_effect=[
                datetime(2013, 5, 24, 23, 59, 59, tzinfo=UTC),
                datetime(2013, 5, 25, 0, 0, 1, tzinfo=UTC),
            ]
        )
        ctx = dataclasses.replace(context, clock=clock)
        headers = _sign(ctx, "GET", "/b/k")
        clock.assert_called_once_with()
        assert headers["x-amz-date"] == "20130524T235959Z"
        assert "/20130524/us-east-1/s3/" in headers["Authorization"]

    def test_aware_instant_converted_to_utc(
        self, context: SigningContext
    ) -> None:
        plus_three = timezone(timedelta(hours=3))
        ctx = dataclasses.replace(
            context,
            clock=lambda: datetime(2013, 5, 24, 2, 0, 0, tzinfo=plus_three),
        )
        headers = _sign(ctx, "GET", "/b/k")
        assert headers["x-amz-date"] == "20130523T230000Z"
        assert "/20130523/" in headers["Authorization"]


class TestErrors:
    """Validation failures raised by sign_request."""

    def test_no_credentials(self, context: SigningContext) -> None:
        ctx = dataclasses.replace(context, credentials=None)
        with pytest.raises(InvalidCredentials):
            _sign(ctx, "GET", "/b/k")

    def test_empty_access_key(self, context: SigningContext) -> None:
        ctx = dataclasses.replace(
            context, credentials=Credentials("", S3_SECRET_KEY)
        )
        with pytest.raises(InvalidCredentials, match="Access key"):
            _sign(ctx, "GET", "/b/k")

    def test_credentials_checked_before_url(
        self, context: SigningContext
    ) -> None:
        ctx = dataclasses.replace(context, credentials=None)
        with pytest.raises(InvalidCredentials):
            _sign(ctx, "GET", "")

    @pytest.mark.parametrize("method", ["", "FETCH", "G ET"])
    def test_bad_method(self, context: SigningContext, method: str) -> None:
        with pytest.raises(MalformedRequest, match="method"):
            _sign(context, method, "/b/k")

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "ftp://host/x",
            "https://host:abc/x",
            "http://[::1",
            "https:///no-host",
        ],
    )
    def test_bad_url(self, context: SigningContext, url: str) -> None:
        with pytest.raises(MalformedRequest):
            _sign(context, "GET", url)

    def test_relative_without_endpoint(
        self, context: SigningContext
    ) -> None:
        ctx = dataclasses.replace(context, endpoint=None)
        with pytest.raises(MalformedRequest, match="no endpoint"):
            _sign(ctx, "GET", "/b/k")

    def test_crypto_failure_propagates(
        self, context: SigningContext
    ) -> None:
        broken = MagicMock()
        broken.sha256_hex.side_effect = CryptoFailure("unavailable")
        broken.hmac_sha256.side_effect = CryptoFailure("unavailable")
        ctx = dataclasses.replace(context, crypto=broken)
        with pytest.raises(CryptoFailure, match="unavailable"):
            _sign(ctx, "PUT", "/b/k", body=b"x")


class TestLogging:
    """Log output of sign_request."""

    def test_debug_line_without_secret(
        self, context: SigningContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.DEBUG, logger="s3sign")
        headers = _sign(context, "GET", "/b/k")
        assert "Signed GET s3.example.com" in caplog.text
        assert S3_SECRET_KEY not in caplog.text
        assert _signature(headers) not in caplog.text


class TestHelpers:
    """Tests for URL and method helpers."""

    def test_normalize_method(self) -> None:
        assert normalize_method(" delete ") == "DELETE"

    def test_resolve_relative_without_slash(self) -> None:
        parsed = resolve_url("https://s3.example.com/", "bucket/key")
        assert parsed.path == "/bucket/key"

    def test_resolve_keeps_endpoint_base_path(self) -> None:
        parsed = resolve_url("https://gw.example.com/storage", "/b/k")
        assert parsed.path == "/storage/b/k"

    def test_resolve_uppercase_scheme(self) -> None:
        parsed = resolve_url(None, "HTTPS://s3.example.com/b")
        assert parsed.scheme == "https"

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://s3.example.com/b", "s3.example.com"),
            ("https://s3.example.com:443/b", "s3.example.com"),
            ("http://s3.example.com:80/b", "s3.example.com"),
            ("http://s3.example.com:443/b", "s3.example.com:443"),
            ("http://S3.Example.COM:20000/b", "s3.example.com:20000"),
            ("http://[::1]:9000/b", "[::1]:9000"),
        ],
    )
    def test_host_header(self, url: str, expected: str) -> None:
        assert host_header(resolve_url(None, url)) == expected

    def test_body_bytes(self) -> None:
        assert RequestDescriptor("PUT", "/", body="é").body_bytes == (
            b"\xc3\xa9"
        )
        assert RequestDescriptor("GET", "/").body_bytes is None
