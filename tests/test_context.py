# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for s3sign/context.py and s3sign/errors.py."""

import dataclasses
from datetime import UTC, datetime, timedelta, timezone

import pytest

from s3sign.context import (
    DEFAULT_REGION,
    DEFAULT_SERVICE,
    Credentials,
    FixedClock,
    SigningContext,
    to_utc,
    utc_now,
)
from s3sign.crypto import DEFAULT_CRYPTO
from s3sign.errors import (
    CryptoFailure,
    InvalidCredentials,
    InvalidExpiry,
    MalformedRequest,
    SigningError,
)


class TestCredentials:
    """Tests for Credentials."""

    def test_defaults(self) -> None:
        creds = Credentials("AKID", "secret")
        assert creds.region == DEFAULT_REGION == "us-east-1"
        assert creds.service == DEFAULT_SERVICE == "s3"

    def test_secret_not_in_repr(self) -> None:
        creds = Credentials("AKID", "super-secret-value")
        assert "super-secret-value" not in repr(creds)
        assert "AKID" in repr(creds)

    def test_frozen(self) -> None:
        creds = Credentials("AKID", "secret")
        with pytest.raises(dataclasses.FrozenInstanceError):
            creds.access_key = "other"  # type: ignore[misc]

    def test_validate_ok(self) -> None:
        Credentials("AKID", "secret").validate()

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"access_key": ""}, "Access key"),
            ({"secret_key": ""}, "Secret key"),
            ({"region": ""}, "Region"),
            ({"service": ""}, "Service"),
        ],
    )
    def test_validate_rejects_empty(
        self, kwargs: dict[str, str], message: str
    ) -> None:
        creds = dataclasses.replace(Credentials("AKID", "secret"), **kwargs)
        with pytest.raises(InvalidCredentials, match=message):
            creds.validate()


class TestClocks:
    """Tests for clock helpers."""

    def test_fixed_clock(self) -> None:
        instant = datetime(2020, 1, 1, tzinfo=UTC)
        clock = FixedClock(instant)
        assert clock() is instant
        assert clock() is instant
        assert repr(clock) == "FixedClock(2020-01-01T00:00:00+00:00)"

    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is UTC

    def test_to_utc_naive_taken_as_utc(self) -> None:
        naive = datetime(2020, 1, 1, 12, 0)
        assert to_utc(naive) == datetime(2020, 1, 1, 12, 0, tzinfo=UTC)

    def test_to_utc_converts_offset(self) -> None:
        minus_five = timezone(timedelta(hours=-5))
        local = datetime(2020, 1, 1, 22, 0, tzinfo=minus_five)
        converted = to_utc(local)
        assert converted.tzinfo is UTC
        assert (converted.day, converted.hour) == (2, 3)


class TestSigningContext:
    """Tests for SigningContext."""

    def test_defaults(self) -> None:
        ctx = SigningContext(credentials=Credentials("AKID", "secret"))
        assert ctx.clock is utc_now
        assert ctx.crypto is DEFAULT_CRYPTO
        assert ctx.endpoint is None
        assert ctx.force_path_style is True

    def test_require_credentials_missing(self) -> None:
        with pytest.raises(InvalidCredentials, match="No credentials"):
            SigningContext(credentials=None).require_credentials()

    def test_require_credentials_validates(self) -> None:
        ctx = SigningContext(credentials=Credentials("AKID", ""))
        with pytest.raises(InvalidCredentials):
            ctx.require_credentials()

    def test_now_reads_clock(self) -> None:
        instant = datetime(2020, 1, 1, tzinfo=UTC)
        ctx = SigningContext(credentials=None, clock=FixedClock(instant))
        assert ctx.now() == instant

    def test_with_endpoint(self, context: SigningContext) -> None:
        other = context.with_endpoint("http://share.example.com:20000")
        assert other.endpoint == "http://share.example.com:20000"
        assert other.credentials is context.credentials
        assert context.endpoint == "https://s3.example.com"

    def test_independent_contexts(self) -> None:
        a = SigningContext(credentials=Credentials("A", "a"))
        b = SigningContext(credentials=Credentials("B", "b"))
        assert a.require_credentials().access_key == "A"
        assert b.require_credentials().access_key == "B"


class TestErrors:
    """Error hierarchy."""

    @pytest.mark.parametrize(
        "exc",
        [InvalidCredentials, MalformedRequest, CryptoFailure, InvalidExpiry],
    )
    def test_subclasses_signing_error(self, exc: type[Exception]) -> None:
        assert issubclass(exc, SigningError)

    def test_distinguishable(self) -> None:
        assert not issubclass(InvalidExpiry, MalformedRequest)
        assert not issubclass(MalformedRequest, InvalidCredentials)
