# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Credentials, clock and signing context value objects.

Everything a signing call needs is passed in explicitly through a
``SigningContext``.  There is no module-level signer or configuration,
so several contexts (e.g. one per tenant) can be used side by side.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from s3sign.crypto import DEFAULT_CRYPTO, CryptoProvider
from s3sign.errors import InvalidCredentials


#: Region used when none is configured.
DEFAULT_REGION = "us-east-1"

#: Service name for S3-compatible storage.
DEFAULT_SERVICE = "s3"

#: Zero-argument callable returning the current instant.
SigningClock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(UTC)


class FixedClock:
    """Clock that always returns the same instant.

    Attributes:
        instant: The instant returned on every call.
    """

    __slots__ = ("instant",)

    def __init__(self, instant: datetime) -> None:
        self.instant = instant

    def __call__(self) -> datetime:
        return self.instant

    def __repr__(self) -> str:
        return f"FixedClock({self.instant.isoformat()})"


def to_utc(instant: datetime) -> datetime:
    """Normalize an instant to UTC.

    Naive datetimes are taken to already be in UTC.
    """
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


@dataclass(frozen=True)
class Credentials:
    """Signing credentials for one S3-compatible account.

    Attributes:
        access_key: Access key ID (sent in the clear in ``Credential=``).
        secret_key: Secret access key (never sent, never logged).
        region: Region used in the credential scope.
        service: Service name used in the credential scope.
    """

    access_key: str
    secret_key: str = field(repr=False)
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE

    def validate(self) -> None:
        """Check that every field needed for signing is present.

        Raises:
            InvalidCredentials: If any field is missing or empty.
        """
        if not self.access_key:
            raise InvalidCredentials("Access key is missing")
        if not self.secret_key:
            raise InvalidCredentials("Secret key is missing")
        if not self.region:
            raise InvalidCredentials("Region is missing")
        if not self.service:
            raise InvalidCredentials("Service name is missing")


@dataclass(frozen=True)
class SigningContext:
    """Inputs shared by all signing calls for one account.

    Attributes:
        credentials: Account credentials.
        clock: Source of the signing instant, read once per call.
        crypto: Digest/MAC provider.
        endpoint: Base URL of the storage service.  Used to resolve
            relative request URLs and to build presigned URLs.
        force_path_style: Put the bucket in the path (``/bucket/key``)
            instead of the host name (``bucket.host/key``).
    """

    credentials: Credentials | None
    clock: SigningClock = utc_now
    crypto: CryptoProvider = DEFAULT_CRYPTO
    endpoint: str | None = None
    force_path_style: bool = True

    def require_credentials(self) -> Credentials:
        """Return validated credentials.

        Raises:
            InvalidCredentials: If credentials are absent or incomplete.
        """
        if self.credentials is None:
            raise InvalidCredentials("No credentials configured")
        self.credentials.validate()
        return self.credentials

    def now(self) -> datetime:
        """Read the clock once and normalize to UTC."""
        return to_utc(self.clock())

    def with_endpoint(self, endpoint: str) -> SigningContext:
        """Return a copy of this context pointing at another endpoint."""
        return dataclasses.replace(self, endpoint=endpoint)
