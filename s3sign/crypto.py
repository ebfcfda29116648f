# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""SHA-256 and HMAC-SHA256 primitives behind a swappable provider.

The signing core only talks to a ``CryptoProvider``.  Two providers ship
with the package:

- ``HashlibCrypto`` uses the standard library (the default).
- ``CryptographyCrypto`` uses the ``cryptography`` package, for hosts that
  route all cryptography through OpenSSL bindings.

Both produce byte-identical output.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Protocol, runtime_checkable

from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac

from s3sign.errors import CryptoFailure


@runtime_checkable
class CryptoProvider(Protocol):
    """Digest and MAC primitives used by the signer."""

    def sha256_hex(self, data: bytes) -> str:
        """Return the lowercase hex SHA-256 digest of ``data``."""
        ...

    def hmac_sha256(self, key: bytes, msg: bytes) -> bytes:
        """Return the raw 32-byte HMAC-SHA256 of ``msg`` under ``key``."""
        ...


def _check_key(key: bytes) -> None:
    """Reject empty HMAC keys instead of signing with them."""
    if key is None or len(key) == 0:
        raise CryptoFailure("HMAC key must not be empty")


class HashlibCrypto:
    """Provider backed by ``hashlib`` and ``hmac``."""

    def sha256_hex(self, data: bytes) -> str:
        try:
            return hashlib.sha256(data).hexdigest()
        except (TypeError, ValueError) as e:
            raise CryptoFailure(f"SHA-256 digest failed: {e}") from e

    def hmac_sha256(self, key: bytes, msg: bytes) -> bytes:
        _check_key(key)
        try:
            return hmac.new(key, msg, hashlib.sha256).digest()
        except (TypeError, ValueError) as e:
            raise CryptoFailure(f"HMAC-SHA256 failed: {e}") from e

    def __repr__(self) -> str:
        return "HashlibCrypto()"


class CryptographyCrypto:
    """Provider backed by ``cryptography`` (OpenSSL)."""

    def sha256_hex(self, data: bytes) -> str:
        try:
            digest = hashes.Hash(hashes.SHA256())
            digest.update(data)
            return digest.finalize().hex()
        except (
            TypeError,
            ValueError,
            UnsupportedAlgorithm,
            InternalError,
        ) as e:
            raise CryptoFailure(f"SHA-256 digest failed: {e}") from e

    def hmac_sha256(self, key: bytes, msg: bytes) -> bytes:
        _check_key(key)
        try:
            mac = crypto_hmac.HMAC(key, hashes.SHA256())
            mac.update(msg)
            return mac.finalize()
        except (
            TypeError,
            ValueError,
            UnsupportedAlgorithm,
            InternalError,
        ) as e:
            raise CryptoFailure(f"HMAC-SHA256 failed: {e}") from e

    def __repr__(self) -> str:
        return "CryptographyCrypto()"


#: Provider used when a context does not name one.
DEFAULT_CRYPTO: CryptoProvider = HashlibCrypto()


def hmac_sha256_hex(crypto: CryptoProvider, key: bytes, msg: bytes) -> str:
    """HMAC-SHA256 as lowercase hex (final signature step only)."""
    return crypto.hmac_sha256(key, msg).hex()
