# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS Signature Version 4 signing for S3-compatible object storage.

Two entry points share one canonicalization core: ``sign_request`` adds
an ``Authorization`` header to an API request, and ``presign_url`` builds
a time-limited URL for direct object access.  Both are pure functions of
a ``SigningContext`` and their arguments; the secret key is never sent.
"""

from s3sign.aws_signing import (
    ALGORITHM,
    UNSIGNED_PAYLOAD,
    CanonicalRequest,
    ParsedAuth,
    build_canonical_request,
    build_string_to_sign,
    compute_signature,
    credential_scope,
    derive_signing_key,
    parse_auth_header,
)
from s3sign.context import (
    Credentials,
    FixedClock,
    SigningClock,
    SigningContext,
    utc_now,
)
from s3sign.crypto import (
    DEFAULT_CRYPTO,
    CryptographyCrypto,
    CryptoProvider,
    HashlibCrypto,
)
from s3sign.errors import (
    CryptoFailure,
    InvalidCredentials,
    InvalidExpiry,
    MalformedRequest,
    SigningError,
)
from s3sign.presign import (
    DOWNLOAD_EXPIRY,
    MAX_EXPIRY,
    PREVIEW_EXPIRY,
    object_url,
    presign_url,
)
from s3sign.signer import RequestDescriptor, resolve_url, sign_request


__all__ = [
    # signer
    "RequestDescriptor",
    "resolve_url",
    "sign_request",
    # presign
    "DOWNLOAD_EXPIRY",
    "MAX_EXPIRY",
    "PREVIEW_EXPIRY",
    "object_url",
    "presign_url",
    # context
    "Credentials",
    "FixedClock",
    "SigningClock",
    "SigningContext",
    "utc_now",
    # crypto
    "DEFAULT_CRYPTO",
    "CryptoProvider",
    "CryptographyCrypto",
    "HashlibCrypto",
    # aws_signing
    "ALGORITHM",
    "UNSIGNED_PAYLOAD",
    "CanonicalRequest",
    "ParsedAuth",
    "build_canonical_request",
    "build_string_to_sign",
    "compute_signature",
    "credential_scope",
    "derive_signing_key",
    "parse_auth_header",
    # errors
    "CryptoFailure",
    "InvalidCredentials",
    "InvalidExpiry",
    "MalformedRequest",
    "SigningError",
]
