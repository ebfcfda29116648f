# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS SigV4 canonicalization, key derivation and signature computation.

This is the one canonicalization core shared by header signing
(``s3sign.signer``) and presigned URLs (``s3sign.presign``), so the two
entry points cannot drift apart.  Every function here is pure.

Signing flow::

    canonical request ──sha256──> string to sign
                                        │
    secret ──HMAC chain──> signing key ─┴─HMAC──> signature (hex)

All digests and MACs go through a ``CryptoProvider``.
"""

from __future__ import annotations

import re
import urllib.parse
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from s3sign.crypto import DEFAULT_CRYPTO, CryptoProvider, hmac_sha256_hex


#: Signing algorithm identifier.
ALGORITHM = "AWS4-HMAC-SHA256"

#: Payload hash token for bodies that are not signed.
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"

#: Terminal element of every credential scope.
SCOPE_TERMINATOR = "aws4_request"

#: Header carrying the payload hash.
CONTENT_SHA256_HEADER = "x-amz-content-sha256"

#: Header carrying the signing timestamp.
AMZ_DATE_HEADER = "x-amz-date"

AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"
DATE_STAMP_FORMAT = "%Y%m%d"

_AWS_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)

# Methods whose payload is never hashed
_UNSIGNED_BODY_METHODS = frozenset({"GET", "HEAD"})

_AUTH_HEADER_RE = re.compile(
    r"(?P<algorithm>AWS4-HMAC-SHA256)\s+"
    r"Credential=(?P<key_id>[^/]+)/(?P<scope>[^,]+),\s*"
    r"SignedHeaders=(?P<signed_headers>[^,]+),\s*"
    r"Signature=(?P<signature>[0-9a-f]{64})"
)


# ---------------------------------------------------------------------------
# URI encoding (AWS-specific RFC 3986 subset)
# ---------------------------------------------------------------------------


def uri_encode(value: str | bytes, *, encode_slash: bool = True) -> str:
    """URI-encode a value using AWS's rules.

    - Unreserved characters are not encoded: A-Z, a-z, 0-9, -, _, ., ~
    - Every other byte becomes %XX (uppercase hex)
    - Forward slashes (/) are optionally preserved

    Text is encoded as UTF-8 first.  Bytes are encoded as given, so
    decoded escapes that are not valid UTF-8 survive unchanged.

    Args:
        value: Text or raw bytes to encode.
        encode_slash: If True, encode '/'; if False, preserve '/'.

    Returns:
        URI-encoded string.
    """
    result: list[str] = []
    raw = value.encode("utf-8") if isinstance(value, str) else value
    for byte in raw:
        if byte in _AWS_UNRESERVED:
            result.append(chr(byte))
        elif byte == 0x2F and not encode_slash:
            result.append("/")
        else:
            result.append(f"%{byte:02X}")
    return "".join(result)


def encode_path_segments(key: str) -> str:
    """Encode each ``/``-separated segment of an object key.

    A ``/`` inside the key stays a path separator; everything else
    outside the unreserved set is percent-encoded.
    """
    return "/".join(uri_encode(segment) for segment in key.split("/"))


# ---------------------------------------------------------------------------
# Canonical request construction
# ---------------------------------------------------------------------------


def canonical_uri(path: str) -> str:
    """Build the canonical URI from a request path.

    The path may arrive already percent-encoded.  S3 signs the
    single-encoded form, so existing escapes are decoded first and each
    segment is then encoded once: ``%3A`` stays ``%3A`` and a literal
    space becomes ``%20``.  Escapes are decoded to raw bytes, so ``%FF``
    stays ``%FF`` even though it is not valid UTF-8.  Double slashes and
    ``.``/``..`` segments are preserved.

    Args:
        path: Request path, possibly percent-encoded.

    Returns:
        Canonical URI; ``/`` for an empty path.
    """
    if not path:
        return "/"

    path = path.split("?", 1)[0]
    decoded = urllib.parse.unquote_to_bytes(path)
    return "/".join(uri_encode(segment) for segment in decoded.split(b"/"))


def canonical_query_string(query: str) -> str:
    """Build the canonical query string.

    Keys and values are encoded independently, then sorted by encoded key
    (ties broken by encoded value) using ordinal comparison.  Parameters
    without a value are kept as ``key=``.

    Args:
        query: Raw query string (without leading ?).

    Returns:
        Canonical query string, or "" when there is no query.
    """
    if not query:
        return ""

    params: list[tuple[bytes, bytes]] = []
    for part in query.split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        params.append((_unquote_query(key), _unquote_query(value)))
    return canonical_query_from_params(params)


def _unquote_query(value: str) -> bytes:
    """Decode a form-encoded query component to raw bytes."""
    return urllib.parse.unquote_to_bytes(value.replace("+", " "))


def canonical_query_from_params(
    params: Sequence[tuple[str | bytes, str | bytes]],
) -> str:
    """Canonicalize already-decoded ``(key, value)`` pairs."""
    encoded = [(uri_encode(k), uri_encode(v)) for k, v in params]
    encoded.sort()
    return "&".join(f"{k}={v}" for k, v in encoded)


def canonical_header_pairs(
    headers: Mapping[str, str],
) -> list[tuple[str, str]]:
    """Lower-case, trim and sort the headers that will be signed.

    ``Authorization`` is never signed.  Values are trimmed of leading and
    trailing whitespace only; internal whitespace is kept.  Headers with
    empty values are kept.  Names that differ only in case are merged,
    values joined with ``,`` in input order.

    Args:
        headers: Request headers (name -> value).

    Returns:
        Sorted list of (lowercase name, trimmed value).
    """
    merged: dict[str, str] = {}
    for name, value in headers.items():
        lower = name.strip().lower()
        if lower == "authorization":
            continue
        trimmed = str(value).strip()
        if lower in merged:
            merged[lower] = f"{merged[lower]},{trimmed}"
        else:
            merged[lower] = trimmed
    return sorted(merged.items())


def canonical_headers_string(headers: Mapping[str, str]) -> str:
    """Build the canonical headers block (each line ends with a newline)."""
    return "".join(
        f"{name}:{value}\n" for name, value in canonical_header_pairs(headers)
    )


def signed_headers_string(headers: Mapping[str, str]) -> str:
    """Build the ``;``-joined signed header list.

    Uses the same filtering and ordering as ``canonical_headers_string``.
    """
    return ";".join(name for name, _ in canonical_header_pairs(headers))


def payload_hash(
    method: str,
    body: bytes | None,
    *,
    crypto: CryptoProvider = DEFAULT_CRYPTO,
) -> str:
    """Compute the payload hash for a request.

    The body is hashed only when it is present and the method is not
    GET or HEAD; otherwise the ``UNSIGNED-PAYLOAD`` token is used.

    Args:
        method: Upper-case HTTP method.
        body: Request body, or None when there is none.
        crypto: Digest provider.

    Returns:
        Hex SHA-256 of the body or ``UNSIGNED-PAYLOAD``.
    """
    if body is None or method in _UNSIGNED_BODY_METHODS:
        return UNSIGNED_PAYLOAD
    return crypto.sha256_hex(body)


@dataclass(frozen=True)
class CanonicalRequest:
    """Canonical form of one request.  Lives only within a signing call."""

    method: str
    canonical_uri: str
    canonical_query_string: str
    canonical_headers: str
    signed_headers: str
    payload_hash: str

    def to_string(self) -> str:
        """Return the six newline-joined lines that get hashed."""
        return "\n".join(
            [
                self.method,
                self.canonical_uri,
                self.canonical_query_string,
                self.canonical_headers,
                self.signed_headers,
                self.payload_hash,
            ]
        )

    def __str__(self) -> str:
        return self.to_string()


def build_canonical_request(
    method: str,
    path: str,
    query: str,
    headers: Mapping[str, str],
    payload_hash: str,
) -> CanonicalRequest:
    """Build the canonical request.

    Args:
        method: HTTP method (upper-cased here).
        path: Request path.
        query: Query string (without leading ?).
        headers: Headers to sign.  Must already contain ``host``,
            ``x-amz-date`` and (for header signing)
            ``x-amz-content-sha256``.
        payload_hash: Hex body hash or ``UNSIGNED-PAYLOAD``.

    Returns:
        The canonical request.
    """
    pairs = canonical_header_pairs(headers)
    return CanonicalRequest(
        method=method.upper(),
        canonical_uri=canonical_uri(path),
        canonical_query_string=canonical_query_string(query),
        canonical_headers="".join(f"{n}:{v}\n" for n, v in pairs),
        signed_headers=";".join(n for n, _ in pairs),
        payload_hash=payload_hash,
    )


# ---------------------------------------------------------------------------
# Scope, key derivation and signature
# ---------------------------------------------------------------------------


def format_amz_date(instant: datetime) -> tuple[str, str]:
    """Format one UTC instant as ``(amz_date, date_stamp)``.

    Both values come from the same instant so the timestamp and the
    credential scope can never disagree.
    """
    return instant.strftime(AMZ_DATE_FORMAT), instant.strftime(
        DATE_STAMP_FORMAT
    )


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    """Build ``date/region/service/aws4_request``."""
    return f"{date_stamp}/{region}/{service}/{SCOPE_TERMINATOR}"


def derive_signing_key(
    secret_key: str,
    date_stamp: str,
    region: str,
    service: str,
    *,
    crypto: CryptoProvider = DEFAULT_CRYPTO,
) -> bytes:
    """Derive the SigV4 signing key.

    Four chained HMACs over raw bytes, in this exact order::

        kDate    = HMAC("AWS4" + secret, date)
        kRegion  = HMAC(kDate, region)
        kService = HMAC(kRegion, service)
        kSigning = HMAC(kService, "aws4_request")

    Args:
        secret_key: Secret access key.
        date_stamp: Date string (YYYYMMDD).
        region: Region name.
        service: Service name.
        crypto: MAC provider.

    Returns:
        32-byte signing key.
    """
    k_date = crypto.hmac_sha256(
        ("AWS4" + secret_key).encode("utf-8"), date_stamp.encode("utf-8")
    )
    k_region = crypto.hmac_sha256(k_date, region.encode("utf-8"))
    k_service = crypto.hmac_sha256(k_region, service.encode("utf-8"))
    return crypto.hmac_sha256(k_service, SCOPE_TERMINATOR.encode("utf-8"))


def build_string_to_sign(
    amz_date: str,
    scope: str,
    canonical_request: CanonicalRequest | str,
    *,
    crypto: CryptoProvider = DEFAULT_CRYPTO,
) -> str:
    """Build the SigV4 string to sign.

    Args:
        amz_date: Timestamp (YYYYMMDDTHHMMSSZ).
        scope: Credential scope.
        canonical_request: Canonical request or its string form.
        crypto: Digest provider.

    Returns:
        String to sign.
    """
    return "\n".join(
        [
            ALGORITHM,
            amz_date,
            scope,
            crypto.sha256_hex(str(canonical_request).encode("utf-8")),
        ]
    )


def compute_signature(
    signing_key: bytes,
    string_to_sign: str,
    *,
    crypto: CryptoProvider = DEFAULT_CRYPTO,
) -> str:
    """Compute the hex SigV4 signature."""
    return hmac_sha256_hex(crypto, signing_key, string_to_sign.encode("utf-8"))


def authorization_header(
    access_key: str, scope: str, signed_headers: str, signature: str
) -> str:
    """Format the ``Authorization`` header value."""
    return (
        f"{ALGORITHM} "
        f"Credential={access_key}/{scope}, "
        f"SignedHeaders={signed_headers}, "
        f"Signature={signature}"
    )


# ---------------------------------------------------------------------------
# Parsed authorization header
# ---------------------------------------------------------------------------


class ParsedAuth:
    """Parsed SigV4 Authorization header."""

    __slots__ = (
        "algorithm",
        "key_id",
        "scope",
        "signed_headers",
        "signature",
    )

    def __init__(
        self,
        algorithm: str,
        key_id: str,
        scope: str,
        signed_headers: str,
        signature: str,
    ) -> None:
        self.algorithm = algorithm
        self.key_id = key_id
        self.scope = scope
        self.signed_headers = signed_headers
        self.signature = signature

    @property
    def scope_parts(self) -> list[str]:
        """Split scope into date/region/service/aws4_request."""
        return self.scope.split("/")

    @property
    def date(self) -> str:
        """Date from credential scope (YYYYMMDD)."""
        return self.scope_parts[0]

    @property
    def region(self) -> str:
        """Region from credential scope."""
        parts = self.scope_parts
        return parts[1] if len(parts) >= 4 else ""

    @property
    def service(self) -> str:
        """Service from credential scope."""
        parts = self.scope_parts
        return parts[2] if len(parts) >= 4 else ""


def parse_auth_header(auth_value: str) -> ParsedAuth | None:
    """Parse a SigV4 Authorization header.

    Args:
        auth_value: Full Authorization header value.

    Returns:
        ParsedAuth if valid SigV4 auth, None otherwise.
    """
    m = _AUTH_HEADER_RE.match(auth_value)
    if not m:
        return None
    return ParsedAuth(
        algorithm=m.group("algorithm"),
        key_id=m.group("key_id"),
        scope=m.group("scope"),
        signed_headers=m.group("signed_headers"),
        signature=m.group("signature"),
    )
