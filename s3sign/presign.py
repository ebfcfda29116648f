# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Presigned URLs for direct, time-limited object access.

Credentials, date, expiry and signed headers travel in the query string
instead of headers, so the resulting URL can be handed to a browser
(downloads, previews, share links) without any further authentication.
Only ``host`` is signed and the payload is always ``UNSIGNED-PAYLOAD``.
"""

from __future__ import annotations

import logging

from s3sign.aws_signing import (
    ALGORITHM,
    UNSIGNED_PAYLOAD,
    CanonicalRequest,
    build_string_to_sign,
    canonical_headers_string,
    canonical_query_from_params,
    compute_signature,
    credential_scope,
    derive_signing_key,
    encode_path_segments,
    format_amz_date,
    uri_encode,
)
from s3sign.context import SigningContext
from s3sign.errors import InvalidExpiry, MalformedRequest
from s3sign.signer import host_header, normalize_method, resolve_url


logger = logging.getLogger(__name__)

#: Expiry used for one-off downloads.
DOWNLOAD_EXPIRY = 300

#: Expiry used for in-browser previews.
PREVIEW_EXPIRY = 3600

#: Longest expiry SigV4 accepts (7 days).
MAX_EXPIRY = 7 * 24 * 3600

_SIGNED_HEADERS = "host"


def validate_expiry(expiry_seconds: int) -> int:
    """Check a presigned URL expiry.

    Args:
        expiry_seconds: Lifetime of the URL in seconds.

    Returns:
        The expiry, unchanged.

    Raises:
        InvalidExpiry: If the value is not an integer between 1 and
            ``MAX_EXPIRY``.  Nothing is clamped.
    """
    if isinstance(expiry_seconds, bool) or not isinstance(expiry_seconds, int):
        raise InvalidExpiry(
            f"Expiry must be an integer number of seconds, "
            f"got {expiry_seconds!r}"
        )
    if expiry_seconds < 1:
        raise InvalidExpiry(
            f"Expiry must be positive, got {expiry_seconds} seconds"
        )
    if expiry_seconds > MAX_EXPIRY:
        raise InvalidExpiry(
            f"Expiry must not exceed {MAX_EXPIRY} seconds, "
            f"got {expiry_seconds}"
        )
    return expiry_seconds


def object_location(
    endpoint: str | None,
    bucket: str,
    object_key: str,
    *,
    force_path_style: bool = True,
) -> tuple[str, str, str]:
    """Work out where an object lives on an endpoint.

    Path style puts the bucket in the path (``https://host/bucket/key``);
    virtual-hosted style puts it in the host name
    (``https://bucket.host/key``).

    Args:
        endpoint: Base URL of the storage service.
        bucket: Bucket name.
        object_key: Object key; ``/`` separates path segments.
        force_path_style: Use path-style addressing.

    Returns:
        Tuple of (scheme, host header value, encoded path).

    Raises:
        MalformedRequest: If the endpoint is missing or invalid, or the
            bucket or key is empty.
    """
    if not endpoint:
        raise MalformedRequest("No endpoint configured for presigned URLs")
    if not bucket:
        raise MalformedRequest("Bucket name is empty")
    if not object_key:
        raise MalformedRequest("Object key is empty")

    parsed = resolve_url(None, endpoint)
    host = host_header(parsed)
    base_path = parsed.path.rstrip("/")
    encoded_key = encode_path_segments(object_key)

    if force_path_style:
        path = f"{base_path}/{uri_encode(bucket)}/{encoded_key}"
    else:
        host = f"{bucket}.{host}"
        path = f"{base_path}/{encoded_key}"
    return parsed.scheme, host, path


def object_url(
    context: SigningContext,
    bucket: str,
    object_key: str,
    *,
    endpoint: str | None = None,
) -> str:
    """Unsigned URL of an object (the presigned URL minus its query)."""
    scheme, host, path = object_location(
        endpoint or context.endpoint,
        bucket,
        object_key,
        force_path_style=context.force_path_style,
    )
    return f"{scheme}://{host}{path}"


def presign_url(
    context: SigningContext,
    bucket: str,
    object_key: str,
    expiry_seconds: int,
    *,
    method: str = "GET",
    endpoint: str | None = None,
) -> str:
    """Build a presigned URL for one object.

    Query parameters are sorted before signing and ``X-Amz-Signature`` is
    appended last.  The URL is valid for ``expiry_seconds`` from the
    instant read from the context clock.

    Args:
        context: Credentials, clock, crypto provider and endpoint.
        bucket: Bucket name.
        object_key: Object key.
        expiry_seconds: Lifetime of the URL in seconds.
        method: HTTP method the URL will be used with.
        endpoint: Endpoint to put in the URL instead of
            ``context.endpoint`` (e.g. a public share host).  The signed
            ``host`` is taken from this endpoint.

    Returns:
        The presigned URL.

    Raises:
        InvalidCredentials: If credentials are missing or incomplete.
        InvalidExpiry: If the expiry is not a positive integer.
        MalformedRequest: If the endpoint, bucket, key or method is invalid.
        CryptoFailure: If a digest or MAC primitive fails.
    """
    credentials = context.require_credentials()
    validate_expiry(expiry_seconds)
    method = normalize_method(method)
    scheme, host, path = object_location(
        endpoint or context.endpoint,
        bucket,
        object_key,
        force_path_style=context.force_path_style,
    )

    amz_date, date_stamp = format_amz_date(context.now())
    scope = credential_scope(
        date_stamp, credentials.region, credentials.service
    )

    query = canonical_query_from_params(
        [
            ("X-Amz-Algorithm", ALGORITHM),
            ("X-Amz-Credential", f"{credentials.access_key}/{scope}"),
            ("X-Amz-Date", amz_date),
            ("X-Amz-Expires", str(expiry_seconds)),
            ("X-Amz-SignedHeaders", _SIGNED_HEADERS),
        ]
    )
    creq = CanonicalRequest(
        method=method,
        canonical_uri=path,
        canonical_query_string=query,
        canonical_headers=canonical_headers_string({"host": host}),
        signed_headers=_SIGNED_HEADERS,
        payload_hash=UNSIGNED_PAYLOAD,
    )

    string_to_sign = build_string_to_sign(
        amz_date, scope, creq, crypto=context.crypto
    )
    signing_key = derive_signing_key(
        credentials.secret_key,
        date_stamp,
        credentials.region,
        credentials.service,
        crypto=context.crypto,
    )
    signature = compute_signature(
        signing_key, string_to_sign, crypto=context.crypto
    )

    logger.debug(
        "Presigned %s %s%s (expires=%ds, scope=%s)",
        method,
        host,
        path,
        expiry_seconds,
        scope,
    )
    return f"{scheme}://{host}{path}?{query}&X-Amz-Signature={signature}"
