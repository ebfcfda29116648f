# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Header signing for S3 API requests.

``sign_request`` takes a request descriptor and returns the headers to
send, including ``Authorization``.  Nothing is sent over the network and
the caller's header mapping is never modified.
"""

from __future__ import annotations

import http
import logging
import urllib.parse
from collections.abc import Mapping
from dataclasses import dataclass, field

from s3sign.aws_signing import (
    AMZ_DATE_HEADER,
    CONTENT_SHA256_HEADER,
    authorization_header,
    build_canonical_request,
    build_string_to_sign,
    compute_signature,
    credential_scope,
    derive_signing_key,
    format_amz_date,
    payload_hash,
)
from s3sign.context import SigningContext
from s3sign.errors import MalformedRequest


logger = logging.getLogger(__name__)

_HTTP_METHODS = frozenset(m.value for m in http.HTTPMethod)

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class RequestDescriptor:
    """A request to be signed.

    Attributes:
        method: HTTP method (any case).
        url: Absolute URL, or a path resolved against the context endpoint.
        headers: Request headers.  Names are case-insensitive.
        body: Request body; ``str`` bodies are UTF-8 encoded.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | str | None = None

    @property
    def body_bytes(self) -> bytes | None:
        """Body as bytes, or None when absent."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body


def normalize_method(method: str) -> str:
    """Upper-case and validate an HTTP method.

    Raises:
        MalformedRequest: If the method is not a known HTTP verb.
    """
    upper = (method or "").strip().upper()
    if upper not in _HTTP_METHODS:
        raise MalformedRequest(f"Unsupported HTTP method: {method!r}")
    return upper


def resolve_url(
    endpoint: str | None, url: str
) -> urllib.parse.SplitResult:
    """Resolve a request URL against the service endpoint.

    URLs with a scheme are used as-is (only ``http``/``https`` are
    accepted).  Anything else is a path relative to ``endpoint``.

    Args:
        endpoint: Base URL of the storage service, if configured.
        url: Absolute URL or endpoint-relative path.

    Returns:
        Parsed URL.

    Raises:
        MalformedRequest: If the URL cannot be parsed, has no host, or is
            relative with no endpoint to resolve against.
    """
    if not url:
        raise MalformedRequest("Request URL is empty")

    if url.startswith("/") or "://" not in url:
        if not endpoint:
            raise MalformedRequest(
                f"Relative URL {url!r} given but no endpoint is configured"
            )
        sep = "" if url.startswith("/") else "/"
        url = f"{endpoint.rstrip('/')}{sep}{url}"

    try:
        parsed = urllib.parse.urlsplit(url)
        # Reading .port raises ValueError for a malformed port
        _ = parsed.port
    except ValueError as e:
        raise MalformedRequest(f"Cannot parse URL {url!r}: {e}") from e

    if parsed.scheme not in _DEFAULT_PORTS:
        raise MalformedRequest(f"URL scheme must be http or https: {url!r}")
    if not parsed.hostname:
        raise MalformedRequest(f"URL has no host: {url!r}")
    return parsed


def host_header(parsed: urllib.parse.SplitResult) -> str:
    """Value of the ``host`` header for a parsed URL.

    The port is included only when it differs from the scheme default.
    """
    hostname = parsed.hostname or ""
    if ":" in hostname:
        hostname = f"[{hostname}]"
    port = parsed.port
    if port is not None and port != _DEFAULT_PORTS.get(parsed.scheme):
        return f"{hostname}:{port}"
    return hostname


def _header_key(name: str) -> str:
    """Header name as it appears in the canonical request."""
    return name.strip().lower()


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup."""
    for key, value in headers.items():
        if _header_key(key) == name:
            return value
    return None


def _drop_header(headers: dict[str, str], name: str) -> None:
    """Remove every variant of ``name`` (case, surrounding whitespace)."""
    for key in [k for k in headers if _header_key(k) == name]:
        del headers[key]


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    """Replace every variant of ``name`` with a single entry."""
    _drop_header(headers, name)
    headers[name] = value


def sign_request(
    context: SigningContext, request: RequestDescriptor
) -> dict[str, str]:
    """Sign a request with SigV4 header authentication.

    Adds ``host``, ``x-amz-date``, ``x-amz-content-sha256`` and
    ``Authorization`` to a copy of the request headers.  A
    caller-supplied ``x-amz-content-sha256`` is used as the payload hash
    instead of hashing the body.

    Args:
        context: Credentials, clock and crypto provider.
        request: Request to sign.

    Returns:
        Full header set to send with the request.

    Raises:
        InvalidCredentials: If credentials are missing or incomplete.
        MalformedRequest: If the method or URL is invalid.
        CryptoFailure: If a digest or MAC primitive fails.
    """
    credentials = context.require_credentials()
    method = normalize_method(request.method)
    parsed = resolve_url(context.endpoint, request.url)

    # One clock read per call
    amz_date, date_stamp = format_amz_date(context.now())

    headers = dict(request.headers)
    _drop_header(headers, "authorization")

    body_hash = _get_header(headers, CONTENT_SHA256_HEADER)
    if not body_hash:
        body_hash = payload_hash(
            method, request.body_bytes, crypto=context.crypto
        )

    _set_header(headers, "host", host_header(parsed))
    _set_header(headers, AMZ_DATE_HEADER, amz_date)
    _set_header(headers, CONTENT_SHA256_HEADER, body_hash)

    creq = build_canonical_request(
        method=method,
        path=parsed.path,
        query=parsed.query,
        headers=headers,
        payload_hash=body_hash,
    )
    scope = credential_scope(
        date_stamp, credentials.region, credentials.service
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

    headers["Authorization"] = authorization_header(
        credentials.access_key, scope, creq.signed_headers, signature
    )
    logger.debug(
        "Signed %s %s (scope=%s, signed_headers=%s)",
        method,
        headers["host"],
        scope,
        creq.signed_headers,
    )
    return headers
