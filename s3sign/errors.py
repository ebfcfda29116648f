# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Typed failures raised by the signing functions.

All errors are raised synchronously to the immediate caller.  Signing is
deterministic, so nothing here is retried internally and no partially
signed request or URL is ever returned.
"""


class SigningError(Exception):
    """Base exception for all signing failures."""


class InvalidCredentials(SigningError):
    """Access key or secret key is missing or empty."""


class MalformedRequest(SigningError):
    """URL cannot be parsed or the method is not a known HTTP verb."""


class CryptoFailure(SigningError):
    """The underlying digest or HMAC primitive failed."""


class InvalidExpiry(SigningError):
    """Presigned URL expiry is not a positive number of seconds."""
