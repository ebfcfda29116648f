# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures for signing tests."""

from collections.abc import Iterator

import pytest

from s3sign.context import Credentials, FixedClock, SigningContext
from s3sign.dotenv_loader import reset_dotenv_state
from s3sign.logging import SecretFilter
from tests.vectors import S3_INSTANT, S3_REGION, S3_SECRET_KEY


@pytest.fixture(autouse=True)
def _clean_global_state() -> Iterator[None]:
    """Reset registered secrets and dotenv state around each test."""
    SecretFilter.clear_secrets()
    reset_dotenv_state()
    yield
    SecretFilter.clear_secrets()
    reset_dotenv_state()


@pytest.fixture
def credentials() -> Credentials:
    """Credentials from the published S3 examples (access key AKIDEXAMPLE)."""
    return Credentials(
        access_key="AKIDEXAMPLE",
        secret_key=S3_SECRET_KEY,
        region=S3_REGION,
        service="s3",
    )


@pytest.fixture
def fixed_clock() -> FixedClock:
    """Clock pinned at 2013-05-24T00:00:00Z."""
    return FixedClock(S3_INSTANT)


@pytest.fixture
def context(
    credentials: Credentials, fixed_clock: FixedClock
) -> SigningContext:
    """Signing context against a path-style endpoint."""
    return SigningContext(
        credentials=credentials,
        clock=fixed_clock,
        endpoint="https://s3.example.com",
        force_path_style=True,
    )
