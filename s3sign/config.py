# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Signer configuration loaded from a YAML file.

The default location follows the XDG Base Directory Specification:

    ``$XDG_CONFIG_HOME/s3sign/s3sign.yaml``
    (typically ``~/.config/s3sign/s3sign.yaml``)

``!env`` tags resolve values from environment variables, so the secret
key does not have to live in the file itself::

    endpoint: https://s3.example.com
    region: us-east-1
    force_path_style: true
    share_endpoint: http://s3.example.com:20000
    credentials:
      access_key: !env S3_ACCESS_KEY
      secret_key: !env S3_SECRET_KEY

The signing functions never read configuration themselves; a loaded
``SignerConfig`` is turned into a ``SigningContext`` and passed in.
"""

from __future__ import annotations

import logging
import os
import urllib.parse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_path

from s3sign.context import (
    DEFAULT_REGION,
    DEFAULT_SERVICE,
    Credentials,
    SigningClock,
    SigningContext,
    utc_now,
)
from s3sign.crypto import DEFAULT_CRYPTO, CryptoProvider
from s3sign.dotenv_loader import load_dotenv_once
from s3sign.logging import SecretFilter


logger = logging.getLogger(__name__)

#: Application name for XDG path resolution.
_APP_NAME = "s3sign"

_BOOL_TRUTHY = frozenset({"true", "1", "yes", "on"})
_BOOL_FALSY = frozenset({"false", "0", "no", "off"})


def get_config_path() -> Path:
    """Return the default config file path.

    Returns:
        ``$XDG_CONFIG_HOME/s3sign/s3sign.yaml``.
    """
    return user_config_path(_APP_NAME) / "s3sign.yaml"


def get_dotenv_path() -> Path:
    """Return the default ``.env`` file path inside the XDG config directory.

    Returns:
        ``$XDG_CONFIG_HOME/s3sign/.env``.
    """
    return user_config_path(_APP_NAME) / ".env"


class ConfigError(Exception):
    """Base exception for configuration errors."""


# ---------------------------------------------------------------------------
# YAML tag placeholders
# ---------------------------------------------------------------------------


class _EnvVar:
    """Placeholder for an unresolved ``!env VAR_NAME`` tag."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name


def _env_constructor(loader: yaml.SafeLoader, node: yaml.Node) -> _EnvVar:
    """Handle ``!env VAR_NAME`` in YAML."""
    value = loader.construct_scalar(node)
    return _EnvVar(str(value))


def _make_loader() -> type[yaml.SafeLoader]:
    """Create a YAML loader that understands ``!env``."""

    class EnvLoader(yaml.SafeLoader):
        pass

    EnvLoader.add_constructor("!env", _env_constructor)
    return EnvLoader


# ---------------------------------------------------------------------------
# Value resolution
# ---------------------------------------------------------------------------


def _coerce_bool(value: object) -> bool:
    """Coerce a value to bool, handling string representations."""
    if isinstance(value, bool):
        return value
    s = str(value).lower().strip()
    if s in _BOOL_TRUTHY:
        return True
    if s in _BOOL_FALSY:
        return False
    raise ConfigError(f"Cannot convert {value!r} to bool")


def _raw_resolve(value: object) -> str | None:
    """Resolve an ``_EnvVar`` to its string value, or stringify literals.

    Returns None if the value is None or the env var is unset or empty.
    """
    if isinstance(value, _EnvVar):
        raw = os.environ.get(value.var_name)
        if not raw:
            return None
        return raw
    if value is None:
        return None
    return str(value)


def _resolve_str(value: object) -> str | None:
    """Resolve an optional string value (may be ``_EnvVar``).

    Returns:
        The resolved string, or None when absent or empty.
    """
    resolved = _raw_resolve(value)
    if not resolved:
        return None
    return resolved


def _require_str(value: object, *, field_name: str) -> str:
    """Resolve a required string value.

    Args:
        value: Raw value from YAML (may be ``_EnvVar``).
        field_name: Dotted config key, used in the error message.

    Returns:
        The resolved, non-empty string.

    Raises:
        ConfigError: If the value is missing, or names an environment
            variable that is unset or empty.
    """
    resolved = _resolve_str(value)
    if resolved is not None:
        return resolved
    if isinstance(value, _EnvVar):
        raise ConfigError(
            f"Required config '{field_name}': environment variable "
            f"'{value.var_name}' is not set"
        )
    raise ConfigError(f"Required config '{field_name}' is missing")


def _resolve_bool(value: object, *, default: bool) -> bool:
    """Resolve a bool value, handling ``!env`` tags."""
    if isinstance(value, _EnvVar):
        resolved = _raw_resolve(value)
        if resolved is None:
            return default
        return _coerce_bool(resolved)
    if value is None:
        return default
    return _coerce_bool(value)


def _validate_endpoint(value: str | None, *, field_name: str) -> str | None:
    """Validate that an endpoint is an http(s) URL with a host."""
    if value is None:
        return None
    parsed = urllib.parse.urlsplit(value.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(
            f"Config '{field_name}' must be an http(s) URL with a host, "
            f"got {value!r}"
        )
    return value.strip().rstrip("/")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignerConfig:
    """Endpoint and credentials for one S3-compatible account.

    Attributes:
        access_key: Access key ID.
        secret_key: Secret access key.
        endpoint: Base URL of the storage service.
        region: Region used in the credential scope.
        service: Service name used in the credential scope.
        force_path_style: Bucket in path instead of host name.
        share_endpoint: Alternate endpoint for public share links.
    """

    access_key: str
    secret_key: str = field(repr=False)
    endpoint: str | None = None
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE
    force_path_style: bool = True
    share_endpoint: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SignerConfig:
        """Build a config from parsed YAML.

        Args:
            raw: Top-level mapping (values may be ``!env`` placeholders).

        Returns:
            Validated config.

        Raises:
            ConfigError: If a required value is missing or invalid.
        """
        if not isinstance(raw, dict):
            raise ConfigError("Config file must contain a mapping")

        creds = raw.get("credentials")
        if creds is None:
            raise ConfigError("Required config 'credentials' is missing")
        if not isinstance(creds, dict):
            raise ConfigError("Config 'credentials' must be a mapping")

        access_key = _require_str(
            creds.get("access_key"), field_name="credentials.access_key"
        )
        secret_key = _require_str(
            creds.get("secret_key"), field_name="credentials.secret_key"
        )

        endpoint = _validate_endpoint(
            _resolve_str(raw.get("endpoint")), field_name="endpoint"
        )
        share_endpoint = _validate_endpoint(
            _resolve_str(raw.get("share_endpoint")),
            field_name="share_endpoint",
        )

        config = cls(
            access_key=access_key,
            secret_key=secret_key,
            endpoint=endpoint,
            region=_resolve_str(raw.get("region")) or DEFAULT_REGION,
            service=_resolve_str(raw.get("service")) or DEFAULT_SERVICE,
            force_path_style=_resolve_bool(
                raw.get("force_path_style"), default=True
            ),
            share_endpoint=share_endpoint,
        )
        SecretFilter.register_secret(secret_key)
        return config

    @classmethod
    def from_yaml(cls, config_path: Path | None = None) -> SignerConfig:
        """Load config from a YAML file.

        Loads ``.env`` files first so ``!env`` tags can refer to them.

        Args:
            config_path: Path to the YAML file.  Defaults to
                ``get_config_path()``.

        Returns:
            Validated config.

        Raises:
            ConfigError: If the file is missing, unreadable or invalid.
        """
        load_dotenv_once()

        path = config_path or get_config_path()
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            with path.open() as f:
                raw = yaml.load(f, Loader=_make_loader())
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if raw is None:
            raise ConfigError(f"Config file is empty: {path}")

        logger.debug("Loaded config from %s", path)
        return cls.from_dict(raw)

    @property
    def credentials(self) -> Credentials:
        """Credentials for signing."""
        return Credentials(
            access_key=self.access_key,
            secret_key=self.secret_key,
            region=self.region,
            service=self.service,
        )

    def context(
        self,
        *,
        clock: SigningClock = utc_now,
        crypto: CryptoProvider = DEFAULT_CRYPTO,
        share: bool = False,
    ) -> SigningContext:
        """Build a signing context.

        Args:
            clock: Source of the signing instant.
            crypto: Digest/MAC provider.
            share: Use ``share_endpoint`` instead of ``endpoint``.

        Returns:
            Signing context for this account.

        Raises:
            ConfigError: If ``share`` is set but no share endpoint is
                configured.
        """
        endpoint = self.endpoint
        if share:
            if not self.share_endpoint:
                raise ConfigError("Config 'share_endpoint' is not set")
            endpoint = self.share_endpoint
        return SigningContext(
            credentials=self.credentials,
            clock=clock,
            crypto=crypto,
            endpoint=endpoint,
            force_path_style=self.force_path_style,
        )
