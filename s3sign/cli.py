# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""s3sign CLI: multi-command entry point.

Subcommands:

* ``init``   : create a stub config file
* ``sign``   : print SigV4-signed headers for a request
* ``presign``: print a presigned URL for an object
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from s3sign.config import ConfigError, SignerConfig, get_config_path
from s3sign.errors import SigningError
from s3sign.logging import configure_logging
from s3sign.presign import PREVIEW_EXPIRY, presign_url
from s3sign.signer import RequestDescriptor, sign_request


logger = logging.getLogger(__name__)

_DISPATCH: dict[str, str] = {
    "init": "cmd_init",
    "sign": "cmd_sign",
    "presign": "cmd_presign",
}

_SUBCOMMANDS = frozenset(_DISPATCH)

#: Exit codes.
EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_USAGE = 2
EXIT_SIGNING = 3

_USAGE = """\
usage: s3sign <command> [args]

commands:
  init      Create a stub config file
  sign      Print SigV4-signed headers for a request
  presign   Print a presigned URL for an object

Run 's3sign <command> --help' for command-specific help.\
"""


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add ``--config`` and ``--debug`` to a subcommand parser."""
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Config file (default: {get_config_path()})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )


def _load_config(path: Path | None) -> SignerConfig | None:
    """Load config, reporting errors on stderr."""
    try:
        return SignerConfig.from_yaml(path)
    except ConfigError as e:
        print(f"s3sign: configuration error: {e}", file=sys.stderr)
        return None


def _parse_header(raw: str) -> tuple[str, str]:
    """Split a ``Name: value`` header argument.

    Raises:
        ValueError: If there is no colon or the name is empty.
    """
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise ValueError(f"Invalid header {raw!r}, expected 'Name: value'")
    return name.strip(), value.strip()


# ── init subcommand ─────────────────────────────────────────────────


def cmd_init(argv: list[str]) -> int:
    """Create a stub configuration file.

    Args:
        argv: Subcommand arguments.

    Returns:
        Exit code (always 0).
    """
    parser = argparse.ArgumentParser(
        prog="s3sign init", description="Create a stub config file."
    )
    parser.add_argument("--config", type=Path, default=None)
    args = parser.parse_args(argv)

    config_path = args.config or get_config_path()
    if config_path.exists():
        print(f"Config already exists: {config_path}")
        return EXIT_OK

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STUB_CONFIG)
    print(f"Created stub config: {config_path}")
    return EXIT_OK


# ── sign subcommand ─────────────────────────────────────────────────


def cmd_sign(argv: list[str]) -> int:
    """Print signed headers for a request.

    Args:
        argv: Subcommand arguments.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="s3sign sign",
        description="Print SigV4-signed headers for a request.",
    )
    parser.add_argument("method", help="HTTP method, e.g. GET")
    parser.add_argument(
        "url", help="Absolute URL or path relative to the endpoint"
    )
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Extra header to sign (repeatable)",
    )
    body = parser.add_mutually_exclusive_group()
    body.add_argument("--data", default=None, help="Request body text")
    body.add_argument(
        "--data-file", type=Path, default=None, help="Read body from file"
    )
    _add_common_args(parser)
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.debug else logging.WARNING)

    try:
        headers = dict(_parse_header(h) for h in args.header)
    except ValueError as e:
        print(f"s3sign: {e}", file=sys.stderr)
        return EXIT_USAGE

    data: bytes | str | None = args.data
    if args.data_file is not None:
        try:
            data = args.data_file.read_bytes()
        except OSError as e:
            print(f"s3sign: cannot read --data-file: {e}", file=sys.stderr)
            return EXIT_USAGE

    config = _load_config(args.config)
    if config is None:
        return EXIT_CONFIG

    request = RequestDescriptor(
        method=args.method, url=args.url, headers=headers, body=data
    )
    try:
        signed = sign_request(config.context(), request)
    except SigningError as e:
        logger.debug("Signing failed", exc_info=True)
        print(f"s3sign: {type(e).__name__}: {e}", file=sys.stderr)
        return EXIT_SIGNING

    for name, value in signed.items():
        print(f"{name}: {value}")
    return EXIT_OK


# ── presign subcommand ──────────────────────────────────────────────


def cmd_presign(argv: list[str]) -> int:
    """Print a presigned URL for an object.

    Args:
        argv: Subcommand arguments.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="s3sign presign",
        description="Print a presigned URL for an object.",
    )
    parser.add_argument("bucket", help="Bucket name")
    parser.add_argument("key", help="Object key")
    parser.add_argument(
        "--expires",
        type=int,
        default=PREVIEW_EXPIRY,
        help=f"Lifetime in seconds (default: {PREVIEW_EXPIRY})",
    )
    parser.add_argument(
        "--method", default="GET", help="HTTP method (default: GET)"
    )
    parser.add_argument(
        "--share",
        action="store_true",
        help="Use the configured share_endpoint (public share link)",
    )
    _add_common_args(parser)
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.debug else logging.WARNING)

    config = _load_config(args.config)
    if config is None:
        return EXIT_CONFIG

    try:
        context = config.context(share=args.share)
    except ConfigError as e:
        print(f"s3sign: configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    try:
        url = presign_url(
            context, args.bucket, args.key, args.expires, method=args.method
        )
    except SigningError as e:
        logger.debug("Presigning failed", exc_info=True)
        print(f"s3sign: {type(e).__name__}: {e}", file=sys.stderr)
        return EXIT_SIGNING

    print(url)
    return EXIT_OK


def cli() -> None:
    """Entry point for ``s3sign``.

    When no arguments are given, prints usage information.
    """
    argv = sys.argv[1:]

    if not argv or argv[0] in ("--help", "-h"):
        print(_USAGE)
        sys.exit(EXIT_OK)

    if argv[0] not in _SUBCOMMANDS:
        print(f"s3sign: unknown command '{argv[0]}'", file=sys.stderr)
        print(_USAGE, file=sys.stderr)
        sys.exit(EXIT_USAGE)

    command = argv[0]
    rest = argv[1:]

    # Look up handler by name so tests can mock individual commands.
    import s3sign.cli as _self

    handler = getattr(_self, _DISPATCH[command])
    sys.exit(handler(rest))


#: Stub configuration template written by ``s3sign init``.
_STUB_CONFIG = """\
# s3sign configuration

endpoint: https://s3.example.com
region: us-east-1
force_path_style: true

# Alternate endpoint for public share links (s3sign presign --share)
# share_endpoint: http://s3.example.com:20000

credentials:
  access_key: !env S3_ACCESS_KEY
  secret_key: !env S3_SECRET_KEY
"""
