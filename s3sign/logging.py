# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Log output for the s3sign command line tool.

Library modules only create loggers with ``logging.getLogger(__name__)``.
The CLI calls ``configure_logging`` once, which routes records to stderr
through a ``SecretFilter``.  Two kinds of value never reach the output:

- secret access keys, registered when configuration is loaded
- signing material in records above DEBUG: signatures and hex-encoded
  signing keys, recognized as 64-character lowercase hex strings

DEBUG records keep signing material so a rejected signature can be
compared with the canonical request the server reports.
"""

import logging
import re
import sys
from typing import ClassVar, TextIO


#: Replacement text for redacted values.
REDACTED = "[REDACTED]"

# Hex SHA-256 output not embedded in a longer hex run
_SIGNING_MATERIAL_RE = re.compile(r"(?<![0-9a-f])[0-9a-f]{64}(?![0-9a-f])")

_FORMAT = "s3sign: %(levelname)s %(name)s: %(message)s"
_DEBUG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class SecretFilter(logging.Filter):
    """Redact credentials and signing material from log records.

    Secrets are shared by every instance, so a key registered while
    loading configuration is hidden by the handler installed earlier.
    Records are rewritten in place and never dropped.
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    @classmethod
    def register_secret(cls, secret: str) -> None:
        """Hide ``secret`` from all later log output.

        Empty strings are ignored.
        """
        if not secret or secret in cls._secrets:
            return
        cls._secrets.add(secret)
        # Longest first so a secret containing another is hidden whole
        ordered = sorted(cls._secrets, key=len, reverse=True)
        cls._pattern = re.compile("|".join(map(re.escape, ordered)))

    @classmethod
    def clear_secrets(cls) -> None:
        """Forget every registered secret."""
        cls._secrets.clear()
        cls._pattern = None

    def redact(self, text: str, level: int) -> str:
        """Return ``text`` with the values hidden at ``level`` replaced."""
        if self._pattern is not None:
            text = self._pattern.sub(REDACTED, text)
        if level > logging.DEBUG:
            text = _SIGNING_MATERIAL_RE.sub(REDACTED, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        level = record.levelno
        record.msg = self.redact(str(record.msg), level)
        if isinstance(record.args, dict):
            record.args = {
                k: self.redact(v, level) if isinstance(v, str) else v
                for k, v in record.args.items()
            }
        elif record.args:
            record.args = tuple(
                self.redact(arg, level) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


class _CliHandler(logging.StreamHandler):
    """Stream handler installed by ``configure_logging``."""


def configure_logging(
    level: int = logging.WARNING, *, stream: TextIO | None = None
) -> logging.Handler:
    """Send log records to ``stream`` through a ``SecretFilter``.

    A handler from an earlier call is replaced; handlers installed by
    anything else (a test harness, an embedding application) stay.

    Args:
        level: Root logger level.  DEBUG also adds timestamps.
        stream: Destination, ``sys.stderr`` when omitted.

    Returns:
        The installed handler.
    """
    root = logging.getLogger()
    for existing in root.handlers[:]:
        if isinstance(existing, _CliHandler):
            root.removeHandler(existing)

    handler = _CliHandler(stream if stream is not None else sys.stderr)
    fmt = _DEBUG_FORMAT if level <= logging.DEBUG else _FORMAT
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(SecretFilter())

    root.addHandler(handler)
    root.setLevel(level)
    return handler
