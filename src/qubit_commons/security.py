"""bcrypt password encoders.

bcrypt keys Blowfish with the password, so only the first 72 bytes of the
UTF-8 encoded password are ever used. Recent bcrypt releases refuse longer
input instead of silently ignoring the tail, which breaks callers that used
to rely on the old behaviour.

``TruncatingBCryptPasswordEncoder`` keeps those callers working: it cuts an
overlong password down to the longest valid prefix that fits in 72 bytes,
logs a warning, and hands the result to the plain encoder.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Protocol

import bcrypt

from qubit_commons.config import SUPPORTED_BCRYPT_VERSIONS, settings

MAX_BCRYPT_PASSWORD_BYTES = 72

MIN_BCRYPT_STRENGTH = 4
MAX_BCRYPT_STRENGTH = 31

TRUNCATION_WARNING = (
    "Password length of %d bytes exceeds BCrypt limit of %d bytes; truncated to %d bytes."
)

_BCRYPT_HASH_RE = re.compile(r"^\$2([aby])?\$(\d\d)\$[./0-9A-Za-z]{53}$")

logger = logging.getLogger(__name__)


class PasswordEncoder(Protocol):
    def encode(self, raw_password: str) -> str: ...

    def matches(self, raw_password: str, encoded_password: str | None) -> bool: ...


def _password_bytes(password: str) -> bytes:
    # Lone surrogates encode as a single "?" byte, both for length checks and for hashing.
    return password.encode("utf-8", "replace")


def truncate_password(password: str, log: logging.Logger | None = None) -> str:
    """Return ``password`` cut to the longest prefix whose UTF-8 form fits in 72 bytes.

    A multi-byte character split by the 72-byte boundary is dropped whole.
    Passwords that already fit are returned unchanged and nothing is logged;
    otherwise exactly one warning is written to ``log``.
    """

    raw = _password_bytes(password)
    if len(raw) <= MAX_BCRYPT_PASSWORD_BYTES:
        return password

    # Every character of ``password`` maps to exactly one decoded character,
    # so the decoded length is also the length of the kept prefix.
    kept = len(raw[:MAX_BCRYPT_PASSWORD_BYTES].decode("utf-8", "ignore"))
    truncated = password[:kept]
    (log or logger).warning(
        TRUNCATION_WARNING,
        len(raw),
        MAX_BCRYPT_PASSWORD_BYTES,
        len(_password_bytes(truncated)),
    )
    return truncated


class BCryptPasswordEncoder:
    """Password encoder backed by the ``bcrypt`` library."""

    def __init__(
        self,
        strength: int = 10,
        version: str = "2a",
        log: logging.Logger | None = None,
    ) -> None:
        if not MIN_BCRYPT_STRENGTH <= strength <= MAX_BCRYPT_STRENGTH:
            raise ValueError("Bad strength")
        if version not in SUPPORTED_BCRYPT_VERSIONS:
            raise ValueError(f"Unsupported bcrypt version: {version!r}")
        self.strength = strength
        self.version = version
        self.logger = log or logger

    def encode(self, raw_password: str) -> str:
        pw_bytes = _password_bytes(raw_password)
        if len(pw_bytes) > MAX_BCRYPT_PASSWORD_BYTES:
            raise ValueError(
                f"password cannot be more than {MAX_BCRYPT_PASSWORD_BYTES} bytes"
            )
        salt = bcrypt.gensalt(rounds=self.strength, prefix=self.version.encode("ascii"))
        return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")

    def matches(self, raw_password: str, encoded_password: str | None) -> bool:
        if not encoded_password:
            self.logger.warning("Empty encoded password")
            return False
        if not _BCRYPT_HASH_RE.match(encoded_password):
            self.logger.warning("Encoded password does not look like BCrypt")
            return False

        pw_bytes = _password_bytes(raw_password)
        if len(pw_bytes) > MAX_BCRYPT_PASSWORD_BYTES:
            raise ValueError(
                f"password cannot be more than {MAX_BCRYPT_PASSWORD_BYTES} bytes"
            )
        return bcrypt.checkpw(pw_bytes, encoded_password.encode("utf-8"))

    def upgrade_encoding(self, encoded_password: str | None) -> bool:
        """Whether ``encoded_password`` was hashed with a lower strength than configured."""

        if not encoded_password:
            self.logger.warning("Empty encoded password")
            return False
        m = _BCRYPT_HASH_RE.match(encoded_password)
        if m is None:
            raise ValueError(f"Encoded password does not look like BCrypt: {encoded_password}")
        return int(m.group(2)) < self.strength


class TruncatingBCryptPasswordEncoder(BCryptPasswordEncoder):
    """bcrypt encoder that truncates passwords longer than 72 bytes instead of rejecting them.

    Both ``encode`` and ``matches`` truncate, so a hash made from a long
    password verifies against the same long password, against its exact
    truncated prefix, and against any other password sharing that prefix.
    ``matches`` warns for every overlong candidate, whether it matches or not.
    """

    def encode(self, raw_password: str) -> str:
        return super().encode(truncate_password(raw_password, self.logger))

    def matches(self, raw_password: str, encoded_password: str | None) -> bool:
        return super().matches(truncate_password(raw_password, self.logger), encoded_password)

    def hash(self, raw_password: str) -> str:
        return self.encode(raw_password)

    def verify(self, raw_password: str, encoded_password: str | None) -> bool:
        return self.matches(raw_password, encoded_password)


@lru_cache(maxsize=4)
def get_password_encoder() -> PasswordEncoder:
    # Rebuilt after reset_password_encoder_cache() so tests can override settings.
    return TruncatingBCryptPasswordEncoder(
        strength=settings.bcrypt_strength, version=settings.bcrypt_version
    )


def reset_password_encoder_cache() -> None:
    get_password_encoder.cache_clear()


def hash_password(password: str) -> str:
    return get_password_encoder().encode(password)


def verify_password(password: str, password_hash: str) -> bool:
    return get_password_encoder().matches(password, password_hash)
