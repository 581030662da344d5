"""
Key material for order field encryption.

The symmetric key is derived from an operator-supplied hex secret. When no
secret is configured, a random secret can be generated once per process;
that variant is explicit (KeySource.EPHEMERAL) and logged, because anything
encrypted under it cannot be decrypted after the process restarts.
"""

import logging
import re
import secrets
from dataclasses import dataclass, field
from enum import Enum
from functools import cache
from threading import Lock

from ..config import StorefrontCryptConfig
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# AES-256
KEY_SIZE = 32

_HEX_RE = re.compile(r"[0-9a-fA-F]*")

# Serializes the first call to _ephemeral_secret so concurrent callers share one secret
_ephemeral_lock = Lock()


@cache
def _ephemeral_secret() -> str:
    """Generate the per-process fallback secret on first use and reuse it afterwards."""
    logger.warning(
        "No encryption secret configured; using an ephemeral per-process key. "
        "Order data encrypted now will not be decryptable after a restart."
    )
    return secrets.token_hex(KEY_SIZE)


def _shared_ephemeral_secret() -> str:
    with _ephemeral_lock:
        return _ephemeral_secret()


class KeySource(str, Enum):
    """Where the secret behind a key came from."""

    CONFIGURED = "configured"
    EPHEMERAL = "ephemeral"


@dataclass(frozen=True)
class KeyConfig:
    """
    Configuration for the key material provider.

    Build instances with from_secret(), ephemeral() or from_config() rather
    than calling the constructor directly.
    """

    source: KeySource

    # Hex-encoded secret; kept out of repr so it never lands in logs
    secret: str = field(repr=False)

    @classmethod
    def from_secret(cls, secret: str) -> "KeyConfig":
        """
        Create a configuration for an operator-supplied secret.

        Args:
            secret: Hex-encoded secret

        Returns:
            KeyConfig with source CONFIGURED
        """
        return cls(source=KeySource.CONFIGURED, secret=secret)

    @classmethod
    def ephemeral(cls) -> "KeyConfig":
        """
        Create a configuration backed by the per-process random secret.

        Every ephemeral configuration in a process shares the same secret,
        so data encrypted with it is readable by the current process only.

        Returns:
            KeyConfig with source EPHEMERAL
        """
        return cls(source=KeySource.EPHEMERAL, secret=_shared_ephemeral_secret())

    @classmethod
    def from_config(cls) -> "KeyConfig":
        """
        Build the key configuration from StorefrontCryptConfig.

        Returns:
            KeyConfig for the configured secret, or an ephemeral one

        Raises:
            ConfigurationError: If no secret is set and the ephemeral fallback is disabled
        """
        secret = StorefrontCryptConfig.get_encryption_key()
        if secret is not None:
            return cls.from_secret(secret)

        if not StorefrontCryptConfig.allows_ephemeral_key():
            raise ConfigurationError(
                "No encryption secret configured and the ephemeral key fallback is disabled"
            )

        return cls.ephemeral()

    @property
    def is_ephemeral(self) -> bool:
        return self.source is KeySource.EPHEMERAL


def derive_key(secret: str) -> bytes:
    """
    Derive the 32-byte key from a hex secret.

    The decoded secret is truncated to 32 bytes when it is long enough and
    zero-padded at the end otherwise.

    Args:
        secret: Hex-encoded secret

    Returns:
        Exactly KEY_SIZE bytes

    Raises:
        ConfigurationError: If the secret is empty or not valid hex
    """
    if not secret:
        raise ConfigurationError("Encryption secret cannot be empty")

    # bytes.fromhex() tolerates embedded whitespace, the secret must not contain any
    if len(secret) % 2 != 0 or not _HEX_RE.fullmatch(secret):
        raise ConfigurationError(
            "Encryption secret is not valid hex", {"length": len(secret)}
        )

    decoded = bytes.fromhex(secret)
    if len(decoded) >= KEY_SIZE:
        return decoded[:KEY_SIZE]

    return decoded.ljust(KEY_SIZE, b"\x00")


def generate_secret(num_bytes: int = 64) -> str:
    """
    Generate a new random hex secret for operators to put in configuration.

    Args:
        num_bytes: Number of random bytes; only the first 32 are used as key

    Returns:
        Hex string of 2 * num_bytes characters
    """
    if num_bytes < KEY_SIZE:
        raise ValueError(f"Secret must be at least {KEY_SIZE} bytes")
    return secrets.token_hex(num_bytes)


class KeyProvider:
    """
    Provides the symmetric key used for every encrypt/decrypt operation.

    The key is derived once at construction, so a malformed secret fails
    at startup rather than on the first request.
    """

    def __init__(self, key_config: KeyConfig | None = None) -> None:
        """
        Initialize the key provider.

        Args:
            key_config: Key configuration; read from StorefrontCryptConfig when omitted

        Raises:
            ConfigurationError: If the secret is unusable
        """
        self.key_config = key_config or KeyConfig.from_config()
        self._key = derive_key(self.key_config.secret)

    @property
    def is_ephemeral(self) -> bool:
        return self.key_config.is_ephemeral

    def get_key(self) -> bytes:
        """
        Get the derived key.

        Returns:
            The 32-byte key
        """
        return self._key
