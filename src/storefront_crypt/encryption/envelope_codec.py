"""
Envelope codec.

This module converts JSON-serializable values to and from the envelope
stored in order columns:

    {"iv":"<32 hex chars>","encrypted":"<hex ciphertext>"}

Values are encrypted with AES-256-CBC and PKCS#7 padding under a fresh
random 16-byte IV per call. CBC carries no integrity tag, so tampered
ciphertext is only detected when it happens to break the padding or the
JSON.
"""

import json
import os
import re
from dataclasses import dataclass
from collections.abc import Mapping
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..exceptions import DecryptionFailed, EncryptionFailed
from .key_provider import KeyProvider

IV_SIZE = 16
BLOCK_SIZE_BITS = 128

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


class Envelope(BaseModel):
    """
    Persisted representation of one encrypted field.

    Unknown members are ignored on input, so envelopes written with an
    empty "tag" member by older storefront releases still validate.
    """

    model_config = ConfigDict(frozen=True)

    # Initialization vector, hex encoded (16 bytes decoded)
    iv: str

    # Ciphertext, hex encoded
    encrypted: str

    @field_validator("iv")
    @classmethod
    def check_iv(cls, value: str) -> str:
        if len(value) != IV_SIZE * 2 or not _HEX_RE.fullmatch(value):
            raise ValueError(f"iv must be {IV_SIZE * 2} hex characters")
        return value

    @field_validator("encrypted")
    @classmethod
    def check_encrypted(cls, value: str) -> str:
        if not value or len(value) % 2 != 0 or not _HEX_RE.fullmatch(value):
            raise ValueError("encrypted must be non-empty, even-length hex")
        return value

    def to_json(self) -> str:
        """
        Serialize the envelope for storage in a text column.

        Returns:
            Compact JSON string with exactly the iv and encrypted members
        """
        return json.dumps({"iv": self.iv, "encrypted": self.encrypted}, separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str) -> "Envelope":
        """
        Parse a stored envelope string.

        Raises:
            DecryptionFailed: If the text is not a valid envelope
        """
        try:
            data = json.loads(text)
        except (ValueError, RecursionError) as e:
            raise DecryptionFailed(f"Envelope is not valid JSON: {e}") from e
        return cls.coerce(data)

    @classmethod
    def coerce(cls, data: "Envelope | Mapping[str, Any]") -> "Envelope":
        """
        Accept an Envelope or an envelope-shaped mapping.

        Raises:
            DecryptionFailed: If the mapping is not a valid envelope
        """
        if isinstance(data, Envelope):
            return data
        if not isinstance(data, Mapping):
            raise DecryptionFailed(
                "Envelope must be a JSON object", {"type": type(data).__name__}
            )
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise DecryptionFailed(
                "Invalid envelope", {"errors": e.error_count()}
            ) from e


@dataclass(frozen=True)
class DecryptResult:
    """Outcome of a decryption attempt: either a value or the failure."""

    ok: bool
    value: Any = None
    error: DecryptionFailed | None = None

    @classmethod
    def success(cls, value: Any) -> "DecryptResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: DecryptionFailed) -> "DecryptResult":
        return cls(ok=False, error=error)


class EnvelopeCodec:
    """
    Encrypts values into envelopes and decrypts them back.

    Each call builds its own cipher context, so one codec can be shared
    across threads.
    """

    def __init__(self, key_provider: KeyProvider | None = None) -> None:
        """
        Initialize the codec.

        Args:
            key_provider: Source of the symmetric key; built from configuration when omitted
        """
        self.key_provider = key_provider or KeyProvider()

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self.key_provider.get_key()), modes.CBC(iv))

    def encrypt(self, value: Any) -> Envelope:
        """
        Encrypt a JSON-serializable value.

        Args:
            value: The value to encrypt

        Returns:
            A new envelope; two calls with the same value never return the same envelope

        Raises:
            EncryptionFailed: If the value cannot be serialized to JSON
        """
        try:
            value_json = json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError, RecursionError) as e:
            raise EncryptionFailed(
                f"Value is not JSON-serializable: {e}", {"type": type(value).__name__}
            ) from e

        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(value_json.encode("utf-8")) + padder.finalize()

        iv = os.urandom(IV_SIZE)
        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return Envelope(iv=iv.hex(), encrypted=ciphertext.hex())

    def decrypt(self, envelope: Envelope | Mapping[str, Any]) -> Any:
        """
        Decrypt an envelope back into its original value.

        Args:
            envelope: An Envelope or a mapping with iv and encrypted members

        Returns:
            The decrypted JSON value

        Raises:
            DecryptionFailed: On invalid hex, wrong key or IV, bad padding,
                invalid UTF-8 or plaintext that is not JSON
        """
        envelope = Envelope.coerce(envelope)

        try:
            iv = bytes.fromhex(envelope.iv)
            ciphertext = bytes.fromhex(envelope.encrypted)

            decryptor = self._cipher(iv).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()

            unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()

            # UnicodeDecodeError and JSONDecodeError are both ValueErrors;
            # RecursionError comes from pathologically nested plaintext
            return json.loads(plaintext.decode("utf-8"))
        except (ValueError, RecursionError) as e:
            raise DecryptionFailed(
                "Failed to decrypt data", {"reason": type(e).__name__}
            ) from e

    def try_decrypt(self, envelope: Envelope | Mapping[str, Any]) -> DecryptResult:
        """
        Decrypt an envelope, reporting failure as a value instead of raising.

        Args:
            envelope: An Envelope or a mapping with iv and encrypted members

        Returns:
            DecryptResult.success(value) or DecryptResult.failure(error)
        """
        try:
            return DecryptResult.success(self.decrypt(envelope))
        except DecryptionFailed as e:
            return DecryptResult.failure(e)

    def encrypt_to_string(self, value: Any) -> str:
        """Encrypt a value and return the envelope as a JSON string."""
        return self.encrypt(value).to_json()

    def decrypt_from_string(self, envelope_json: str) -> Any:
        """Decrypt a value from an envelope JSON string."""
        return self.decrypt(Envelope.from_json(envelope_json))
