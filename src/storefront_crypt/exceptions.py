"""
Exception hierarchy for storefront-crypt.

StorefrontCryptError (base)
├── ConfigurationError      - invalid or missing key material / config file
├── EncryptionFailed        - a value could not be serialized or encrypted
├── DecryptionFailed        - wrong key, corrupt ciphertext, bad padding
└── MalformedStoredValue    - a stored column value is not valid JSON

Only ConfigurationError (and EncryptionFailed on the write path) are meant
to reach request handlers. DecryptionFailed and MalformedStoredValue are
absorbed by the order field adapter.
"""


class StorefrontCryptError(Exception):
    """
    Base exception for all storefront-crypt errors.

    Attributes:
        message: Human-readable error message
        details: Optional dict with additional context (never key material or plaintext)
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class ConfigurationError(StorefrontCryptError):
    """The configured secret or configuration file is unusable. Fatal at startup."""


class EncryptionFailed(StorefrontCryptError):
    """A value could not be encrypted, usually because it is not JSON-serializable."""


class DecryptionFailed(StorefrontCryptError):
    """An envelope could not be turned back into its original value."""


class MalformedStoredValue(StorefrontCryptError):
    """A stored field value is not valid JSON and is treated as opaque."""
