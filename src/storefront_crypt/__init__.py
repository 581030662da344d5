"""
storefront-crypt - At-rest encryption for sensitive order fields.

This package encrypts the shipping address, billing address and line items
of storefront orders into self-describing envelopes, and reads them back
alongside legacy plaintext records.
"""

from .config import StorefrontCryptConfig
from .exceptions import (
    StorefrontCryptError,
    ConfigurationError,
    EncryptionFailed,
    DecryptionFailed,
    MalformedStoredValue,
)
from .encryption import KeyConfig, KeyProvider, KeySource, Envelope, EnvelopeCodec, DecryptResult
from .orders import OrderFieldAdapter, FieldKind, StoredField, SENSITIVE_ORDER_FIELDS

__version__ = "0.1.0"

__all__ = [
    "StorefrontCryptConfig",
    "StorefrontCryptError",
    "ConfigurationError",
    "EncryptionFailed",
    "DecryptionFailed",
    "MalformedStoredValue",
    "KeyConfig",
    "KeyProvider",
    "KeySource",
    "Envelope",
    "EnvelopeCodec",
    "DecryptResult",
    "OrderFieldAdapter",
    "FieldKind",
    "StoredField",
    "SENSITIVE_ORDER_FIELDS",
]
