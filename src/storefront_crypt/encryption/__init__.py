"""
Encryption utilities for storefront-crypt.

This module provides the key material provider and the envelope codec used
to protect sensitive order fields at rest.
"""

from .key_provider import KeyConfig, KeyProvider, KeySource, derive_key, generate_secret
from .envelope_codec import DecryptResult, Envelope, EnvelopeCodec

__all__ = [
    "KeyConfig",
    "KeyProvider",
    "KeySource",
    "derive_key",
    "generate_secret",
    "DecryptResult",
    "Envelope",
    "EnvelopeCodec",
]
