"""
Order field adapter.

Applies the envelope codec to the three sensitive columns of an order
record. Stored values come in several historical shapes, so each one is
classified first and then handled according to its kind:

    ENVELOPE      -> decrypted; on failure the stored string is returned
    LEGACY_PLAIN  -> the parsed JSON value (written before encryption)
    OPAQUE        -> the stored string, unchanged (not JSON at all)
    MATERIALIZED  -> already a Python value, unchanged

Reads never raise: one bad record must not fail an order listing.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from ..encryption import Envelope, EnvelopeCodec
from ..exceptions import DecryptionFailed, MalformedStoredValue

logger = logging.getLogger(__name__)

SHIPPING_ADDRESS = "shippingAddress"
BILLING_ADDRESS = "billingAddress"
ORDER_ITEMS = "orderItems"

SENSITIVE_ORDER_FIELDS: tuple[str, ...] = (SHIPPING_ADDRESS, BILLING_ADDRESS, ORDER_ITEMS)


class FieldKind(str, Enum):
    """Classification of a stored order field value."""

    ENVELOPE = "envelope"
    LEGACY_PLAIN = "legacy_plain"
    OPAQUE = "opaque"
    MATERIALIZED = "materialized"


@dataclass(frozen=True)
class StoredField:
    """A stored value together with its classification."""

    kind: FieldKind

    # The value exactly as it was passed in
    raw: Any

    # Parsed JSON for ENVELOPE and LEGACY_PLAIN, the value itself for MATERIALIZED
    parsed: Any = None

    # Set for OPAQUE values
    error: MalformedStoredValue | None = None


def is_envelope_shaped(value: Any) -> bool:
    """Check whether a parsed JSON value looks like an envelope."""
    return isinstance(value, dict) and "iv" in value and "encrypted" in value


def _is_valid_envelope(value: Any) -> bool:
    try:
        Envelope.coerce(value)
    except DecryptionFailed:
        return False
    return True


def classify(stored_value: Any) -> StoredField:
    """
    Classify a stored field value.

    Args:
        stored_value: Raw column value, or an already-parsed object

    Returns:
        StoredField describing the value
    """
    if not isinstance(stored_value, str):
        return StoredField(FieldKind.MATERIALIZED, stored_value, parsed=stored_value)

    try:
        parsed = json.loads(stored_value)
    except (ValueError, RecursionError) as e:
        return StoredField(
            FieldKind.OPAQUE,
            stored_value,
            error=MalformedStoredValue(f"Stored value is not valid JSON: {e.__class__.__name__}"),
        )

    if is_envelope_shaped(parsed):
        return StoredField(FieldKind.ENVELOPE, stored_value, parsed=parsed)

    return StoredField(FieldKind.LEGACY_PLAIN, stored_value, parsed=parsed)


class OrderFieldAdapter:
    """
    Encrypts and decrypts the sensitive fields of order records.

    This is the only entry point order persistence code should use; it
    never calls the codec directly.
    """

    def __init__(self, codec: EnvelopeCodec | None = None) -> None:
        """
        Initialize the adapter.

        Args:
            codec: Envelope codec; built from configuration when omitted
        """
        self.codec = codec or EnvelopeCodec()

    def encode_field(self, plain_value: Any) -> str:
        """
        Encrypt a plaintext value for storage.

        Args:
            plain_value: JSON-serializable value

        Returns:
            Envelope JSON string

        Raises:
            EncryptionFailed: If the value cannot be serialized
        """
        return self.codec.encrypt_to_string(plain_value)

    def decode_field(self, stored_value: Any) -> Any:
        """
        Decode a stored field value, degrading to passthrough on any problem.

        Args:
            stored_value: Raw column value, or an already-parsed object

        Returns:
            The decrypted value, the parsed legacy value, or the input unchanged
        """
        stored = classify(stored_value)

        if stored.kind is FieldKind.ENVELOPE:
            result = self.codec.try_decrypt(stored.parsed)
            if result.ok:
                return result.value
            logger.warning("Could not decrypt order field, returning stored value: %s", result.error)
            return stored.raw

        if stored.kind is FieldKind.OPAQUE:
            logger.debug("Order field is not JSON, returning stored value: %s", stored.error)
            return stored.raw

        if stored.kind is FieldKind.LEGACY_PLAIN:
            logger.debug("Order field holds unencrypted legacy JSON")

        return stored.parsed

    def decode_order(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Decode the sensitive fields of an order record.

        Args:
            record: Order record as fetched from the database

        Returns:
            A new dict with the sensitive fields decoded; other fields untouched
        """
        decoded = dict(record)
        for name in SENSITIVE_ORDER_FIELDS:
            if name in decoded:
                decoded[name] = self.decode_field(decoded[name])
        return decoded

    def decode_orders(self, records: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Decode every record of an order listing."""
        return [self.decode_order(record) for record in records]

    def encode_order(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Encrypt the sensitive fields of a new order record before it is written.

        String values holding JSON are encrypted as their parsed value, since
        checkout code usually stringifies addresses and items before saving.
        Values that are already valid envelopes are left as they are; an
        envelope-shaped object with bad members is encrypted like any other.

        Args:
            record: Order record about to be inserted

        Returns:
            A new dict with the sensitive fields replaced by envelope strings

        Raises:
            EncryptionFailed: If a field cannot be serialized
        """
        encoded = dict(record)
        for name in SENSITIVE_ORDER_FIELDS:
            value = encoded.get(name)
            if value is None:
                continue

            stored = classify(value)
            if stored.kind is FieldKind.ENVELOPE and _is_valid_envelope(stored.parsed):
                continue
            if stored.kind is FieldKind.OPAQUE:
                encoded[name] = self.encode_field(stored.raw)
            else:
                encoded[name] = self.encode_field(stored.parsed)
        return encoded
