"""
Order record integration for storefront-crypt.

This module applies field encryption to the sensitive columns of order
records on the write and read paths.
"""

from .field_adapter import (
    SENSITIVE_ORDER_FIELDS,
    FieldKind,
    OrderFieldAdapter,
    StoredField,
    classify,
)

__all__ = [
    "SENSITIVE_ORDER_FIELDS",
    "FieldKind",
    "OrderFieldAdapter",
    "StoredField",
    "classify",
]
