"""
Pytest configuration for storefront-crypt tests.
"""

import os
from typing import Generator

import pytest

from storefront_crypt.config import StorefrontCryptConfig
from storefront_crypt.encryption import EnvelopeCodec, KeyConfig, KeyProvider
from storefront_crypt.encryption.key_provider import _ephemeral_secret
from storefront_crypt.orders import OrderFieldAdapter

ENV_KEYS = ["ENCRYPTION_KEY", "STOREFRONT_ALLOW_EPHEMERAL_KEY", "STOREFRONT_LOG_LEVEL"]

# 32 zero bytes, hex encoded
ZERO_SECRET = "00" * 32


@pytest.fixture(autouse=True)
def clean_config() -> Generator[None, None, None]:
    """
    Isolate every test from the process environment and from other tests.

    Removes the storefront-crypt environment variables, resets the
    class-level configuration state and forgets the per-process ephemeral
    secret, so each test starts like a fresh process.
    """
    original_env = {key: os.environ.get(key) for key in ENV_KEYS}
    for key in ENV_KEYS:
        os.environ.pop(key, None)

    StorefrontCryptConfig._config = {}
    StorefrontCryptConfig._initialized = False
    _ephemeral_secret.cache_clear()

    yield

    for key, value in original_env.items():
        if value is not None:
            os.environ[key] = value
        else:
            os.environ.pop(key, None)

    StorefrontCryptConfig._config = {}
    StorefrontCryptConfig._initialized = False
    _ephemeral_secret.cache_clear()


@pytest.fixture
def key_provider() -> KeyProvider:
    """Key provider for the all-zero test secret."""
    return KeyProvider(KeyConfig.from_secret(ZERO_SECRET))


@pytest.fixture
def codec(key_provider: KeyProvider) -> EnvelopeCodec:
    return EnvelopeCodec(key_provider)


@pytest.fixture
def adapter(codec: EnvelopeCodec) -> OrderFieldAdapter:
    return OrderFieldAdapter(codec)


@pytest.fixture
def other_adapter() -> OrderFieldAdapter:
    """Adapter using a different key than the adapter fixture."""
    return OrderFieldAdapter(EnvelopeCodec(KeyProvider(KeyConfig.from_secret("11" * 32))))


@pytest.fixture
def sample_order() -> dict[str, object]:
    """A freshly checked-out order, as the checkout handler builds it."""
    return {
        "coOrderId": "ORD-1001",
        "coUserId": 7,
        "coStatus": "Processing",
        "coTotalPrice": 32.99,
        "shippingAddress": {
            "firstName": "Jane",
            "lastName": "Doe",
            "address1": "123 Main St",
            "city": "Beverly Hills",
            "state": "CA",
            "zip": "90210",
            "country": "US",
        },
        "billingAddress": {
            "firstName": "Jane",
            "lastName": "Doe",
            "address1": "500 Billing Ave",
            "city": "Los Angeles",
            "state": "CA",
            "zip": "90001",
            "country": "US",
        },
        "orderItems": [
            {"id": "prod-1", "name": "Canvas Tote", "price": 19.99, "quantity": 1},
            {"id": "prod-2", "name": "Enamel Pin", "price": 5.0, "quantity": 2},
        ],
    }
