"""
Storefront service objects.

Stateless functions translating store operations (products, cart,
authentication) into RequestSpec values. Session tokens are passed in by the
caller as headers; nothing here keeps state between calls.
"""

from . import auth, cart, products
from .routes import STORE_ENTRYPOINT, store_request

__all__ = [
    "STORE_ENTRYPOINT",
    "auth",
    "cart",
    "products",
    "store_request",
]
