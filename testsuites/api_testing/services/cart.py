"""
Shopping cart endpoints.

Each builder takes an optional ``session`` token; when given, it is sent as a
Bearer Authorization header (see auth.session_headers).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from ..framework.models import HttpMethod, RequestSpec
from .auth import session_headers
from .routes import store_request


ProductId = Union[str, int]


def _headers(session: Optional[str]) -> Mapping[str, str]:
    return session_headers(session) if session else {}


def get_cart(session: Optional[str] = None) -> RequestSpec:
    return store_request(HttpMethod.GET, "checkout/cart", headers=_headers(session))


def add_to_cart(
    product_id: ProductId,
    quantity: int = 1,
    options: Optional[Mapping[str, Any]] = None,
    session: Optional[str] = None,
) -> RequestSpec:
    """
    Add a product; ``options`` maps product option ids to chosen values and
    is sent as option[<id>]=<value>.
    """
    return store_request(
        HttpMethod.POST,
        "checkout/cart/add",
        body={
            "product_id": product_id,
            "quantity": quantity,
            "option": dict(options or {}),
        },
        headers=_headers(session),
    )


def update_cart_item(
    cart_item_id: str,
    quantity: int,
    session: Optional[str] = None,
) -> RequestSpec:
    return store_request(
        HttpMethod.POST,
        "checkout/cart/edit",
        body={"key": cart_item_id, "quantity": quantity},
        headers=_headers(session),
    )


def remove_from_cart(cart_item_id: str, session: Optional[str] = None) -> RequestSpec:
    return store_request(
        HttpMethod.GET,
        "checkout/cart/remove",
        {"key": cart_item_id},
        headers=_headers(session),
    )


def clear_cart(session: Optional[str] = None) -> RequestSpec:
    """The remove route without a key empties the cart."""
    return store_request(HttpMethod.GET, "checkout/cart/remove", headers=_headers(session))


def apply_coupon(coupon_code: str, session: Optional[str] = None) -> RequestSpec:
    return store_request(
        HttpMethod.POST,
        "extension/total/coupon/coupon",
        body={"coupon": coupon_code},
        headers=_headers(session),
    )


def remove_coupon(session: Optional[str] = None) -> RequestSpec:
    return store_request(
        HttpMethod.GET, "extension/total/coupon/coupon", headers=_headers(session)
    )


def get_cart_totals(session: Optional[str] = None) -> RequestSpec:
    """Totals are rendered on the cart page itself."""
    return get_cart(session)


def calculate_shipping(
    country_id: str,
    zone_id: str,
    postcode: str,
    session: Optional[str] = None,
) -> RequestSpec:
    return store_request(
        HttpMethod.POST,
        "extension/total/shipping/shipping",
        body={"country_id": country_id, "zone_id": zone_id, "postcode": postcode},
        headers=_headers(session),
    )


def get_shipping_methods(session: Optional[str] = None) -> RequestSpec:
    return store_request(
        HttpMethod.GET, "extension/total/shipping/quote", headers=_headers(session)
    )


__all__ = [
    "add_to_cart",
    "apply_coupon",
    "calculate_shipping",
    "clear_cart",
    "get_cart",
    "get_cart_totals",
    "get_shipping_methods",
    "remove_coupon",
    "remove_from_cart",
    "update_cart_item",
]
