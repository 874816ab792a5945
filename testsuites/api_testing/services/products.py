"""
Product catalogue endpoints.
"""

from __future__ import annotations

from typing import Union

from ..framework.models import HttpMethod, RequestSpec
from .routes import store_request


ProductId = Union[str, int]

DEFAULT_PAGE_SIZE = 20
DEFAULT_SORT = "p.sort_order"


def get_all_products(
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    sort: str = DEFAULT_SORT,
    order: str = "asc",
) -> RequestSpec:
    """Paged product listing."""
    if order not in ("asc", "desc"):
        raise ValueError(f"order must be 'asc' or 'desc', got {order!r}")
    return store_request(HttpMethod.GET, "api/product", {
        "limit": limit,
        "start": offset,
        "sort": sort,
        "order": order,
    })


def get_product_by_id(product_id: ProductId) -> RequestSpec:
    return store_request(HttpMethod.GET, "api/product", {"product_id": product_id})


def search_products(
    query: str,
    limit: int = DEFAULT_PAGE_SIZE,
    category_id: int = 0,
) -> RequestSpec:
    """Full-text product search; category 0 searches everything."""
    return store_request(HttpMethod.GET, "product/search", {
        "search": query,
        "limit": limit,
        "category_id": category_id,
    })


def get_products_by_category(
    category_id: int,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> RequestSpec:
    return store_request(HttpMethod.GET, "product/category", {
        "path": category_id,
        "limit": limit,
        "start": offset,
    })


def get_featured_products(limit: int = 10) -> RequestSpec:
    return store_request(HttpMethod.GET, "extension/module/featured", {"limit": limit})


def get_product_reviews(product_id: ProductId) -> RequestSpec:
    return store_request(HttpMethod.GET, "product/product/review", {"product_id": product_id})


def create_product_review(
    product_id: ProductId,
    name: str,
    text: str,
    rating: int,
) -> RequestSpec:
    """Post a review; rating is 1-5."""
    if not 1 <= int(rating) <= 5:
        raise ValueError(f"rating must be between 1 and 5, got {rating}")
    return store_request(
        HttpMethod.POST,
        "product/product/write",
        {"product_id": product_id},
        body={"name": name, "text": text, "rating": rating},
    )


def get_related_products(product_id: ProductId) -> RequestSpec:
    return store_request(HttpMethod.GET, "product/product", {"product_id": product_id})


def check_product_availability(product_id: ProductId) -> RequestSpec:
    """Availability is read from the product detail endpoint."""
    return get_product_by_id(product_id)


__all__ = [
    "check_product_availability",
    "create_product_review",
    "get_all_products",
    "get_featured_products",
    "get_product_by_id",
    "get_product_reviews",
    "get_products_by_category",
    "get_related_products",
    "search_products",
]
