"""
================================================================================
Test Data Factory
================================================================================

Factories generating storefront test data: customers for registration and
login, product reviews, catalogue search terms and shipping estimates.

Features:
- Reproducible output with a per-factory seed
- Valid, minimal and deliberately invalid variants for negative tests
- Passwords that satisfy the store's complexity rules

================================================================================
"""

import random
import string
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4


# ================================================================================
# Factory Base
# ================================================================================

class DataFactoryBase:
    """
    Base class for test data factories.

    Each factory owns its own random.Random, so seeding one factory never
    affects another or the global random state.
    """

    # Prefix for all auto-generated test data
    PREFIX = "autotest"

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def _generate_unique_id(self, prefix: str = "") -> str:
        """Generate a unique identifier."""
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        random_part = uuid4().hex[:8]
        return f"{self.PREFIX}{prefix}{timestamp}_{random_part}"

    def _random_string(self, length: int = 10, chars: str = string.ascii_lowercase + string.digits) -> str:
        """Generate random string from `chars`."""
        return "".join(self._random.choice(chars) for _ in range(length))

    def _random_digits(self, length: int) -> str:
        return self._random_string(length, string.digits)

    def _random_choice(self, options: List[Any]) -> Any:
        """Select random item from list."""
        return self._random.choice(options)


# ================================================================================
# Customer Factory
# ================================================================================

class CustomerFactory(DataFactoryBase):
    """
    Customer accounts for the register/login/profile endpoints.

    Field names match the storefront's form fields.
    """

    FIRST_NAMES = ["Alex", "Sam", "Jordan", "Taylor", "Morgan", "Casey", "Riley"]
    LAST_NAMES = ["Smith", "Garcia", "Chen", "Okafor", "Novak", "Silva", "Khan"]
    PASSWORD_SPECIALS = "!@#$%^&*"
    PASSWORD_LENGTH = 12

    def password(self, length: int = PASSWORD_LENGTH) -> str:
        """
        Random password with at least one upper, lower, digit and special.

        Args:
            length: Total length, minimum 4
        """
        if length < 4:
            raise ValueError("Password length must be at least 4")
        charset = string.ascii_letters + string.digits + self.PASSWORD_SPECIALS
        chars = [
            self._random_choice(string.ascii_uppercase),
            self._random_choice(string.ascii_lowercase),
            self._random_choice(string.digits),
            self._random_choice(self.PASSWORD_SPECIALS),
        ]
        chars.extend(self._random_choice(charset) for _ in range(length - len(chars)))
        self._random.shuffle(chars)
        return "".join(chars)

    def unique_email(self) -> str:
        """Unique address under example.com."""
        return f"test.{self._generate_unique_id('_')}@example.com".lower()

    def create_valid(self, **overrides) -> Dict[str, Any]:
        """
        Registration payload accepted by account/register.

        Args:
            **overrides: Field overrides

        Returns:
            Customer data dictionary
        """
        password = self.password()
        data = {
            "firstname": self._random_choice(self.FIRST_NAMES),
            "lastname": self._random_choice(self.LAST_NAMES),
            "email": self.unique_email(),
            "telephone": self._random_digits(10),
            "password": password,
            "confirm": password,
            "agree": 1,
        }
        data.update(overrides)
        return data

    def create_with_mismatched_confirm(self) -> Dict[str, Any]:
        """Registration payload whose confirmation differs from the password."""
        data = self.create_valid()
        data["confirm"] = data["password"] + "x"
        return data

    def create_with_missing_required(self, missing_field: str) -> Dict[str, Any]:
        """Registration payload with one field removed for negative tests."""
        data = self.create_valid()
        data.pop(missing_field, None)
        return data

    def credentials(self) -> Dict[str, str]:
        """Login credentials for an account that does not exist."""
        return {"email": self.unique_email(), "password": self.password()}


# ================================================================================
# Review Factory
# ================================================================================

class ReviewFactory(DataFactoryBase):
    """Product reviews for product/product/write."""

    PHRASES = [
        "Works exactly as described.",
        "Solid build quality for the price.",
        "Shipping was quick and the packaging was good.",
        "Battery life could be better.",
        "Would buy again.",
    ]

    def create_valid(self, **overrides) -> Dict[str, Any]:
        """Review with a 1-5 rating and a text of at least 25 characters."""
        text = " ".join(self._random.sample(self.PHRASES, k=3))
        data = {
            "name": f"{self._random_choice(CustomerFactory.FIRST_NAMES)} {self._random_string(4).upper()}",
            "text": text,
            "rating": self._random.randint(1, 5),
        }
        data.update(overrides)
        return data

    def create_too_short(self) -> Dict[str, Any]:
        """Review text below the store's minimum length."""
        return self.create_valid(text="Too short")


# ================================================================================
# Catalog Factory
# ================================================================================

class CatalogFactory(DataFactoryBase):
    """Identifiers and search terms known to exist in the demo catalogue."""

    SEARCH_TERMS = ["laptop", "phone", "camera", "tablet", "monitor", "keyboard", "mouse"]
    # Demo catalogue product ids: MacBook, iPhone, Apple Cinema 30", Canon EOS 5D, HP LP3065
    PRODUCT_IDS = ["43", "40", "42", "30", "47"]
    CATEGORY_IDS = [20, 18, 25, 57, 17, 24, 33, 34]

    def search_term(self) -> str:
        return self._random_choice(self.SEARCH_TERMS)

    def product_id(self) -> str:
        return self._random_choice(self.PRODUCT_IDS)

    def category_id(self) -> int:
        return self._random_choice(self.CATEGORY_IDS)

    def unknown_product_id(self) -> str:
        """Id far outside the demo catalogue."""
        return str(self._random.randint(900000, 999999))


# ================================================================================
# Shipping Factory
# ================================================================================

class ShippingFactory(DataFactoryBase):
    """Shipping estimate payloads for extension/total/shipping/shipping."""

    # (country_id, zone_id, postcode): US/California, UK/Greater London, DE/Berlin
    DESTINATIONS = [
        ("223", "3655", "94101"),
        ("222", "3563", "SW1A 1AA"),
        ("81", "1256", "10115"),
    ]

    def create_valid(self, **overrides) -> Dict[str, Any]:
        country_id, zone_id, postcode = self._random_choice(self.DESTINATIONS)
        data = {"country_id": country_id, "zone_id": zone_id, "postcode": postcode}
        data.update(overrides)
        return data


# ================================================================================
# Composite Factory
# ================================================================================

class TestDataFactory:
    """
    Composite factory providing access to all data factories.

    Usage:
        factory = TestDataFactory(seed=42)
        customer = factory.customer.create_valid()
        review = factory.review.create_valid()
    """

    # Not a test class, despite the name
    __test__ = False

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize all factories.

        Args:
            seed: Optional random seed for reproducibility
        """
        self.customer = CustomerFactory(seed)
        self.review = ReviewFactory(seed)
        self.catalog = CatalogFactory(seed)
        self.shipping = ShippingFactory(seed)


__all__ = [
    "CatalogFactory",
    "CustomerFactory",
    "ReviewFactory",
    "ShippingFactory",
    "TestDataFactory",
]
