import string

import pytest

from testsuites.api_testing.framework.test_data_factory import CustomerFactory, TestDataFactory


@pytest.mark.parametrize("seed", range(20))
def test_password_meets_complexity_rules(seed):
    password = CustomerFactory(seed).password()

    assert len(password) == CustomerFactory.PASSWORD_LENGTH
    assert any(c in string.ascii_uppercase for c in password)
    assert any(c in string.ascii_lowercase for c in password)
    assert any(c in string.digits for c in password)
    assert any(c in CustomerFactory.PASSWORD_SPECIALS for c in password)


def test_password_minimum_length():
    with pytest.raises(ValueError):
        CustomerFactory().password(length=3)


def test_same_seed_same_data():
    first = TestDataFactory(seed=7)
    second = TestDataFactory(seed=7)

    one, two = first.customer.create_valid(), second.customer.create_valid()
    # Emails embed a uuid and stay unique regardless of the seed
    assert one.pop("email") != two.pop("email")
    assert one == two
    assert first.review.create_valid() == second.review.create_valid()
    assert first.catalog.product_id() == second.catalog.product_id()


def test_customer_variants():
    factory = CustomerFactory(seed=1)

    valid = factory.create_valid(firstname="Riley")
    assert valid["firstname"] == "Riley"
    assert valid["password"] == valid["confirm"]
    assert valid["agree"] == 1

    mismatched = factory.create_with_mismatched_confirm()
    assert mismatched["password"] != mismatched["confirm"]

    assert "email" not in factory.create_with_missing_required("email")


def test_review_and_catalog_values():
    factory = TestDataFactory(seed=3)

    review = factory.review.create_valid()
    assert 1 <= review["rating"] <= 5
    assert len(review["text"]) >= 25
    assert factory.review.create_too_short()["text"] == "Too short"
    assert factory.catalog.product_id() in factory.catalog.PRODUCT_IDS
    assert int(factory.catalog.unknown_product_id()) >= 900000
    assert set(factory.shipping.create_valid()) == {"country_id", "zone_id", "postcode"}
