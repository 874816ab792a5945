"""
================================================================================
Root Pytest Configuration
================================================================================

This module provides the root pytest configuration for the entire test suite.
It registers common markers and tags tests by directory.

================================================================================
"""

import pytest


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    # Priority markers
    config.addinivalue_line(
        "markers", "P0: Critical priority tests - must pass for deployment"
    )
    config.addinivalue_line(
        "markers", "P1: High priority tests - important functionality"
    )
    config.addinivalue_line(
        "markers", "P2: Medium priority tests - edge cases and minor features"
    )
    config.addinivalue_line(
        "markers", "P3: Low priority tests - extensive validation"
    )

    # Test type markers
    config.addinivalue_line(
        "markers", "smoke: Quick verification tests"
    )
    config.addinivalue_line(
        "markers", "regression: Full regression test suite"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests simulating user flows"
    )
    config.addinivalue_line(
        "markers", "performance: Timing budget tests"
    )

    # Domain markers
    config.addinivalue_line(
        "markers", "api: Storefront scenario tests"
    )
    config.addinivalue_line(
        "markers", "unit: Offline tests of the orchestration core"
    )

    # Feature markers
    config.addinivalue_line(
        "markers", "products: Tests related to the product catalogue"
    )
    config.addinivalue_line(
        "markers", "cart: Tests related to the shopping cart"
    )
    config.addinivalue_line(
        "markers", "auth: Tests related to customer accounts"
    )

    # Dependency markers
    config.addinivalue_line(
        "markers", "requires_external: Tests requiring the live store"
    )


def pytest_collection_modifyitems(config, items):
    """Tag tests by the directory they live in."""
    for item in items:
        path = str(item.fspath)
        if "api_testing" in path:
            item.add_marker(pytest.mark.api)
        elif "unit" in path:
            item.add_marker(pytest.mark.unit)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "Storefront API Test Orchestration",
        "=" * 60,
        "",
    ]
