"""
================================================================================
API Testing Pytest Configuration
================================================================================

Shared fixtures for the storefront scenario tests.

Fixtures:
    - config: Configuration loader instance
    - executor: RequestExecutor bound to api.base_url
    - validator: ResponseValidator
    - data_factory: Seedable storefront test data
    - retry_config / perf_limits: Values from config.yaml

Scenario tests talk to a live store and are marked `requires_external`;
they are skipped unless api.run_external is true (API_RUN_EXTERNAL=1).

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import AsyncGenerator, Dict

import allure
import pytest

from ..framework import ConfigLoader, RequestExecutor, ResponseValidator, RetryConfig
from ..framework.test_data_factory import TestDataFactory


# =============================================================================
# Session-Scoped Fixtures (Shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def config() -> ConfigLoader:
    """
    Provide configuration loader instance.

    Session-scoped to ensure configuration is loaded only once.
    """
    return ConfigLoader()


@pytest.fixture(scope="session")
def run_external(config: ConfigLoader) -> bool:
    return config.get("api.run_external", False)


@pytest.fixture(autouse=True)
def _skip_without_store(request, run_external: bool):
    """Skip tests marked requires_external unless live runs are enabled."""
    if request.node.get_closest_marker("requires_external") and not run_external:
        pytest.skip("live store disabled (set API_RUN_EXTERNAL=1 to enable)")


@pytest.fixture(scope="session")
def perf_limits(config: ConfigLoader) -> Dict[str, float]:
    """Performance budgets in seconds."""
    return {
        "max_mean": config.get("performance.max_mean", 3.0),
        "max_single": config.get("performance.max_single", 5.0),
    }


@pytest.fixture(scope="session")
def retry_config(config: ConfigLoader) -> RetryConfig:
    return RetryConfig.from_config(config)


# =============================================================================
# Function-Scoped Fixtures (Fresh for each test)
# =============================================================================

@pytest.fixture
async def executor(config: ConfigLoader) -> AsyncGenerator[RequestExecutor, None]:
    """
    Provide a RequestExecutor for the configured store.

    Usage:
        async def test_example(executor):
            response = await executor.execute(products.get_product_by_id(43))
            assert response.status_code == 200
    """
    async with RequestExecutor.from_config(config) as client:
        yield client


@pytest.fixture
def validator() -> ResponseValidator:
    return ResponseValidator()


@pytest.fixture
def data_factory() -> TestDataFactory:
    return TestDataFactory()


# =============================================================================
# Allure Reporting Hooks
# =============================================================================

def pytest_exception_interact(node, call, report):
    """Attach additional info on test failure."""
    if report.failed:
        allure.attach(
            str(call.excinfo.value),
            name="Error Details",
            attachment_type=allure.attachment_type.TEXT
        )
