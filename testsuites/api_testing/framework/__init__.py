"""
================================================================================
API Testing Framework
================================================================================

Test orchestration core for the storefront API suite.

Modules:
    - models: RequestSpec / NormalizedResponse value types
    - http_client: RequestExecutor over an httpx transport
    - retry_policy: bounded constant-delay retry
    - wait_helpers: cooperative condition polling
    - metrics: timing samples and summary statistics
    - response_validator: status / header / content-type / key contracts
    - observability: loguru and Allure event sinks
    - config_loader: YAML configuration management
    - test_data_factory: storefront test data

Author: Automation Team
License: MIT
================================================================================
"""

from .config_loader import ConfigLoader, ConfigurationError
from .http_client import HttpClientError, HttpxTransport, RequestExecutor, Transport, TransportError
from .metrics import (
    EmptySampleSetError,
    PerformanceSummary,
    TimingSample,
    measure,
    measure_repeated,
    merge_samples,
    summarize,
)
from .models import HttpMethod, NormalizedResponse, OrchestrationError, RequestSpec, ResponseParseError
from .observability import LoguruSink, ObservabilitySink, RecordingSink
from .response_validator import (
    ResponseValidator,
    ValidationExpectation,
    ValidationResult,
    Violation,
    ViolationKind,
    compare_json,
)
from .retry_policy import RetryConfig, RetryExhaustedError, run_with_retry
from .wait_helpers import PollConfig, PollTimeoutError, poll_until

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "EmptySampleSetError",
    "HttpClientError",
    "HttpMethod",
    "HttpxTransport",
    "LoguruSink",
    "NormalizedResponse",
    "ObservabilitySink",
    "OrchestrationError",
    "PerformanceSummary",
    "PollConfig",
    "PollTimeoutError",
    "RecordingSink",
    "RequestExecutor",
    "RequestSpec",
    "ResponseParseError",
    "ResponseValidator",
    "RetryConfig",
    "RetryExhaustedError",
    "TimingSample",
    "Transport",
    "TransportError",
    "ValidationExpectation",
    "ValidationResult",
    "Violation",
    "ViolationKind",
    "compare_json",
    "measure",
    "measure_repeated",
    "merge_samples",
    "poll_until",
    "run_with_retry",
    "summarize",
]
