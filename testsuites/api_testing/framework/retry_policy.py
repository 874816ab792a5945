# ================================================================================
# Retry Policy Module
# ================================================================================
#
# Bounded retry with a constant delay for any fallible async action, most
# commonly RequestExecutor.execute.
#
# Key Features:
#   - Constant delay between attempts (no implicit backoff)
#   - Retry decision driven by a predicate over the raised error or response
#   - Ready-made predicates for transport errors, status codes and 429
#   - Named presets loaded the same way as wait scenarios
#   - Cancellation-safe: asyncio.CancelledError is never intercepted
#
# Usage:
#   config = RetryConfig(max_attempts=3, delay_between_attempts=0.1)
#   response = await run_with_retry(lambda: executor.execute(spec), config)
#
# ================================================================================

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from loguru import logger

from .config_loader import ConfigLoader
from .http_client import TransportError
from .models import NormalizedResponse, OrchestrationError


T = TypeVar("T")

Outcome = Union[BaseException, NormalizedResponse]
RetryPredicate = Callable[[Outcome], bool]


def default_is_retryable(outcome: Outcome) -> bool:
    """Retry on any raised exception, never on a returned response."""
    return isinstance(outcome, Exception)


def retry_on_transport_error(outcome: Outcome) -> bool:
    """Retry only when the transport failed below HTTP."""
    return isinstance(outcome, TransportError)


def retry_on_status(*status_codes: int) -> RetryPredicate:
    """
    Build a predicate retrying on transport errors and the given statuses.

    Example:
        RetryConfig(3, 0.5, retry_on_status(502, 503, 504))
    """
    codes = frozenset(status_codes)

    def predicate(outcome: Outcome) -> bool:
        if isinstance(outcome, NormalizedResponse):
            return outcome.status_code in codes
        return isinstance(outcome, TransportError)

    return predicate


retry_on_rate_limit = retry_on_status(429)


@dataclass(frozen=True)
class RetryConfig:
    """
    Configuration for one retried operation.

    Attributes:
        max_attempts: Total attempts including the first, >= 1
        delay_between_attempts: Constant pause between attempts, seconds
        is_retryable: Predicate over a raised exception or returned response
    """
    max_attempts: int = 3
    delay_between_attempts: float = 1.0
    is_retryable: RetryPredicate = default_is_retryable

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ValueError(f"max_attempts must be an integer, got {self.max_attempts!r}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay_between_attempts < 0:
            raise ValueError(
                f"delay_between_attempts must be >= 0, got {self.delay_between_attempts}"
            )

    @classmethod
    def from_config(
        cls,
        config: Optional[ConfigLoader] = None,
        is_retryable: RetryPredicate = default_is_retryable,
    ) -> "RetryConfig":
        """Build from retry.max_attempts / retry.delay."""
        if config is None:
            config = ConfigLoader()
        return cls(
            max_attempts=int(config.get("retry.max_attempts", 3)),
            delay_between_attempts=float(config.get("retry.delay", 1.0)),
            is_retryable=is_retryable,
        )


# Pre-configured retry strategies for common scenarios
RETRY_SCENARIOS: Dict[str, RetryConfig] = {
    "default": RetryConfig(),
    # Single shot, useful to disable retries from a parametrized test
    "none": RetryConfig(max_attempts=1, delay_between_attempts=0.0),
    # Flaky network between CI and the demo store
    "transient_network": RetryConfig(
        max_attempts=3,
        delay_between_attempts=0.5,
        is_retryable=retry_on_transport_error,
    ),
    # Gateway hiccups in front of the store
    "gateway": RetryConfig(
        max_attempts=4,
        delay_between_attempts=1.0,
        is_retryable=retry_on_status(502, 503, 504),
    ),
    # Rate limited endpoints
    "rate_limited": RetryConfig(
        max_attempts=5,
        delay_between_attempts=2.0,
        is_retryable=retry_on_rate_limit,
    ),
}


def get_retry_config(
    scenario: str,
    is_retryable: Optional[RetryPredicate] = None,
) -> RetryConfig:
    """
    Get retry configuration for a named scenario, falling back to "default".

    A custom predicate replaces the preset's one without mutating the preset.
    """
    config = RETRY_SCENARIOS.get(scenario, RETRY_SCENARIOS["default"])
    if is_retryable is not None:
        config = replace(config, is_retryable=is_retryable)
    return config


class RetryExhaustedError(OrchestrationError):
    """
    Raised when every configured attempt failed.

    Attributes:
        attempts: Number of attempts made
        last_error: Exception raised by the final attempt, if any
        last_response: Response returned by the final attempt, if any
    """

    def __init__(
        self,
        attempts: int,
        last_error: Optional[BaseException] = None,
        last_response: Optional[NormalizedResponse] = None,
    ) -> None:
        if last_error is not None:
            cause = f"{type(last_error).__name__}: {last_error}"
        elif last_response is not None:
            cause = f"retryable response with status {last_response.status_code}"
        else:
            cause = "unknown"
        super().__init__(f"All {attempts} attempt(s) failed. Last failure: {cause}")
        self.attempts = attempts
        self.last_error = last_error
        self.last_response = last_response


async def run_with_retry(
    action: Callable[[], Awaitable[T]],
    config: RetryConfig,
    description: str = "",
) -> T:
    """
    Run `action` until it succeeds or attempts run out.

    An attempt fails when the action raises an exception that
    `config.is_retryable` accepts, or returns a NormalizedResponse that
    `config.is_retryable` accepts. Exceptions the predicate rejects propagate
    unchanged straight away.

    Args:
        action: Zero-argument callable returning a fresh awaitable per call
        config: Retry configuration
        description: Label used in log messages

    Returns:
        The first successful result

    Raises:
        RetryExhaustedError: When max_attempts attempts all failed
    """
    label = description or getattr(action, "__name__", "action")
    last_error: Optional[BaseException] = None
    last_response: Optional[NormalizedResponse] = None

    for attempt in range(1, config.max_attempts + 1):
        try:
            result = await action()
        except Exception as e:
            if not config.is_retryable(e):
                logger.debug(f"{label}: non-retryable {type(e).__name__}, giving up")
                raise
            last_error, last_response = e, None
            reason = f"{type(e).__name__}: {e}"
        else:
            if not (isinstance(result, NormalizedResponse) and config.is_retryable(result)):
                if attempt > 1:
                    logger.info(f"{label}: succeeded on attempt {attempt}/{config.max_attempts}")
                return result
            last_error, last_response = None, result
            reason = f"retryable status {result.status_code}"

        if attempt < config.max_attempts:
            logger.warning(
                f"{label}: attempt {attempt}/{config.max_attempts} failed ({reason}). "
                f"Retrying in {config.delay_between_attempts}s"
            )
            await asyncio.sleep(config.delay_between_attempts)

    logger.error(f"{label}: all {config.max_attempts} attempt(s) exhausted")
    error = RetryExhaustedError(config.max_attempts, last_error, last_response)
    if last_error is not None:
        raise error from last_error
    raise error


def escalating_delays(
    base: float,
    factor: float = 2.0,
    cap: float = 30.0,
    attempts: int = 5,
) -> List[float]:
    """
    Delays for callers that escalate between successive run_with_retry calls.

    Formula: base * factor ** n, capped at `cap`.
    """
    return [min(base * (factor ** n), cap) for n in range(attempts)]


def retry_after_seconds(
    response: NormalizedResponse,
    default: float = 1.0,
    cap: float = 30.0,
) -> float:
    """
    Parse the Retry-After header of a 429/503 response (seconds form only).

    Missing or unparseable values fall back to `default`; result capped.
    """
    raw: Any = response.headers.get("Retry-After", "")
    try:
        wait_time = float(raw)
    except (TypeError, ValueError):
        wait_time = default
    return max(0.0, min(wait_time, cap))


__all__ = [
    "RETRY_SCENARIOS",
    "RetryConfig",
    "RetryExhaustedError",
    "default_is_retryable",
    "escalating_delays",
    "get_retry_config",
    "retry_after_seconds",
    "retry_on_rate_limit",
    "retry_on_status",
    "retry_on_transport_error",
    "run_with_retry",
]
