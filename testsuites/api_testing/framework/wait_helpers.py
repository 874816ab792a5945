# ================================================================================
# Wait Helpers Module
# ================================================================================
#
# Cooperative polling for eventual-consistency waits in API testing, e.g.
# "the cart contains the product I just added".
#
# Key Features:
#   - Constant poll interval, suspended with asyncio.sleep (no busy waiting)
#   - Sync or async predicates; a raising predicate counts as "not yet"
#   - Timeout bounded even when the predicate itself hangs
#   - Named wait scenarios
#   - Request-driven helpers (status, JSON field, body fragment, rate limit)
#
# Usage:
#   await poll_until(PollConfig(timeout=10, poll_interval=0.5, predicate=check))
#   await wait_for_body_contains(executor, cart.get_cart(), "MacBook")
#
# ================================================================================

from __future__ import annotations

import asyncio
import inspect
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Collection, Dict, Optional, Union

import allure
from loguru import logger

from .config_loader import ConfigLoader
from .http_client import RequestExecutor
from .models import NormalizedResponse, OrchestrationError, RequestSpec


Predicate = Callable[[], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class WaitConfig:
    """
    Timing of a wait scenario.

    Attributes:
        timeout: Total time budget in seconds
        poll_interval: Pause between evaluations in seconds
    """
    timeout: float = 30.0
    poll_interval: float = 1.0


# Pre-configured wait strategies for common scenarios
WAIT_SCENARIOS: Dict[str, WaitConfig] = {
    "default": WaitConfig(),
    # Store pages that reflect a write almost immediately
    "fast": WaitConfig(timeout=10.0, poll_interval=0.5),
    # Cart and session state behind the storefront cache
    "wait_for_cart": WaitConfig(timeout=20.0, poll_interval=1.0),
    "wait_for_session": WaitConfig(timeout=20.0, poll_interval=1.0),
    # Backing off a rate limiter
    "rate_limit": WaitConfig(timeout=120.0, poll_interval=5.0),
}


@dataclass(frozen=True)
class PollConfig:
    """
    Configuration for one poll_until call.

    Attributes:
        timeout: Total time budget in seconds, >= 0
        poll_interval: Pause between evaluations in seconds, > 0
        predicate: Zero-argument callable returning bool or awaitable bool
    """
    timeout: float
    poll_interval: float
    predicate: Predicate

    def __post_init__(self) -> None:
        if self.timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {self.poll_interval}")

    @classmethod
    def from_config(
        cls,
        predicate: Predicate,
        config: Optional[ConfigLoader] = None,
    ) -> "PollConfig":
        """Build from poll.timeout / poll.interval."""
        if config is None:
            config = ConfigLoader()
        return cls(
            timeout=float(config.get("poll.timeout", 30.0)),
            poll_interval=float(config.get("poll.interval", 1.0)),
            predicate=predicate,
        )


class PollTimeoutError(OrchestrationError):
    """
    Raised when the predicate never became true within the timeout.

    Attributes:
        elapsed: Seconds spent polling
        attempts: Number of predicate evaluations
        last_error: Last exception raised by the predicate, if any
    """

    def __init__(
        self,
        description: str,
        elapsed: float,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ) -> None:
        message = (
            f"Timeout after {elapsed:.1f}s ({attempts} checks) waiting for: {description}"
        )
        if last_error is not None:
            message += f". Last error: {type(last_error).__name__}: {last_error}"
        super().__init__(message)
        self.elapsed = elapsed
        self.attempts = attempts
        self.last_error = last_error


def get_poll_config(scenario: str, predicate: Predicate) -> PollConfig:
    """PollConfig for a named scenario, falling back to "default"."""
    timing = WAIT_SCENARIOS.get(scenario, WAIT_SCENARIOS["default"])
    return PollConfig(
        timeout=timing.timeout,
        poll_interval=timing.poll_interval,
        predicate=predicate,
    )


async def _evaluate(predicate: Predicate, remaining: float) -> bool:
    result = predicate()
    if inspect.isawaitable(result):
        if remaining > 0:
            result = await asyncio.wait_for(result, timeout=remaining)
        else:
            result = await result
    return bool(result)


async def poll_until(
    config: PollConfig,
    description: str = "condition",
) -> None:
    """
    Evaluate config.predicate until it returns true.

    The first evaluation happens immediately. Every call owns its own loop
    state, so independent concurrent waits never interfere.

    Raises:
        PollTimeoutError: If config.timeout elapses first
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    deadline = started + config.timeout
    attempts = 0
    last_error: Optional[BaseException] = None

    logger.debug(
        f"Starting wait: {description} "
        f"(timeout={config.timeout}s, interval={config.poll_interval}s)"
    )

    while True:
        attempts += 1
        try:
            if await _evaluate(config.predicate, deadline - loop.time()):
                logger.debug(
                    f"Wait successful after {attempts} checks "
                    f"({loop.time() - started:.2f}s): {description}"
                )
                return
        except Exception as e:
            last_error = e
            logger.debug(f"Check {attempts} for '{description}' raised {type(e).__name__}: {e}")

        remaining = deadline - loop.time()
        if remaining <= 0:
            elapsed = loop.time() - started
            error = PollTimeoutError(description, elapsed, attempts, last_error)
            logger.error(str(error))
            raise error

        await asyncio.sleep(min(config.poll_interval, remaining))


def get_nested_value(data: Any, path: str) -> Any:
    """
    Resolve a dot path like "products.0.name" or "items[0].id".

    Returns None as soon as a segment is missing.
    """
    current = data
    for key in path.split("."):
        index_match = re.fullmatch(r"(\w+)\[(\d+)\]", key)
        if index_match:
            key, index = index_match.group(1), int(index_match.group(2))
        else:
            index = None

        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return None

        if index is not None:
            if not isinstance(current, list) or index >= len(current):
                return None
            current = current[index]
        if current is None:
            return None
    return current


async def wait_for_status(
    executor: RequestExecutor,
    spec: RequestSpec,
    expected_statuses: Collection[int],
    scenario: str = "default",
) -> NormalizedResponse:
    """
    Re-issue `spec` until the status code is one of `expected_statuses`.

    Returns:
        The first matching response
    """
    matched: Dict[str, NormalizedResponse] = {}

    async def check() -> bool:
        response = await executor.execute(spec)
        if response.status_code in expected_statuses:
            matched["response"] = response
            return True
        return False

    with allure.step(f"Waiting for {spec.method.value} {spec.target} -> {sorted(expected_statuses)}"):
        await poll_until(
            get_poll_config(scenario, check),
            description=f"{spec.target} status in {sorted(expected_statuses)}",
        )
    return matched["response"]


async def wait_for_json_field(
    executor: RequestExecutor,
    spec: RequestSpec,
    field_path: str,
    scenario: str = "default",
) -> Any:
    """
    Re-issue `spec` until the JSON field at `field_path` is non-null.

    Non-JSON bodies count as "not yet" and the parse error is reported on
    timeout.

    Returns:
        The field value
    """
    found: Dict[str, Any] = {}

    async def check() -> bool:
        response = await executor.execute(spec)
        value = get_nested_value(response.parsed_json, field_path)
        if value is None:
            return False
        found["value"] = value
        return True

    with allure.step(f"Waiting for {field_path} to be non-null"):
        await poll_until(
            get_poll_config(scenario, check),
            description=f"Field {field_path} != null",
        )
    return found["value"]


async def wait_for_body_contains(
    executor: RequestExecutor,
    spec: RequestSpec,
    fragment: str,
    scenario: str = "wait_for_cart",
) -> NormalizedResponse:
    """
    Re-issue `spec` until the response text contains `fragment`.

    Typical use: the cart page lists a freshly added product.
    """
    matched: Dict[str, NormalizedResponse] = {}

    async def check() -> bool:
        response = await executor.execute(spec)
        if fragment in response.text:
            matched["response"] = response
            return True
        return False

    with allure.step(f"Waiting for '{fragment}' in {spec.target}"):
        await poll_until(
            get_poll_config(scenario, check),
            description=f"'{fragment}' in {spec.target}",
        )
    return matched["response"]


async def wait_until_not_rate_limited(
    executor: RequestExecutor,
    spec: RequestSpec,
    scenario: str = "rate_limit",
) -> NormalizedResponse:
    """Poll `spec` until the server stops answering 429."""
    matched: Dict[str, NormalizedResponse] = {}

    async def check() -> bool:
        response = await executor.execute(spec)
        if response.status_code == 429:
            logger.info(
                f"Still rate limited on {spec.target} "
                f"(Retry-After: {response.headers.get('Retry-After', 'n/a')})"
            )
            return False
        matched["response"] = response
        return True

    await poll_until(
        get_poll_config(scenario, check),
        description=f"{spec.target} not rate limited",
    )
    return matched["response"]


__all__ = [
    "PollConfig",
    "PollTimeoutError",
    "WAIT_SCENARIOS",
    "WaitConfig",
    "get_nested_value",
    "get_poll_config",
    "poll_until",
    "wait_for_body_contains",
    "wait_for_json_field",
    "wait_for_status",
    "wait_until_not_rate_limited",
]
