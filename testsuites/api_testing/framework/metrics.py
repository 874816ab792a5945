"""
================================================================================
Performance Metrics
================================================================================

Timing collection and summary statistics for performance assertions.

    - TimingSample: start/end pair taken with time.perf_counter
    - measure / measure_repeated: sequential timing of async actions
    - merge_samples: combine per-task sample tuples after concurrent runs
    - summarize: min / max / mean / median over a non-empty sequence

Median policy: for an even number of samples the LOWER middle element of the
ascending order is reported (statistics.median_low), so the median is always
an observed duration. summarize([1, 2, 3, 4]).median == 2.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import math
import statistics
import time
from dataclasses import dataclass
from itertools import chain
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

import allure
from loguru import logger

from .models import OrchestrationError


T = TypeVar("T")


class EmptySampleSetError(OrchestrationError, ValueError):
    """Raised when statistics are requested over zero samples."""
    pass


@dataclass(frozen=True)
class TimingSample:
    """One measured interval, in perf_counter seconds."""
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class PerformanceSummary:
    """Summary statistics over a set of durations (seconds)."""
    min: float
    max: float
    mean: float
    median: float
    count: int

    def violations(
        self,
        max_mean: Optional[float] = None,
        max_median: Optional[float] = None,
        max_single: Optional[float] = None,
    ) -> List[str]:
        """
        Compare against upper bounds; one message per exceeded bound.

        Usage:
            assert not summary.violations(max_mean=2.0, max_single=5.0)
        """
        problems = []
        if max_mean is not None and self.mean > max_mean:
            problems.append(f"mean {self.mean:.3f}s exceeds {max_mean:.3f}s")
        if max_median is not None and self.median > max_median:
            problems.append(f"median {self.median:.3f}s exceeds {max_median:.3f}s")
        if max_single is not None and self.max > max_single:
            problems.append(f"slowest {self.max:.3f}s exceeds {max_single:.3f}s")
        return problems

    def as_text(self) -> str:
        return (
            f"count={self.count} min={self.min:.3f}s max={self.max:.3f}s "
            f"mean={self.mean:.3f}s median={self.median:.3f}s"
        )


def summarize(samples: Sequence[float]) -> PerformanceSummary:
    """
    Compute min, max, mean and lower-middle median.

    The caller's sequence is copied and never reordered.

    Raises:
        EmptySampleSetError: If `samples` is empty
        ValueError: If a sample is negative, NaN or infinite
    """
    values = tuple(float(s) for s in samples)
    if not values:
        raise EmptySampleSetError("Cannot summarize an empty sample set")

    for value in values:
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"Invalid duration sample: {value!r}")

    ordered = sorted(values)
    return PerformanceSummary(
        min=ordered[0],
        max=ordered[-1],
        mean=statistics.fmean(values),
        median=statistics.median_low(ordered),
        count=len(values),
    )


def merge_samples(*sample_sets: Sequence[float]) -> Tuple[float, ...]:
    """Concatenate independently collected sample sequences."""
    return tuple(chain.from_iterable(sample_sets))


async def measure(action: Callable[[], Awaitable[T]]) -> Tuple[T, TimingSample]:
    """Await `action()` once and time it."""
    start = time.perf_counter()
    result = await action()
    return result, TimingSample(start=start, end=time.perf_counter())


async def measure_repeated(
    action: Callable[[], Awaitable[Any]],
    iterations: int,
    check: Optional[Callable[[Any], None]] = None,
) -> Tuple[float, ...]:
    """
    Run `action` sequentially `iterations` times and return the durations.

    Args:
        action: Zero-argument callable returning a fresh awaitable
        iterations: Number of runs, >= 1
        check: Optional callback run on each result (e.g. a status assertion)
    """
    if iterations < 1:
        raise ValueError(f"iterations must be >= 1, got {iterations}")

    durations: List[float] = []
    for _ in range(iterations):
        result, sample = await measure(action)
        if check is not None:
            check(result)
        durations.append(sample.duration)
    return tuple(durations)


def attach_summary(summary: PerformanceSummary, name: str = "Performance Summary") -> None:
    """Log the summary and attach it to the Allure report."""
    logger.info(f"{name}: {summary.as_text()}")
    allure.attach(
        summary.as_text(),
        name=name,
        attachment_type=allure.attachment_type.TEXT,
    )


__all__ = [
    "EmptySampleSetError",
    "PerformanceSummary",
    "TimingSample",
    "attach_summary",
    "measure",
    "measure_repeated",
    "merge_samples",
    "summarize",
]
