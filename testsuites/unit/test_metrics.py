import math

import pytest

from testsuites.api_testing.framework import (
    EmptySampleSetError,
    TimingSample,
    measure,
    measure_repeated,
    merge_samples,
    summarize,
)


def test_single_sample():
    summary = summarize([5])

    assert (summary.min, summary.max, summary.mean, summary.median) == (5, 5, 5, 5)
    assert summary.count == 1


def test_even_length_uses_lower_middle_median():
    summary = summarize([1, 2, 3, 4])

    assert summary.min == 1
    assert summary.max == 4
    assert summary.mean == 2.5
    assert summary.median == 2


def test_odd_length_median_and_unsorted_input():
    assert summarize([0.9, 0.1, 0.5]).median == 0.5


def test_empty_samples_raise():
    with pytest.raises(EmptySampleSetError):
        summarize([])


@pytest.mark.parametrize("bad", [math.nan, math.inf, -0.1])
def test_invalid_samples_raise(bad):
    with pytest.raises(ValueError):
        summarize([0.2, bad])


def test_callers_sequence_is_not_reordered():
    samples = [0.4, 0.1, 0.3, 0.2]

    summarize(samples)

    assert samples == [0.4, 0.1, 0.3, 0.2]


def test_violations_report_each_exceeded_bound():
    summary = summarize([1.0, 2.0, 6.0])

    problems = summary.violations(max_mean=2.0, max_median=5.0, max_single=5.0)

    assert len(problems) == 2
    assert problems[0].startswith("mean")
    assert problems[1].startswith("slowest")
    assert summary.violations(max_mean=10, max_single=10) == []


def test_merge_samples_concatenates():
    assert merge_samples((0.1, 0.2), [0.3], ()) == (0.1, 0.2, 0.3)


def test_timing_sample_duration():
    assert TimingSample(start=1.5, end=2.0).duration == 0.5


@pytest.mark.asyncio
async def test_measure_returns_result_and_sample():
    async def action():
        return "done"

    result, sample = await measure(action)

    assert result == "done"
    assert sample.end >= sample.start


@pytest.mark.asyncio
async def test_measure_repeated_runs_sequentially_and_checks():
    seen = []

    async def action():
        seen.append(len(seen))
        return len(seen)

    durations = await measure_repeated(action, 4, check=lambda result: seen.append(-result))

    assert len(durations) == 4
    assert isinstance(durations, tuple)
    assert seen == [0, -1, 2, -3, 4, -5, 6, -7]
    assert summarize(durations).count == 4


@pytest.mark.asyncio
async def test_measure_repeated_requires_iterations():
    async def action():
        return None

    with pytest.raises(ValueError):
        await measure_repeated(action, 0)
