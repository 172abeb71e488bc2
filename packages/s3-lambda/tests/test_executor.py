from __future__ import annotations

import asyncio

import pytest

from s3_lambda.executor import ConcurrentExecutor


def test_in_flight_tasks_never_exceed_concurrency() -> None:
    in_flight = 0
    peak = 0
    started: list[int] = []

    async def task(item: int) -> None:
        nonlocal in_flight, peak
        started.append(item)
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001 * (item % 3))
        in_flight -= 1

    asyncio.run(ConcurrentExecutor(3).run(list(range(12)), task))

    assert peak == 3
    assert started == list(range(12))


def test_unbounded_concurrency_starts_everything() -> None:
    peak = 0
    in_flight = 0

    async def task(item: int) -> None:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1

    asyncio.run(ConcurrentExecutor().run(list(range(20)), task))

    assert peak == 20


def test_concurrency_one_is_strictly_sequential() -> None:
    events: list[str] = []

    async def task(item: int) -> None:
        events.append(f"start {item}")
        await asyncio.sleep(0.001 * (3 - item))
        events.append(f"end {item}")

    asyncio.run(ConcurrentExecutor(1).run([0, 1, 2], task))

    assert events == ["start 0", "end 0", "start 1", "end 1", "start 2", "end 2"]


def test_no_new_task_starts_after_a_failure() -> None:
    started: list[int] = []

    async def task(item: int) -> None:
        started.append(item)
        if item == 2:
            msg = "boom"
            raise ValueError(msg)
        await asyncio.sleep(0.01)

    with pytest.raises(ValueError, match="boom"):
        asyncio.run(ConcurrentExecutor(2).run(list(range(5)), task))

    assert started[:3] == [0, 1, 2]
    assert 4 not in started


def test_running_tasks_drain_before_the_error_is_raised() -> None:
    finished: list[int] = []

    async def task(item: int) -> None:
        if item == 0:
            await asyncio.sleep(0.001)
            msg = "first"
            raise RuntimeError(msg)
        await asyncio.sleep(0.02)
        finished.append(item)

    with pytest.raises(RuntimeError, match="first"):
        asyncio.run(ConcurrentExecutor(3).run([0, 1, 2, 3], task))

    assert finished == [1, 2]


def test_first_error_wins() -> None:
    async def task(item: int) -> None:
        await asyncio.sleep(0.001 * item)
        msg = f"error {item}"
        raise KeyError(msg)

    with pytest.raises(KeyError, match="error 0"):
        asyncio.run(ConcurrentExecutor(4).run([0, 1, 2, 3], task))


def test_empty_input_is_a_no_op() -> None:
    async def task(item: int) -> None:
        raise AssertionError

    asyncio.run(ConcurrentExecutor(2).run([], task))


def test_progress_bar_does_not_change_results() -> None:
    seen: list[int] = []

    async def task(item: int) -> None:
        seen.append(item)

    asyncio.run(ConcurrentExecutor(2, name="each", show_progress=True).run([1, 2, 3], task))

    assert sorted(seen) == [1, 2, 3]


def test_invalid_concurrency_is_rejected() -> None:
    with pytest.raises(ValueError, match="at least 1"):
        ConcurrentExecutor(0)
