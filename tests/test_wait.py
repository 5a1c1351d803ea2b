"""Tests for awaiting the next fire of a signal."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from anysignal import Signal


async def start_waiting(signal: Signal[Any], **kwargs: Any) -> asyncio.Task[tuple[Any, ...]]:
    task = asyncio.create_task(signal.wait(**kwargs))
    await asyncio.sleep(0)
    return task


async def test_wait_returns_fired_arguments(signal: Signal[Any]):
    task = await start_waiting(signal)

    signal.fire("x", 42)

    assert await asyncio.wait_for(task, timeout=1) == ("x", 42)


async def test_wait_ignores_earlier_fires(signal: Signal[Any]):
    """Test that a fire before the wait call does not satisfy it."""
    signal.fire("early")
    await signal.dispatcher.join()
    task = await start_waiting(signal)

    assert not task.done()
    signal.fire("late")

    assert await asyncio.wait_for(task, timeout=1) == ("late",)


async def test_wait_sees_only_first_of_back_to_back_fires(signal: Signal[Any]):
    task = await start_waiting(signal)

    signal.fire("a")
    signal.fire("b")

    assert await asyncio.wait_for(task, timeout=1) == ("a",)


async def test_wait_removes_its_connection(signal: Signal[Any]):
    task = await start_waiting(signal)
    assert signal.get_connection_count() == 1

    signal.fire()
    await task

    assert signal.get_connection_count() == 0
    assert not signal.has_handlers()


async def test_several_waiters_all_resume(signal: Signal[Any]):
    tasks = [await start_waiting(signal) for _ in range(3)]

    signal.fire("go")

    assert await asyncio.gather(*tasks) == [("go",)] * 3


async def test_wait_timeout(signal: Signal[Any]):
    with pytest.raises(TimeoutError):
        await signal.wait(timeout=0.01)

    assert signal.get_connection_count() == 0


async def test_cancelled_wait_disconnects(signal: Signal[Any]):
    task = await start_waiting(signal)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert signal.get_connection_count() == 0

    signal.fire("after")
    await signal.dispatcher.join()


async def test_wait_alongside_regular_handlers(signal: Signal[Any]):
    received: list[str] = []
    signal.connect(received.append)
    task = await start_waiting(signal)

    signal.fire("both")

    assert await task == ("both",)
    await signal.dispatcher.join()
    assert received == ["both"]
