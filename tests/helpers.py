"""Polling helpers for async tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest


async def wait_until(
    predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.01
) -> None:
    """Poll *predicate* until it holds; fail the test after *timeout* seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(interval)


async def settle(rounds: int = 10) -> None:
    """Let already-scheduled callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
