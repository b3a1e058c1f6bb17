"""Bounded-concurrency execution of independent async tasks."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import cast

type TaskThunk[T] = Callable[[], Awaitable[T]]


async def run_bounded[T](thunks: Sequence[TaskThunk[T]], parallel: int) -> list[T]:
    """Run thunks with at most ``parallel`` in flight, preserving input order.

    Thunks are started in input order. Whenever one settles, successfully
    or not, the next unstarted thunk is launched. Nothing is cancelled: the
    first failure is raised once every thunk has settled.

    Args:
        thunks: Zero-argument callables returning awaitables.
        parallel: Maximum number of concurrently active thunks.

    Returns:
        list[T]: Results aligned to the input order.

    Raises:
        ValueError: If parallel is not positive.
    """
    if parallel < 1:
        raise ValueError("parallel must be positive")
    if not thunks:
        return []

    results: list[T | None] = [None] * len(thunks)
    pending: dict[asyncio.Future[T], int] = {}
    failure: BaseException | None = None
    next_index = 0

    async def _call(index: int) -> T:
        return await thunks[index]()

    def _launch(index: int) -> None:
        task = asyncio.ensure_future(_call(index))
        pending[task] = index

    while next_index < len(thunks) and len(pending) < parallel:
        _launch(next_index)
        next_index += 1

    while pending:
        done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            index = pending.pop(task)
            exc = task.exception()
            if exc is not None:
                if failure is None:
                    failure = exc
                continue
            results[index] = task.result()
        while next_index < len(thunks) and len(pending) < parallel:
            _launch(next_index)
            next_index += 1

    if failure is not None:
        raise failure
    return [cast(T, result) for result in results]
