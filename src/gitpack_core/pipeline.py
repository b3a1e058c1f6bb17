"""Ordered, fail-fast stage runner."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

type Stage = Callable[[Any], Any | Awaitable[Any]]


async def run_stages(stages: Sequence[Stage], initial: Any = None) -> Any:
    """Thread a value through stages strictly in order.

    Each stage receives the resolved output of the previous one; the first
    stage receives ``initial``. Stages may be plain callables or coroutine
    functions. The first exception stops the run and propagates unchanged,
    so later stages never observe a partial result.

    Args:
        stages: Ordered stage callables.
        initial: Input for the first stage.

    Returns:
        Any: Output of the last stage, or ``initial`` when there are none.
    """
    value = initial
    for stage in stages:
        result = stage(value)
        if inspect.isawaitable(result):
            result = await result
        value = result
    return value
