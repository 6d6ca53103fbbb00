from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


async def apply_optimistically(
    apply: Callable[[], T],
    write: Callable[[], Awaitable[object]],
    revert: Callable[[], None],
) -> T:
    """Apply an in-memory change, then make it durable.

    ``revert`` must undo exactly what ``apply`` did; it runs when ``write``
    raises, after which the original exception propagates.
    """
    result = apply()
    try:
        await write()
    except Exception:
        revert()
        raise
    return result
