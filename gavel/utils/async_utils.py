"""
Gavel - Async Utilities
=======================

Best-effort async helpers. A failure is always logged; it is never raised
into the moderation flow that started it.

Usage:
    from gavel.utils.async_utils import gather_with_logging

    await gather_with_logging(
        ("Send DM", gateway.send_dm(user_id, notice)),
        ("Post Mod Log", gateway.send_channel(channel_id, notice)),
        context="Ban",
    )
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Coroutine, Dict, Hashable, List, Optional, Tuple

from gavel.core.logger import Details, logger

Operation = Tuple[str, Coroutine[Any, Any, Any]]


def _failure(name: str, error: BaseException, context: Optional[str] = None, limit: int = 100) -> Details:
    details = [
        ("Operation", name),
        ("Error Type", type(error).__name__),
        ("Error", str(error)[:limit]),
    ]
    if context:
        details.insert(0, ("Context", context))
    return details


async def gather_with_logging(*operations: Operation, context: Optional[str] = None) -> List[Any]:
    """
    Run named coroutines concurrently and log every one that fails.

    Args:
        *operations: (name, coroutine) pairs.
        context: Label for the log entry, usually the action kind.

    Returns:
        Results in input order. A failed operation leaves its exception
        in place of a result.
    """
    results = await asyncio.gather(*(coro for _, coro in operations), return_exceptions=True)

    for (name, _), result in zip(operations, results):
        if isinstance(result, Exception):
            logger.warning("Async Operation Failed", _failure(name, result, context))

    return results


async def safe_async_operation(
    name: str,
    coro: Coroutine[Any, Any, Any],
    default: Any = None,
    log_level: str = "warning",
) -> Any:
    """
    Await one coroutine, returning default instead of raising.

    Args:
        name: Label for the log entry.
        coro: Coroutine to await.
        default: Returned when the coroutine raises.
        log_level: "debug", "warning" or "error".
    """
    try:
        return await coro
    except Exception as e:
        log = getattr(logger, log_level, logger.warning)
        log("Async Operation Failed", _failure(name, e))
        return default


def create_safe_task(coro: Coroutine[Any, Any, Any], name: str = "Background Task") -> asyncio.Task:
    """
    Schedule a background coroutine whose crash is logged, not lost.

    Cancellation ends the task quietly. A task cancelled before its first
    step closes the wrapped coroutine so it is not left unawaited.
    """
    async def runner() -> None:
        try:
            await coro
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Background Task Failed", _failure(name, e, limit=200))

    task = asyncio.create_task(runner(), name=name)
    task.add_done_callback(lambda _: coro.close())
    return task


class KeyedLock:
    """
    One asyncio.Lock per key, held only while someone uses it.

    An entry is dropped when its last holder or waiter leaves, so the map
    never outgrows the set of keys with work in flight.

    Usage:
        locks = KeyedLock()
        async with locks.hold((guild_id, user_id)):
            ...
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


__all__ = [
    "gather_with_logging",
    "safe_async_operation",
    "create_safe_task",
    "KeyedLock",
]
