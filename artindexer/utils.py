"""Small helpers shared across the indexer."""

import inspect


def is_async_callable(func) -> bool:
    """True for coroutine functions and objects with an async __call__."""
    if inspect.iscoroutinefunction(func):
        return True
    call = getattr(type(func), '__call__', None)
    return inspect.iscoroutinefunction(call)


def short_address(address: str) -> str:
    if not address or len(address) <= 12:
        return address or ''
    return f"{address[:6]}...{address[-4:]}"
