"""
Async Helper Utilities

Async/sync bridge for calling the async repositories and the reconciler from a
sync Flask request handler or script.
"""

import asyncio
import concurrent.futures
from typing import Any
from functools import wraps


def run_async(coro_or_func) -> Any:
    """
    Run an async coroutine synchronously or convert an async function to sync.

    Usage:
    - run_async(async_method(args)) - runs a coroutine directly
    - run_async(async_function) - returns a sync wrapper function

    Raises:
        TypeError: If the argument is neither a coroutine nor callable
    """
    if hasattr(coro_or_func, '__await__'):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            # Already inside a running loop: run in a separate thread with its own loop
            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
                future = executor.submit(asyncio.run, coro_or_func)
                return future.result()
        return asyncio.run(coro_or_func)

    elif callable(coro_or_func):
        @wraps(coro_or_func)
        def wrapper(*args, **kwargs):
            return run_async(coro_or_func(*args, **kwargs))
        return wrapper

    else:
        raise TypeError(f"Expected coroutine or callable, got {type(coro_or_func)}")
