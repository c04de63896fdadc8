"""
Decorators for caching stream-returning functions.
"""

import functools
from pathlib import Path
from typing import Any, Callable, Optional, Union

from shellstream.cache.manager import memoize


def cached_stream(path: Union[str, Path, Callable[..., Union[str, Path]]],
                  encode: Optional[Callable[[Any], Any]] = None,
                  decode: Optional[Callable[[Any], Any]] = None) -> Callable:
    """
    Decorator to cache the stream returned by a function.

    Args:
        path: Cache file, or a callable computing it from the call arguments
        encode: Converts elements of types the cache does not know to JSON data
        decode: Inverse of ``encode``

    Example:
        @cached_stream("listing.cache")
        def listing():
            return inproc("ls", ["-1"])
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            target = path(*args, **kwargs) if callable(path) else path
            return memoize(target, func(*args, **kwargs), encode, decode)

        wrapper.cache_path = path
        return wrapper

    return decorator
