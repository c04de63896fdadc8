"""Durable memoization of stream output."""

from shellstream.cache.codec import encode_value, decode_value
from shellstream.cache.manager import StreamCache, memoize, SENTINEL
from shellstream.cache.decorators import cached_stream

__all__ = [
    "encode_value",
    "decode_value",
    "StreamCache",
    "memoize",
    "cached_stream",
    "SENTINEL",
]
