"""
Durable memoization of stream output.

A cache file holds one JSON record per line: ``{"value": ...}`` for every
element that was produced, followed by the sentinel line ``null`` once the
stream ran to completion without an exception. A file without the trailing
sentinel belongs to a run that never finished and is produced again.
"""

import json
import logging
from pathlib import Path
from typing import Any, IO, List, Optional, Union

from shellstream.cache.codec import Decoder, Encoder, decode_value, encode_value
from shellstream.config import config
from shellstream.errors import CacheCorrupted, UnencodableValue
from shellstream.streams.fold import Fold
from shellstream.streams.stream import Stream

logger = logging.getLogger(__name__)

SENTINEL = "null"

_ABSENT = object()


def encode_record(value: Any, encode: Optional[Encoder] = None) -> str:
    """Serialize one present value as a cache line."""
    data = encode_value(value, encode)
    try:
        return json.dumps({"value": data})
    except (TypeError, ValueError) as e:
        raise UnencodableValue(value) from e


def decode_record(line: str, path: Path, line_number: int,
                  decode: Optional[Decoder] = None) -> Any:
    """
    Parse one cache line.

    Returns the stored value, or the absent marker for the sentinel.
    """
    try:
        record = json.loads(line)
    except ValueError:
        raise CacheCorrupted(str(path), line_number, line) from None
    if record is None:
        return _ABSENT
    if not isinstance(record, dict) or set(record) != {"value"}:
        raise CacheCorrupted(str(path), line_number, line)
    try:
        return decode_value(record["value"], decode)
    except ValueError:
        raise CacheCorrupted(str(path), line_number, line) from None


class StreamCache:
    """
    Record a stream's output to a file and replay it on later runs.

    The recording is reused only if the run that wrote it completed. Elements
    of types the codec does not know need an ``encode``/``decode`` pair.
    """

    def __init__(self, path: Union[str, Path], stream: Stream,
                 encode: Optional[Encoder] = None, decode: Optional[Decoder] = None):
        self.path = Path(path)
        self.stream = stream
        self.encode = encode
        self.decode = decode

    def load(self) -> Optional[List[Any]]:
        """
        Read a previous recording.

        Returns:
            The recorded values, or None if there is no complete recording

        Raises:
            CacheCorrupted: a line is not a valid record
        """
        if not self.path.is_file():
            return None

        values: List[Any] = []
        complete = False
        with open(self.path, 'r', encoding=config.encoding) as f:
            for line_number, line in enumerate(f, start=1):
                value = decode_record(line.rstrip('\n'), self.path, line_number, self.decode)
                complete = value is _ABSENT
                if not complete:
                    values.append(value)

        return values if complete else None

    def _record(self, handle: IO[str], consumer: Fold):
        step, encode = consumer.step, self.encode

        def record(x, value):
            handle.write(encode_record(value, encode) + '\n')
            handle.flush()
            return step(x, value)

        return Fold(record, consumer.begin, lambda x: x)

    def fold(self, consumer: Fold) -> Any:
        values = self.load()
        if values is not None:
            logger.info("Replaying %d cached values from %s", len(values), self.path)
            return Stream.select(values).fold(consumer)

        logger.info("No complete recording in %s, running the stream", self.path)
        with open(self.path, 'w', encoding=config.encoding) as handle:
            x = self.stream.fold(self._record(handle, consumer))
            handle.write(SENTINEL + '\n')
        return consumer.done(x)


def memoize(path: Union[str, Path], stream: Stream,
            encode: Optional[Encoder] = None, decode: Optional[Decoder] = None) -> Stream:
    """Cache ``stream``'s output in ``path`` across runs."""
    return Stream(StreamCache(path, stream, encode, decode).fold)
