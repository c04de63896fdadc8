"""
Typed JSON encoding of stream elements.

JSON scalars and lists are stored as they are. Every other supported value is
stored as a one-key object naming its type, so a replay produces values equal
to the ones that were recorded:

    (1, "a")                  -> {"tuple": [1, "a"]}
    Path("/tmp")              -> {"path": "/tmp"}
    OutputLine(STDERR, "x")   -> {"output_line": ["stderr", "x"]}
    {"k": 1}                  -> {"dict": {"k": 1}}

Values of other types go through the ``encode``/``decode`` pair given by the
caller and are stored as {"custom": ...}.
"""

from pathlib import Path, PurePath
from typing import Any, Callable, Optional

from shellstream.errors import UnencodableValue
from shellstream.streams.merge import Channel, OutputLine
from shellstream.streams.operators import Header, Row

Encoder = Callable[[Any], Any]
Decoder = Callable[[Any], Any]

_SCALARS = (bool, int, float, str)


def encode_value(value: Any, encode: Optional[Encoder] = None) -> Any:
    """
    Convert ``value`` into JSON-compatible data.

    Raises:
        UnencodableValue: the type is not supported and no ``encode`` was given
    """
    if value is None or type(value) in _SCALARS:
        return value
    if type(value) is list:
        return [encode_value(v, encode) for v in value]
    if type(value) is tuple:
        return {"tuple": [encode_value(v, encode) for v in value]}
    if type(value) is OutputLine:
        return {"output_line": [value.channel.value, value.line]}
    if isinstance(value, Channel):
        return {"channel": value.value}
    if isinstance(value, PurePath):
        return {"path": str(value)}
    if isinstance(value, Header):
        return {"header": encode_value(value.value, encode)}
    if isinstance(value, Row):
        return {"row": [encode_value(value.header, encode), encode_value(value.value, encode)]}
    if type(value) is dict:
        if all(type(k) is str for k in value):
            return {"dict": {k: encode_value(v, encode) for k, v in value.items()}}
        return {"mapping": [[encode_value(k, encode), encode_value(v, encode)]
                            for k, v in value.items()]}
    if encode is not None:
        return {"custom": encode(value)}
    raise UnencodableValue(value)


def _decode_dict(payload, decode):
    return {k: decode_value(v, decode) for k, v in payload.items()}


def _decode_mapping(payload, decode):
    return {decode_value(k, decode): decode_value(v, decode) for k, v in payload}


_DECODERS = {
    "tuple": lambda p, d: tuple(decode_value(v, d) for v in p),
    "output_line": lambda p, d: OutputLine(Channel(p[0]), p[1]),
    "channel": lambda p, d: Channel(p),
    "path": lambda p, d: Path(p),
    "header": lambda p, d: Header(decode_value(p, d)),
    "row": lambda p, d: Row(decode_value(p[0], d), decode_value(p[1], d)),
    "dict": _decode_dict,
    "mapping": _decode_mapping,
}


def decode_value(data: Any, decode: Optional[Decoder] = None) -> Any:
    """
    Rebuild a value from data produced by ``encode_value``.

    Raises:
        ValueError: the data is not an encoded value
    """
    if data is None or type(data) in _SCALARS:
        return data
    if type(data) is list:
        return [decode_value(v, decode) for v in data]
    if type(data) is dict and len(data) == 1:
        (tag, payload), = data.items()
        if tag == "custom":
            if decode is None:
                raise ValueError("custom value stored but no decoder given")
            return decode(payload)
        decoder = _DECODERS.get(tag)
        if decoder is not None:
            try:
                return decoder(payload, decode)
            except (TypeError, KeyError, IndexError, AttributeError) as e:
                raise ValueError(f"invalid {tag} payload: {payload!r}") from e
    raise ValueError(f"not an encoded value: {data!r}")
