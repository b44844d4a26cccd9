"""
Decoders for the Daikin adaptor wire formats

Responses are ASCII bodies of comma separated key=value pairs. Some values
are further encoded: the unit name as percent-hex ("%44%65%76") and the
monitor data as plain hex ("4142").
"""

import string
from typing import Dict

_HEX_DIGITS = set(string.hexdigits)


class DecodeError(ValueError):
    """A value is not valid percent-hex or hex encoded UTF-8"""


class ProtocolError(ValueError):
    """A response body or field does not have the expected shape"""


def _hex_byte(pair: str, encoded: str) -> int:
    if len(pair) != 2 or not set(pair) <= _HEX_DIGITS:
        raise DecodeError(f"invalid hex byte {pair!r} in {encoded!r}")
    return int(pair, 16)


def _utf8(data: bytes, encoded: str) -> str:
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError as e:
        raise DecodeError(f"{encoded!r} is not UTF-8: {e}") from e


def percent_decode(encoded: str) -> str:
    """Decode "%41%42" to "AB" """
    segments = encoded.split('%')

    leading = segments.pop(0)
    if leading:
        raise DecodeError(f"{encoded!r} does not start with '%'")

    data = bytes(_hex_byte(segment, encoded) for segment in segments)
    return _utf8(data, encoded)


def hex_decode(encoded: str) -> str:
    """Decode "4142" to "AB" """
    if len(encoded) % 2:
        raise DecodeError(f"{encoded!r} has an odd number of hex digits")

    data = bytes(_hex_byte(encoded[offset:offset + 2], encoded)
                 for offset in range(0, len(encoded), 2))
    return _utf8(data, encoded)


def parse_pairs(body: str) -> Dict[str, str]:
    """
    Parse "ret=OK,pow=1,mode=3" into a dict.
    Repeated keys keep the last value.
    """
    result = {}

    for entry in body.strip().split(','):
        key, sep, value = entry.partition('=')
        if not sep:
            raise ProtocolError(f"entry {entry!r} has no '='")
        result[key] = value

    return result


def require(pairs: Dict[str, str], key: str) -> str:
    """Look up a field, raising ProtocolError when it is missing"""
    try:
        return pairs[key]
    except KeyError:
        raise ProtocolError(f"missing field {key!r}") from None
