"""Compact/canonical conversion for 128-bit asset identifiers.

Editors store script component types either as a canonical hyphenated UUID
(``8bab7e0c-0380-491c-b66f-b2bef75657c2``) or as a compressed form in which a
short hex prefix is kept verbatim and every following group of three hex
digits (12 bits) is packed into two base64 symbols:

    23 characters: 5 verbatim hex digits + 18 symbols  (current form)
    22 characters: 2 verbatim hex digits + 20 symbols  (legacy form)
"""

from __future__ import annotations

import re

BASE64_KEYS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/="

# Index returned for any character outside the alphabet ('=')
DECODE_MISS = 64

BASE64_VALUES: dict[str, int] = {ch: i for i, ch in enumerate(BASE64_KEYS[:64])}

HEX_CHARS = "0123456789abcdef"

LONG_LENGTH = 36
SHORT_LENGTH = 23
LEGACY_SHORT_LENGTH = 22

_RESERVED_HEX = {SHORT_LENGTH: 5, LEGACY_SHORT_LENGTH: 2}

_LONG_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def _symbol_index(ch: str) -> int:
    return BASE64_VALUES.get(ch, DECODE_MISS)


def shorten(long_id: str, legacy: bool = False) -> str:
    """Compress a canonical UUID to its 23-character (or 22 with *legacy*) form.

    Anything that is not a syntactically valid 36-character UUID is returned
    unchanged.
    """
    if not isinstance(long_id, str) or not _LONG_RE.match(long_id):
        return long_id

    hex_digits = long_id.replace("-", "").lower()
    reserved = _RESERVED_HEX[LEGACY_SHORT_LENGTH if legacy else SHORT_LENGTH]

    out = [hex_digits[:reserved]]
    for i in range(reserved, 32, 3):
        value = int(hex_digits[i:i + 3], 16)
        out.append(BASE64_KEYS[value >> 6])
        out.append(BASE64_KEYS[value & 0x3F])
    return "".join(out)


def lengthen(short_id: str) -> str:
    """Expand a 23- or 22-character compact id back to the hyphenated form.

    Other lengths, and inputs containing characters outside the alphabet or a
    non-hex prefix, are returned unchanged.
    """
    if not isinstance(short_id, str):
        return short_id
    reserved = _RESERVED_HEX.get(len(short_id))
    if reserved is None:
        return short_id

    prefix = short_id[:reserved]
    if any(ch not in HEX_CHARS for ch in prefix.lower()):
        return short_id

    nibbles = [prefix]
    for i in range(reserved, len(short_id), 2):
        high = _symbol_index(short_id[i])
        low = _symbol_index(short_id[i + 1])
        if high == DECODE_MISS or low == DECODE_MISS:
            return short_id
        value = (high << 6) | low
        nibbles.append(HEX_CHARS[value >> 8])
        nibbles.append(HEX_CHARS[(value >> 4) & 0xF])
        nibbles.append(HEX_CHARS[value & 0xF])

    hex_digits = "".join(nibbles)
    return "-".join([
        hex_digits[0:8],
        hex_digits[8:12],
        hex_digits[12:16],
        hex_digits[16:20],
        hex_digits[20:],
    ])


def is_long(value: object) -> bool:
    return isinstance(value, str) and len(value) == LONG_LENGTH and "-" in value


def is_short(value: object) -> bool:
    return isinstance(value, str) and len(value) == LEGACY_SHORT_LENGTH


def normalize_to_short(value: str) -> str:
    if is_short(value):
        return value
    if is_long(value):
        return shorten(value)
    return value


def normalize_to_long(value: str) -> str:
    if is_long(value):
        return value
    if is_short(value):
        return lengthen(value)
    return value


def canonical_short(value: str) -> str:
    """Map any accepted identifier form to the 23-character compact form.

    Lets a config table written with long ids, legacy 22-character ids or
    current 23-character ids be compared against ``__type__`` values from a
    graph.
    """
    if isinstance(value, str) and len(value) in _RESERVED_HEX:
        long_form = lengthen(value)
        if long_form == value:
            return value
        return shorten(long_form)
    return shorten(value)
