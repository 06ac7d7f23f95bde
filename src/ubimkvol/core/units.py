"""
Size and number parsing for ubimkvol options.

Sizes are an integer optionally followed by one of the binary unit suffixes
"KiB", "MiB" or "GiB". Suffix matching is case sensitive; blanks between
the number and the suffix are allowed.
"""

from __future__ import annotations

import re

from ubimkvol.core.errors import InvalidArgument, InvalidSize

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB

# Largest values the signed 32- and 64-bit request fields can hold
INT32_MAX = 2**31 - 1
INT64_MAX = 2**63 - 1

_MULTIPLIERS = {
    "KiB": KIB,
    "MiB": MIB,
    "GiB": GIB,
}

# Same prefixes C's strtol() accepts with base 0: hex, octal or decimal.
_INTEGER_PREFIX = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


def get_multiplier(suffix: str) -> int:
    """Return the byte multiplier for a unit suffix ("" means bytes)."""
    if not suffix:
        return 1

    multiplier = _MULTIPLIERS.get(suffix.lstrip(" \t"))
    if multiplier is None:
        raise InvalidSize(
            f"bad size specifier: \"{suffix}\" - should be 'KiB', 'MiB' or 'GiB'"
        )
    return multiplier


def split_integer_prefix(text: str) -> tuple[int | None, str]:
    """
    Split a leading integer off a string.

    Returns the parsed value (None when the string does not start with a
    number) and the unparsed remainder.
    """
    match = _INTEGER_PREFIX.match(text)
    if not match:
        return None, text

    sign, digits = match.groups()
    if digits[:2].lower() == "0x":
        value = int(digits, 16)
    elif len(digits) > 1 and digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)

    if sign == "-":
        value = -value
    return value, text[match.end():]


def parse_size(text: str) -> int:
    """Parse a volume size such as "4096", "10MiB" or "1 GiB" into bytes."""
    value, rest = split_integer_prefix(text)
    if value is None or value < 0:
        raise InvalidSize(f'bad volume size: "{text}"')

    size = value * get_multiplier(rest)
    if size > INT64_MAX:
        raise InvalidSize(f'bad volume size: "{text}"')
    return size


def parse_unsigned(text: str, what: str) -> int:
    """Parse a whole token as a non-negative integer that fits in 32 bits."""
    value, rest = split_integer_prefix(text)
    if value is None or rest or not 0 <= value <= INT32_MAX:
        raise InvalidArgument(f'bad {what}: "{text}"')
    return value
