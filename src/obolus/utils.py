from __future__ import annotations

import re
from decimal import Decimal, localcontext
from typing import Any

from eth_utils import is_checksum_address, to_checksum_address

from .errors import ValidationError

U128_MAX = 2**128 - 1
U256_MAX = 2**256 - 1

_HEX_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")
_DIGITS_RE = re.compile(r"[0-9]+")
_DECIMAL_RE = re.compile(r"([0-9]*)(?:\.([0-9]*))?")


def is_address(value: Any) -> bool:
    """Return True for a 0x-prefixed 20-byte hex address.

    All-lowercase and all-uppercase forms are accepted as-is; mixed case
    must carry a valid EIP-55 checksum.
    """
    if not isinstance(value, str) or not _HEX_ADDRESS_RE.fullmatch(value):
        return False
    body = value[2:]
    if body == body.lower() or body == body.upper():
        return True
    return is_checksum_address(value)


def checksum_address(value: Any) -> str:
    if not is_address(value):
        raise ValidationError(f"Invalid address: {value!r}")
    return to_checksum_address(value)


def validate_amount(value: Any) -> int:
    """Coerce a raw token amount (base units) to int.

    Accepts non-negative ints and strings of decimal digits that fit in
    uint256.  Floats, bools and fractional strings are rejected.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and _DIGITS_RE.fullmatch(value.strip()):
        amount = int(value.strip())
    else:
        raise ValidationError(
            f"Invalid amount: {value!r} (expected a non-negative integer)"
        )
    if amount < 0:
        raise ValidationError(f"Amount must be non-negative, got {amount}")
    if amount > U256_MAX:
        raise ValidationError("Amount does not fit in uint256")
    return amount


def parse_units(text: str, decimals: int) -> int:
    """Convert a human amount like ``"1.5"`` into base units."""
    match = _DECIMAL_RE.fullmatch(str(text).strip())
    if match is None or not any(match.groups()):
        raise ValidationError(f"Invalid amount: {text!r}")
    whole, frac = match.group(1), match.group(2) or ""
    with localcontext() as ctx:
        # wide enough that the shift never rounds
        ctx.prec = len(whole) + len(frac) + decimals + 2
        scaled = Decimal(match.group(0)).scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValidationError(
            f"Amount {text!r} has more than {decimals} fractional digits"
        )
    return validate_amount(int(scaled))


def format_units(raw: int, decimals: int) -> str:
    if decimals == 0:
        return str(raw)
    whole, frac = divmod(raw, 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole:,}.{frac_str}" if frac_str else f"{whole:,}"


def split_u256(value: int) -> tuple[int, int]:
    """Split a uint256 into ``(low, high)`` 128-bit words."""
    if value < 0 or value > U256_MAX:
        raise ValidationError(f"Value out of uint256 range: {value}")
    return value & U128_MAX, value >> 128


def join_u256(low: int, high: int) -> int:
    if not (0 <= low <= U128_MAX and 0 <= high <= U128_MAX):
        raise ValidationError(f"Invalid uint256 halves: low={low} high={high}")
    return (high << 128) | low
