"""Conversion between decimal strings and integer token base units.

On-chain amounts are integers. These helpers are the only place where a
decimal representation is produced or consumed, and they never go
through float.
"""

from decimal import Decimal, DecimalException, Inexact, InvalidOperation, localcontext

__all__ = ["parse_units", "format_units", "to_decimal", "UINT256_MAX"]

UINT256_MAX = 2**256 - 1


def to_decimal(text: str) -> Decimal:
    """Parse a decimal string, raising ValueError on anything non-finite."""
    try:
        value = Decimal(str(text).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"not a decimal number: {text!r}") from e
    if not value.is_finite():
        raise ValueError(f"not a finite number: {text!r}")
    return value


def parse_units(text: str, decimals: int) -> int:
    """Convert a decimal string to base units for a token with ``decimals``.

    Raises:
        ValueError: If the text is not a number, has more fractional
            digits than the token can represent, or does not fit in a
            uint256.

    Example:
        >>> parse_units("0.01", 9)
        10000000
    """
    value = to_decimal(text)
    # scaleb rounds to context precision; widen it so no digit is lost
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + decimals)
        ctx.traps[Inexact] = True
        try:
            scaled = value.scaleb(decimals)
        except DecimalException as e:
            raise ValueError(f"{text!r} is out of range") from e
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{text!r} has more than {decimals} decimal places")
    units = int(scaled)
    if abs(units) > UINT256_MAX:
        raise ValueError(f"{text!r} is out of range")
    return units


def format_units(units: int, decimals: int) -> str:
    """Format integer base units as a decimal string.

    Always keeps at least one fractional digit, so whole amounts read as
    ``"1.0"``.

    Example:
        >>> format_units(10_000_000_000_000_000_000, 18)
        '10.0'
    """
    negative = units < 0
    digits = str(abs(int(units))).rjust(decimals + 1, "0")
    whole, fraction = digits[: len(digits) - decimals], digits[len(digits) - decimals :]
    fraction = fraction.rstrip("0") or "0"
    return f"{'-' if negative else ''}{whole}.{fraction}"
