"""Parsing utilities for common data transformations."""

from decimal import Decimal, localcontext


def parse_hex_int(hex_value: str | int | None, default: int = 0) -> int:
    """Parse hex string to integer.

    Args:
        hex_value: Hex-encoded string, an already decoded int, or None
        default: Default value if hex_value is None or empty

    Returns:
        int: Parsed integer value

    Example:
        >>> parse_hex_int("0xff")
        255
        >>> parse_hex_int(None, 0)
        0
    """
    if hex_value is None or hex_value in {"", "0x"}:
        return default
    if isinstance(hex_value, int):
        return hex_value
    return int(hex_value, 16)


def format_units(raw: int, decimals: int) -> Decimal:
    """Scale an integer amount by 10**decimals without float rounding.

    Example:
        >>> format_units(1500, 3)
        Decimal('1.5')
    """
    if not raw:
        return Decimal(0)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(raw))))
        return Decimal(raw).scaleb(-decimals).normalize()


def wei_to_gwei(wei: int) -> Decimal:
    """Convert Wei to Gwei.

    Example:
        >>> wei_to_gwei(1_500_000_000)
        Decimal('1.5')
    """
    return format_units(wei, 9)


def normalize_address(address: str | None) -> str | None:
    """Lower-case an address; None and the empty string map to None."""
    if not address:
        return None
    return address.lower()


def short_address(address: str) -> str:
    """Display label for an address: ``0x1234...abcd``.

    Example:
        >>> short_address("0x1234567890abcdef1234567890abcdef12345678")
        '0x1234...5678'
    """
    return f"{address[:6]}...{address[-4:]}"


__all__ = [
    "format_units",
    "normalize_address",
    "parse_hex_int",
    "short_address",
    "wei_to_gwei",
]
