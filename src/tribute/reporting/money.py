from __future__ import annotations

from decimal import Decimal

from tribute.model.tokens import from_cents

# Cents figures must fit a signed 64-bit integer for spreadsheet/CSV consumers.
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def prorate(total: int, part: int, whole: int) -> int:
    """Allocate ``part / whole`` of ``total`` cents, rounding half up.

    All arguments are non-negative integers; the result never exceeds total.
    """
    if whole <= 0:
        raise ValueError("whole must be positive")
    if part < 0 or part > whole:
        raise ValueError("part must be within 0..whole")
    if part == whole:
        return total
    return (2 * total * part + whole) // (2 * whole)


def fits_int64(value: int) -> bool:
    return INT64_MIN <= value <= INT64_MAX


def format_usd(cents: int) -> str:
    """Render cents as ``$1,234.56``, with parentheses for negatives."""
    dollars = from_cents(abs(cents))
    text = f"${dollars:,.2f}"
    return f"({text})" if cents < 0 else text


def format_quantity(quantity: Decimal) -> str:
    """Render a whole-token quantity without trailing zeros."""
    text = format(quantity, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
