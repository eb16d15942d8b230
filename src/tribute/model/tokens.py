from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

REFERENCE_CURRENCY = "USD"

CENT_DECIMALS = 2
MAX_DECIMALS = 36

# Unknown symbols are assumed to follow the ERC-20 default.
DEFAULT_DECIMALS = 18

TOKEN_DECIMALS: dict[str, int] = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "BTC": 8,
    "BCH": 8,
    "BSV": 8,
    "LTC": 8,
    "DOGE": 8,
    "ZEC": 8,
    "ETH": 18,
    "ETC": 18,
    "LINK": 18,
    "DAI": 18,
    "BAT": 18,
    "ZRX": 18,
    "REP": 18,
    "MKR": 18,
    "UNI": 18,
    "USDC": 6,
    "USDT": 6,
    "XTZ": 6,
    "ALGO": 6,
    "XLM": 7,
    "XRP": 6,
    "EOS": 4,
}


def decimals_for(token: str) -> int:
    return TOKEN_DECIMALS.get(token.upper(), DEFAULT_DECIMALS)


def _shift(value: Decimal, places: int) -> Decimal:
    # Exponent arithmetic on the tuple form never rounds, unlike scaleb().
    sign, digits, exponent = value.as_tuple()
    return Decimal((sign, digits, exponent + places))


def to_minor_units(quantity: Decimal, decimals: int) -> int:
    """Convert a whole-token quantity into an integer count of minor units.

    The conversion must be exact: a quantity with more fractional digits than
    the token supports raises ValueError instead of being rounded.
    """
    scaled = _shift(quantity, decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"Quantity {quantity} has more than {decimals} decimal places"
        )
    return int(scaled)


def from_minor_units(amount: int, decimals: int) -> Decimal:
    """Render minor units as a whole-token Decimal with exactly ``decimals`` places."""
    return _shift(Decimal(amount), -decimals)


def to_cents(dollars: Decimal) -> int:
    """Round a USD value half-up to whole cents."""
    try:
        cents = _shift(dollars, CENT_DECIMALS).quantize(Decimal("1"), ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"USD amount {dollars} is out of range") from e
    return int(cents)


def from_cents(cents: int) -> Decimal:
    return from_minor_units(cents, CENT_DECIMALS)
