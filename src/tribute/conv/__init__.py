from .conv import (
    date_key,
    parse_amount,
    parse_date,
    parse_unix_date,
    to_dec_strict,
)

__all__ = [
    "date_key",
    "parse_amount",
    "parse_date",
    "parse_unix_date",
    "to_dec_strict",
]
