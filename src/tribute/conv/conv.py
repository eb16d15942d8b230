from __future__ import annotations

import datetime as dt
import re
from decimal import Decimal, InvalidOperation

NUM_CLEAN_RE = re.compile(r"[,\s]")  # remove thousands separators, spaces
PAREN_NEGATIVE_RE = re.compile(r"\A\((.*)\)\Z")


def to_dec_strict(s: str | float | int | Decimal | None) -> Decimal:
    """Convert numeric strings to Decimal.

    Raises ValueError on invalid/missing data. Use this for amounts and rates,
    where a silent zero would corrupt the cost basis.
    """
    if s is None:
        raise ValueError("Value is None")
    if isinstance(s, bool):
        raise ValueError(f"Value is a boolean: {s!r}")
    if isinstance(s, Decimal):
        value = s
    elif isinstance(s, (int, float)):
        value = Decimal(str(s))
    else:
        s_stripped = s.strip()
        if not s_stripped:
            raise ValueError("Value is empty string")
        if s_stripped in {"-", "--", "...", "N/A", "n/a"}:
            raise ValueError(f"Value is a placeholder: {s_stripped!r}")
        try:
            value = Decimal(NUM_CLEAN_RE.sub("", s_stripped))
        except InvalidOperation as e:
            raise ValueError(f"Invalid decimal format: {s!r}") from e

    if not value.is_finite():
        raise ValueError(f"Value is not finite: {s!r}")
    return value


def parse_amount(s: str) -> Decimal:
    """Parse a rendered amount such as ``$1,234.56`` or ``($12.00)``.

    Parentheses mark negative values, as in accounting reports.
    """
    s = s.strip()
    match = PAREN_NEGATIVE_RE.match(s)
    if match:
        return -to_dec_strict(match.group(1).strip().lstrip("$"))
    return to_dec_strict(s.lstrip("$"))


def parse_date(d: str | dt.date | dt.datetime) -> dt.date:
    """Parse date-like values into a calendar date.

    Handles 'YYYY-MM-DD', ISO-8601 timestamps ('2018-01-02T03:04:05Z',
    '2018-01-02T03:04:05.123+00:00') and 'YYYY-MM-DD, HH:MM:SS'. Timestamps
    carrying an offset are converted to UTC before the date is taken.
    """
    if isinstance(d, dt.datetime):
        return _utc_date(d)
    if isinstance(d, dt.date):
        return d

    d = d.strip()
    if "," in d:
        d = d.split(",")[0].strip()
    if len(d) == 10:
        return dt.date.fromisoformat(d)
    if d.endswith("Z"):
        d = d[:-1] + "+00:00"
    return _utc_date(dt.datetime.fromisoformat(d))


def parse_unix_date(seconds: str | int) -> dt.date:
    """Return the UTC calendar date of a unix timestamp in seconds."""
    ts = int(str(seconds).strip())
    return dt.datetime.fromtimestamp(ts, tz=dt.timezone.utc).date()


def _utc_date(value: dt.datetime) -> dt.date:
    if value.tzinfo is not None:
        value = value.astimezone(dt.timezone.utc)
    return value.date()


def date_key(d: str | dt.date) -> str:
    """Return YYYY-MM-DD string for a date."""
    if isinstance(d, dt.date):
        return d.isoformat()
    return parse_date(d).isoformat()
