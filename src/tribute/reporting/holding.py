from __future__ import annotations

import datetime as dt
from enum import StrEnum


class Term(StrEnum):
    SHORT = "short"
    LONG = "long"


def one_year_after(date: dt.date) -> dt.date:
    """Return the first anniversary of ``date``; Feb 29 maps to Feb 28."""
    try:
        return date.replace(year=date.year + 1)
    except ValueError:
        return date.replace(year=date.year + 1, day=28)


def holding_term(acquired_on: dt.date, disposed_on: dt.date) -> Term:
    """Short-term when the disposal happens before the first anniversary."""
    if disposed_on < one_year_after(acquired_on):
        return Term.SHORT
    return Term.LONG
