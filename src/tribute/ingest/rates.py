from __future__ import annotations

import bisect
import csv
import datetime as dt
from collections import defaultdict
from decimal import Decimal
from pathlib import Path

from tribute.conv import date_key, to_dec_strict
from tribute.model.tokens import REFERENCE_CURRENCY


class UsdRateTable:
    """Date-indexed rate table: (date, currency) -> USD per 1 unit of currency.

    CSV schema:
      date,currency,rate            # rate = USD per 1 unit of currency
    """

    def __init__(self):
        # Map: currency -> { date -> Decimal(usd_per_unit) }, plus sorted date list
        self.data: dict[str, dict[str, Decimal]] = defaultdict(dict)
        self.date_index: dict[str, list[str]] = {}

    @classmethod
    def from_csv(cls, path: str | Path) -> UsdRateTable:
        with open(path, encoding="utf-8", newline="") as fp:
            return cls.from_rows(csv.DictReader(fp))

    @classmethod
    def from_rows(cls, reader: csv.DictReader) -> UsdRateTable:
        inst = cls()
        fields = set(reader.fieldnames or [])
        missing = {"date", "currency", "rate"} - fields
        if missing:
            raise ValueError(f"USD rate table missing columns: {sorted(missing)}")

        for row in reader:
            d = date_key(row["date"])
            ccy = row["currency"].strip().upper()
            if not ccy:
                raise ValueError(f"Rate row missing currency for date {d}")
            rate = to_dec_strict(row["rate"])
            if rate <= 0:
                raise ValueError(
                    f"Encountered non-positive USD rate {rate} for {ccy} on {d}"
                )
            inst.data[ccy][d] = rate

        inst.reindex()
        return inst

    @classmethod
    def from_mapping(cls, rates: dict[tuple[str, str | dt.date], Decimal]) -> UsdRateTable:
        """Build a table from ``{(currency, date): usd_per_unit}``."""
        inst = cls()
        for (ccy, d), rate in rates.items():
            inst.data[ccy.upper()][date_key(d)] = Decimal(rate)
        inst.reindex()
        return inst

    def reindex(self) -> None:
        for ccy, m in self.data.items():
            self.date_index[ccy] = sorted(m.keys())

    def get_rate(self, date: dt.date, currency: str) -> Decimal | None:
        """Return USD per 1 unit of currency.

        If the exact date isn't available, falls back to the nearest previous
        available date for that currency (to accommodate weekends/holidays).
        """
        c = currency.upper()
        if c == REFERENCE_CURRENCY:
            return Decimal("1")
        if c not in self.data:
            return None
        d = date.isoformat()
        if d in self.data[c]:
            return self.data[c][d]
        dates = self.date_index.get(c, [])
        pos = bisect.bisect_right(dates, d)
        if pos == 0:
            return None
        return self.data[c][dates[pos - 1]]
