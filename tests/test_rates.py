import csv
import datetime as dt
from decimal import Decimal

import pytest

from tribute.ingest.rates import UsdRateTable


def _write_csv(tmp_path, rows, header=("date", "currency", "rate")):
    path = tmp_path / "rates.csv"
    with open(path, "w", newline="", encoding="utf-8") as fp:
        writer = csv.writer(fp)
        writer.writerow(header)
        writer.writerows(rows)
    return path


def test_rates_from_csv_parses_usd_per_unit(tmp_path):
    path = _write_csv(
        tmp_path,
        [
            ["2018-01-01", "btc", "13412.44"],
            ["2018-01-02", "BTC", "14740.76"],
        ],
    )
    table = UsdRateTable.from_csv(path)
    assert table.get_rate(dt.date(2018, 1, 2), "BTC") == Decimal("14740.76")


def test_rates_from_csv_rejects_missing_columns(tmp_path):
    path = _write_csv(tmp_path, [], header=("date", "currency", "usd"))
    with pytest.raises(ValueError):
        UsdRateTable.from_csv(path)


def test_rates_from_csv_rejects_non_positive_rate(tmp_path):
    path = _write_csv(tmp_path, [["2018-01-01", "BTC", "0"]])
    with pytest.raises(ValueError):
        UsdRateTable.from_csv(path)


def test_rates_fall_back_to_previous_date():
    table = UsdRateTable.from_mapping(
        {
            ("ETH", "2018-01-05"): Decimal("1000"),
            ("ETH", dt.date(2018, 1, 8)): Decimal("1100"),
        }
    )
    # Weekend uses Friday's rate
    assert table.get_rate(dt.date(2018, 1, 6), "ETH") == Decimal("1000")
    assert table.get_rate(dt.date(2018, 1, 9), "eth") == Decimal("1100")
    # Nothing on or before the date
    assert table.get_rate(dt.date(2018, 1, 4), "ETH") is None


def test_rates_unknown_currency_and_usd_identity():
    table = UsdRateTable()
    assert table.get_rate(dt.date(2018, 1, 1), "LTC") is None
    assert table.get_rate(dt.date(2018, 1, 1), "USD") == Decimal("1")
