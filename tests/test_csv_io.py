import csv
import datetime as dt
import io
from decimal import Decimal

import pytest

from fixtures import buy, sell
from tribute.exceptions import MalformedRecord, SerializationError
from tribute.ledger import EXPORT_HEADER, read_ledger, write_ledger
from tribute.model.transaction import Side


def _ledger():
    return [
        buy(
            "0x1",
            125566000000,
            84885,
            dt.date(1997, 2, 14),
            decimals=8,
            rate=Decimal("0.387690"),
            usd_rate=Decimal("0.387690"),
        ),
        buy(
            "0xh:3",
            2500000,
            250,
            dt.date(2018, 1, 1),
            token="USDC",
            decimals=6,
            provider="etherscan",
        ),
        sell(
            "77",
            10**18,
            90000,
            dt.date(2018, 2, 1),
            token="ETH",
            market="ETH-BTC",
            decimals=18,
            rate=Decimal("0.1"),
            usd_rate=Decimal("900"),
            provider="coinbase-pro",
        ),
    ]


def test_write_ledger_renders_whole_tokens_and_dollars():
    buf = io.StringIO()
    assert write_ledger(_ledger(), buf) == 3

    rows = list(csv.reader(io.StringIO(buf.getvalue())))
    assert rows[0] == EXPORT_HEADER
    assert rows[1] == [
        "0x1",
        "BTC-USD",
        "BTC",
        "buy",
        "1255.66000000",
        "8",
        "0.387690",
        "0.387690",
        "848.85",
        "1997-02-14",
        "manual",
    ]
    assert rows[3][4] == "1.000000000000000000"
    assert rows[3][3] == "sell"


def test_export_then_read_reproduces_transactions():
    ledger = _ledger()
    buf = io.StringIO()
    write_ledger(ledger, buf)
    buf.seek(0)
    assert read_ledger(buf) == ledger


def test_read_ledger_accepts_signed_amounts_without_side_column():
    text = (
        "ID,Market,Token,Amount,Rate,USD Rate,USD Amount,Created At\n"
        "s1,BTC-USD,BTC,-0.5,1000,1000,($500.00),2018-03-01\n"
    )
    (t,) = read_ledger(io.StringIO(text))
    assert t.side is Side.SELL
    assert t.amount == 50000000
    assert t.decimals == 8
    assert t.usd_amount == 50000
    assert t.provider == "manual"


def test_read_ledger_missing_columns():
    with pytest.raises(MalformedRecord):
        read_ledger(io.StringIO("ID,Market\nx,BTC-USD\n"))


def test_read_ledger_reports_bad_line():
    text = (
        ",".join(EXPORT_HEADER) + "\n"
        "a,BTC-USD,BTC,buy,1,8,1,1,1.00,2018-01-01,manual\n"
        "b,BTC-USD,BTC,buy,abc,8,1,1,1.00,2018-01-02,manual\n"
    )
    with pytest.raises(MalformedRecord) as excinfo:
        read_ledger(io.StringIO(text))
    assert "line 3" in str(excinfo.value)
    assert excinfo.value.record["ID"] == "b"


@pytest.mark.parametrize(
    "row",
    [
        "z,BTC-USD,BTC,buy,0.00000000,8,1000,1000,0.00,2018-01-01,manual",
        "h,BTC-USD,BTC,buy,1,8,1000,1000,1e40,2018-01-01,manual",
    ],
)
def test_read_ledger_rejects_zero_amount_and_oversized_usd(row):
    text = ",".join(EXPORT_HEADER) + "\n" + row + "\n"
    with pytest.raises(MalformedRecord) as excinfo:
        read_ledger(io.StringIO(text))
    assert "line 2" in str(excinfo.value)


class _BrokenStream(io.StringIO):
    def write(self, s):
        raise OSError("disk full")


def test_write_ledger_wraps_io_errors():
    with pytest.raises(SerializationError) as excinfo:
        write_ledger(_ledger(), _BrokenStream())
    assert isinstance(excinfo.value.cause, OSError)
