import datetime as dt

import pytest

from fixtures import sell
from tribute.reporting.fifo_domain import Lot
from tribute.reporting.gain_builder import build_gain_record
from tribute.reporting.holding import Term
from tribute.reporting.positions import PositionBook


def _lot(source_id: str, amount: int, cost: int, acquired_on: dt.date) -> Lot:
    return Lot(
        token="BTC",
        acquired_on=acquired_on,
        amount=amount,
        cost=cost,
        decimals=0,
        source_id=source_id,
    )


def test_position_book_consumes_fifo_and_keeps_partial_lot():
    book = PositionBook()
    book.append_buy(_lot("A1", 10, 100, dt.date(2018, 1, 1)))
    book.append_buy(_lot("A2", 10, 300, dt.date(2018, 1, 2)))

    takes, remaining = book.consume_fifo("BTC", 5)

    assert remaining == 0
    assert [(t.source_id, t.amount, t.cost_basis) for t in takes] == [("A1", 5, 50)]
    assert takes[0].lot_amount_before == 10
    assert book.available("BTC") == 15
    front, back = book._positions["BTC"]
    assert (front.source_id, front.amount, front.cost) == ("A1", 5, 50)
    assert (back.source_id, back.amount, back.cost) == ("A2", 10, 300)


def test_position_book_spans_lots_and_reports_shortfall():
    book = PositionBook()
    book.append_buy(_lot("A1", 10, 100, dt.date(2018, 1, 1)))
    book.append_buy(_lot("A2", 10, 300, dt.date(2018, 1, 2)))

    takes, remaining = book.consume_fifo("BTC", 25)

    assert [(t.source_id, t.amount, t.cost_basis) for t in takes] == [
        ("A1", 10, 100),
        ("A2", 10, 300),
    ]
    assert remaining == 5
    assert book.available("BTC") == 0


def test_position_book_never_leaks_rounded_cost():
    book = PositionBook()
    book.append_buy(_lot("A1", 3, 100, dt.date(2018, 1, 1)))
    costs = [book.consume_fifo("BTC", 1)[0][0].cost_basis for _ in range(3)]
    # 33.33.. rounds to 33, then 67/2 = 33.5 rounds to 34, last take gets the rest
    assert costs == [33, 34, 33]
    assert sum(costs) == 100


def test_position_book_rejects_invalid_input():
    book = PositionBook()
    with pytest.raises(ValueError):
        book.append_buy(_lot("A1", 0, 100, dt.date(2018, 1, 1)))
    with pytest.raises(ValueError):
        book.append_buy(_lot("A1", 1, -1, dt.date(2018, 1, 1)))
    with pytest.raises(ValueError):
        book.consume_fifo("BTC", 0)


def test_position_book_holdings_track_bought_and_sold():
    book = PositionBook()
    book.append_buy(_lot("A1", 10, 100, dt.date(2018, 1, 1)))
    book.consume_fifo("BTC", 4)

    (h,) = book.holdings()
    assert (h.token, h.amount, h.cost_basis, h.bought, h.sold, h.lots) == (
        "BTC",
        6,
        60,
        10,
        4,
        1,
    )


def test_build_gain_record_prorates_proceeds_with_remainder_last():
    book = PositionBook()
    book.append_buy(_lot("A1", 1, 10, dt.date(2017, 1, 1)))
    book.append_buy(_lot("A2", 1, 10, dt.date(2018, 1, 1)))
    book.append_buy(_lot("A3", 1, 10, dt.date(2018, 1, 2)))
    takes, _ = book.consume_fifo("BTC", 3)

    disposal = sell("S1", 3, 100, dt.date(2018, 6, 1))
    record = build_gain_record(disposal, takes)

    assert [p.proceeds for p in record.portions] == [33, 34, 33]
    assert record.proceeds == 100
    assert record.cost_basis == 30
    assert record.gain == 70
    assert [p.term for p in record.portions] == [Term.LONG, Term.SHORT, Term.SHORT]
