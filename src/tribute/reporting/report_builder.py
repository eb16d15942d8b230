from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from .fifo_domain import GainRecord, Holding, LotPortion
from .money import format_quantity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleRow:
    """One Form 8949 line: a short-term portion of a disposal."""

    description: str
    token: str
    quantity: Decimal
    acquired_on: dt.date
    disposed_on: dt.date
    proceeds: int  # cents
    cost_basis: int  # cents
    disposal_id: str
    lot_id: str

    @property
    def gain(self) -> int:
        return self.proceeds - self.cost_basis


def describe(quantity: Decimal, token: str, market: str) -> str:
    return f"{format_quantity(quantity)} {token} sold via {market} pair"


@dataclass
class ReportBuilder:
    year: int

    def __post_init__(self) -> None:
        self.gain_records: list[GainRecord] = []
        self.rows: list[SaleRow] = []
        self.token_totals: defaultdict[str, dict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self.holdings: list[Holding] = []
        self.long_term_portions: int = 0

    def add_gain(self, record: GainRecord) -> bool:
        """Add the short-term portions of a disposal made in the report year.

        Returns False when the disposal falls outside the year.
        """
        if record.disposed_on.year != self.year:
            return False

        self.gain_records.append(record)
        for portion in record.portions:
            if not portion.is_short_term:
                self.long_term_portions += 1
                continue
            self._add_row(record, portion)
        return True

    def _add_row(self, record: GainRecord, portion: LotPortion) -> None:
        quantity = record.portion_quantity(portion)
        row = SaleRow(
            description=describe(quantity, record.token, record.disposal.market),
            token=record.token,
            quantity=quantity,
            acquired_on=portion.acquired_on,
            disposed_on=portion.disposed_on,
            proceeds=portion.proceeds,
            cost_basis=portion.cost_basis,
            disposal_id=record.disposal.id,
            lot_id=portion.source_id,
        )
        self.rows.append(row)

        t = self.token_totals[row.token]
        t["proceeds"] += row.proceeds
        t["cost_basis"] += row.cost_basis
        t["gain"] += row.gain

    def set_holdings(self, holdings: list[Holding]) -> None:
        self.holdings = holdings

    @property
    def total_proceeds(self) -> int:
        return sum(r.proceeds for r in self.rows)

    @property
    def total_cost_basis(self) -> int:
        return sum(r.cost_basis for r in self.rows)

    @property
    def total_gain(self) -> int:
        return sum(r.gain for r in self.rows)

    def log_summary(self, log: logging.Logger = logger) -> None:
        log.info(
            "Report %d: %d short-term line(s) from %d disposal(s); "
            "%d long-term portion(s) omitted",
            self.year,
            len(self.rows),
            len(self.gain_records),
            self.long_term_portions,
        )
        for h in self.holdings:
            log.info(
                "Wallet %s: %s tokens remain in %d lot(s), cost basis %d cents "
                "(bought %d / sold %d minor units)",
                h.token,
                h.quantity,
                h.lots,
                h.cost_basis,
                h.bought,
                h.sold,
            )
