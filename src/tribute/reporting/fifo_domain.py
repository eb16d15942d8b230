from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal

from tribute.model.tokens import from_minor_units
from tribute.model.transaction import Transaction

from .holding import Term


@dataclass
class Lot:
    token: str
    acquired_on: dt.date
    amount: int  # remaining quantity, minor units
    cost: int  # remaining basis, cents
    decimals: int
    source_id: str


@dataclass(frozen=True)
class LotTake:
    """The part of one lot consumed by a disposal."""

    source_id: str
    acquired_on: dt.date
    amount: int
    lot_amount_before: int
    cost_basis: int  # cents


@dataclass(frozen=True)
class LotPortion:
    source_id: str
    acquired_on: dt.date
    disposed_on: dt.date
    amount: int  # minor units of the disposed token
    lot_amount_before: int
    cost_basis: int  # cents
    proceeds: int  # cents
    term: Term

    @property
    def gain(self) -> int:
        return self.proceeds - self.cost_basis

    @property
    def is_short_term(self) -> bool:
        return self.term is Term.SHORT


@dataclass(frozen=True)
class GainRecord:
    """Outcome of matching one disposal against open lots."""

    disposal: Transaction
    portions: tuple[LotPortion, ...]

    @property
    def token(self) -> str:
        return self.disposal.token

    @property
    def disposed_on(self) -> dt.date:
        return self.disposal.created_at

    @property
    def amount(self) -> int:
        return self.disposal.amount

    @property
    def quantity(self) -> Decimal:
        return self.disposal.quantity

    @property
    def proceeds(self) -> int:
        return sum(p.proceeds for p in self.portions)

    @property
    def cost_basis(self) -> int:
        return sum(p.cost_basis for p in self.portions)

    @property
    def gain(self) -> int:
        return sum(p.gain for p in self.portions)

    def portion_quantity(self, portion: LotPortion) -> Decimal:
        return from_minor_units(portion.amount, self.disposal.decimals)


@dataclass(frozen=True)
class Holding:
    """Open position left for a token after all ingested transactions."""

    token: str
    amount: int
    decimals: int
    cost_basis: int
    bought: int
    sold: int
    lots: int

    @property
    def quantity(self) -> Decimal:
        return from_minor_units(self.amount, self.decimals)
