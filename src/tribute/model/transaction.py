from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from tribute.exceptions import MalformedRecord

from .tokens import MAX_DECIMALS, from_cents, from_minor_units


class Side(StrEnum):
    BUY = "buy"  # acquisition or deposit
    SELL = "sell"  # disposal or withdrawal

    @classmethod
    def from_signed(cls, value: Decimal | int) -> Side:
        return cls.SELL if value < 0 else cls.BUY


@dataclass(frozen=True)
class Transaction:
    """Canonical, immutable record of a single trade or transfer.

    ``amount`` counts the token's smallest unit and ``usd_amount`` counts
    cents; both are non-negative, with the direction carried by ``side``.
    """

    id: str
    market: str
    token: str
    side: Side
    amount: int
    decimals: int
    rate: Decimal
    usd_rate: Decimal
    usd_amount: int
    created_at: dt.date
    provider: str = "manual"

    def __post_init__(self) -> None:
        if not self.id:
            raise MalformedRecord("Transaction id must be non-empty")
        try:
            object.__setattr__(self, "side", Side(self.side))
        except ValueError as e:
            raise MalformedRecord(
                f"Transaction {self.id}: unknown side {self.side!r}"
            ) from e
        for name in ("amount", "usd_amount", "decimals"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise MalformedRecord(
                    f"Transaction {self.id}: {name} must be an integer, got {value!r}"
                )
            if value < 0:
                raise MalformedRecord(
                    f"Transaction {self.id}: {name} must be non-negative, got {value}"
                )
        if self.decimals > MAX_DECIMALS:
            raise MalformedRecord(
                f"Transaction {self.id}: decimals {self.decimals} out of range"
            )
        if isinstance(self.created_at, dt.datetime) or not isinstance(
            self.created_at, dt.date
        ):
            raise MalformedRecord(
                f"Transaction {self.id}: created_at must be a calendar date"
            )

    @property
    def is_acquisition(self) -> bool:
        return self.side is Side.BUY

    @property
    def is_disposal(self) -> bool:
        return self.side is Side.SELL

    @property
    def quantity(self) -> Decimal:
        """Amount in whole tokens, for display."""
        return from_minor_units(self.amount, self.decimals)

    @property
    def usd_value(self) -> Decimal:
        """USD amount in dollars, for display."""
        return from_cents(self.usd_amount)

    def ledger_key(self) -> tuple[dt.date, str]:
        return (self.created_at, self.id)
