from __future__ import annotations

from collections import defaultdict, deque

from .fifo_domain import Holding, Lot, LotTake
from .money import prorate


class PositionBook:
    """Maintain FIFO lots per token without matching policy concerns."""

    def __init__(self) -> None:
        self._positions: dict[str, deque[Lot]] = defaultdict(deque)
        self._bought: dict[str, int] = defaultdict(int)
        self._sold: dict[str, int] = defaultdict(int)
        self._decimals: dict[str, int] = {}

    def append_buy(self, lot: Lot) -> None:
        if lot.amount <= 0:
            raise ValueError("buy lot amount must be positive")
        if lot.cost < 0:
            raise ValueError("buy lot cost cannot be negative")
        self._positions[lot.token].append(lot)
        self._bought[lot.token] += lot.amount
        self._decimals.setdefault(lot.token, lot.decimals)

    def available(self, token: str) -> int:
        return sum(lot.amount for lot in self._positions.get(token, ()))

    def consume_fifo(self, token: str, amount: int) -> tuple[list[LotTake], int]:
        """Consume ``amount`` from the oldest lots; return takes and the shortfall.

        A partially consumed lot stays at the front of the queue with its
        amount and remaining cost reduced. Taking a lot's whole remainder takes
        its whole remaining cost, so rounding never leaks basis between lots.
        """
        if amount <= 0:
            raise ValueError("amount to consume must be positive")

        takes: list[LotTake] = []
        remaining = amount

        lots = self._positions[token]
        while remaining > 0 and lots:
            lot = lots[0]
            take = min(remaining, lot.amount)
            cost_piece = prorate(lot.cost, take, lot.amount)
            takes.append(
                LotTake(
                    source_id=lot.source_id,
                    acquired_on=lot.acquired_on,
                    amount=take,
                    lot_amount_before=lot.amount,
                    cost_basis=cost_piece,
                )
            )

            lot.amount -= take
            lot.cost -= cost_piece
            remaining -= take

            if lot.amount == 0:
                lots.popleft()

        self._sold[token] += amount - remaining
        return takes, remaining

    def holdings(self) -> list[Holding]:
        tokens = sorted(set(self._bought) | set(self._sold))
        return [
            Holding(
                token=token,
                amount=self.available(token),
                decimals=self._decimals.get(token, 0),
                cost_basis=sum(lot.cost for lot in self._positions.get(token, ())),
                bought=self._bought[token],
                sold=self._sold[token],
                lots=len(self._positions.get(token, ())),
            )
            for token in tokens
        ]
