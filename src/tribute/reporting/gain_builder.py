from __future__ import annotations

from tribute.exceptions import GainOverflowError
from tribute.model.transaction import Transaction

from .fifo_domain import GainRecord, LotPortion, LotTake
from .holding import holding_term
from .money import fits_int64, prorate


def build_gain_record(disposal: Transaction, takes: list[LotTake]) -> GainRecord:
    """Pro-rate the disposal's proceeds over the consumed lot portions.

    Each portion gets its share of the still-unallocated proceeds over the
    still-unmatched amount, so the last portion takes the remainder and the
    portions always sum to ``disposal.usd_amount``.
    """
    portions: list[LotPortion] = []
    proceeds_left = disposal.usd_amount
    amount_left = sum(t.amount for t in takes)

    for take in takes:
        proceeds = prorate(proceeds_left, take.amount, amount_left)
        proceeds_left -= proceeds
        amount_left -= take.amount
        portion = LotPortion(
            source_id=take.source_id,
            acquired_on=take.acquired_on,
            disposed_on=disposal.created_at,
            amount=take.amount,
            lot_amount_before=take.lot_amount_before,
            cost_basis=take.cost_basis,
            proceeds=proceeds,
            term=holding_term(take.acquired_on, disposal.created_at),
        )
        _check_range(disposal, portion.cost_basis, portion.proceeds, portion.gain)
        portions.append(portion)

    record = GainRecord(disposal=disposal, portions=tuple(portions))
    _check_range(disposal, record.cost_basis, record.proceeds, record.gain)
    return record


def _check_range(disposal: Transaction, *values: int) -> None:
    for value in values:
        if not fits_int64(value):
            raise GainOverflowError(
                f"Gain computation for {disposal.id} overflowed: {value} cents",
                transaction=disposal,
            )
