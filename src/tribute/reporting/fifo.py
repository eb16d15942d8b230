from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Optional

from tribute.exceptions import GainComputationError, GainOverflowError, InsufficientLots
from tribute.model.tokens import REFERENCE_CURRENCY
from tribute.model.transaction import Transaction

from .fifo_domain import GainRecord, Holding, Lot
from .gain_builder import build_gain_record
from .money import fits_int64
from .positions import PositionBook

logger = logging.getLogger(__name__)


class FifoMatcher:
    """Match disposals to the oldest open acquisition lots of the same token.

    Transactions must be ingested in ledger order; the lot queue of a token
    depends on every earlier disposal of that token.
    """

    def __init__(
        self,
        *,
        positions: Optional[PositionBook] = None,
        reference_currency: str = REFERENCE_CURRENCY,
    ) -> None:
        self.positions = positions or PositionBook()
        self.reference_currency = reference_currency
        self._decimals: dict[str, int] = {}

    def ingest(self, tx: Transaction) -> Optional[GainRecord]:
        if tx.token == self.reference_currency:
            # Cash in the reference currency is not a capital asset.
            logger.debug("Skipping %s cash transaction %s", tx.token, tx.id)
            return None
        if tx.amount == 0:
            raise GainComputationError(
                f"Transaction {tx.id} has a zero {tx.token} amount", transaction=tx
            )
        self._check_decimals(tx)
        if tx.is_acquisition:
            return self._ingest_buy(tx)
        return self._ingest_sell(tx)

    def _check_decimals(self, tx: Transaction) -> None:
        known = self._decimals.setdefault(tx.token, tx.decimals)
        if known != tx.decimals:
            raise GainComputationError(
                f"{tx.token} transaction {tx.id} uses {tx.decimals} decimals; "
                f"earlier {tx.token} transactions use {known}",
                transaction=tx,
            )

    def _ingest_buy(self, tx: Transaction) -> None:
        if not tx.is_acquisition:
            raise ValueError("buy lots must come from acquisitions")
        if not fits_int64(tx.usd_amount):
            raise GainOverflowError(
                f"Cost of {tx.id} overflowed: {tx.usd_amount} cents", transaction=tx
            )
        self.positions.append_buy(
            Lot(
                token=tx.token,
                acquired_on=tx.created_at,
                amount=tx.amount,
                cost=tx.usd_amount,
                decimals=tx.decimals,
                source_id=tx.id,
            )
        )
        logger.debug(
            "Buying %s %s (lot %s, total %s)",
            tx.quantity,
            tx.token,
            tx.id,
            self.positions.available(tx.token),
        )
        return None

    def _ingest_sell(self, tx: Transaction) -> GainRecord:
        if not tx.is_disposal:
            raise ValueError("sell matching requires a disposal")

        available = self.positions.available(tx.token)
        if available < tx.amount:
            shortfall = tx.amount - available
            raise InsufficientLots(
                f"Sale of {tx.quantity} {tx.token} ({tx.id} on {tx.created_at}) "
                f"could not be satisfied by open lots; short by {shortfall} "
                f"minor units",
                token=tx.token,
                transaction=tx,
                shortfall=shortfall,
            )

        takes, remaining = self.positions.consume_fifo(tx.token, tx.amount)
        if remaining:
            # available() was checked above; the queue cannot run dry here.
            raise RuntimeError(f"lot queue for {tx.token} ran dry unexpectedly")

        record = build_gain_record(tx, takes)
        logger.debug(
            "Selling %s %s (%s) across %d lot(s): proceeds=%d cost=%d gain=%d",
            tx.quantity,
            tx.token,
            tx.id,
            len(record.portions),
            record.proceeds,
            record.cost_basis,
            record.gain,
        )
        return record

    def holdings(self) -> list[Holding]:
        return self.positions.holdings()


def validate_ledger_order(ledger: Sequence[Transaction]) -> None:
    for prev, cur in zip(ledger, ledger[1:]):
        if cur.ledger_key() < prev.ledger_key():
            raise ValueError(
                f"ledger is not ordered: {cur.id} ({cur.created_at}) follows "
                f"{prev.id} ({prev.created_at})"
            )


def compute_gains(
    ledger: Iterable[Transaction], *, matcher: Optional[FifoMatcher] = None
) -> list[GainRecord]:
    """Run FIFO matching over a merged ledger; return one record per disposal."""
    ledger = list(ledger)
    validate_ledger_order(ledger)
    matcher = matcher or FifoMatcher()

    records = []
    for tx in ledger:
        record = matcher.ingest(tx)
        if record is not None:
            records.append(record)

    logger.info(
        "FIFO matching: %d transaction(s) processed, %d disposal(s) matched",
        len(ledger),
        len(records),
    )
    return records
