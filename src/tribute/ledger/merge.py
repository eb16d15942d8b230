from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from tribute.exceptions import DuplicateTransactionId
from tribute.model.transaction import Transaction

logger = logging.getLogger(__name__)


def merge(sources: Iterable[Sequence[Transaction]]) -> list[Transaction]:
    """Combine ledger sources into one list ordered by (created_at, id).

    Sources are not mutated. A transaction id that appears more than once,
    within one source or across several, raises DuplicateTransactionId: the
    conflict has to be resolved upstream rather than by picking a copy.
    """
    seen: dict[str, int] = {}
    combined: list[Transaction] = []
    source_count = 0
    for index, source in enumerate(sources):
        source_count += 1
        for tx in source:
            first = seen.get(tx.id)
            if first is not None:
                logger.error(
                    "Duplicate transaction id %s (sources %d and %d)", tx.id, first, index
                )
                raise DuplicateTransactionId(tx.id, sources=(first, index))
            seen[tx.id] = index
            combined.append(tx)

    # sorted() is stable, so equal keys keep source order
    ledger = sorted(combined, key=Transaction.ledger_key)
    logger.info(
        "Merged %d transaction(s) from %d source(s)", len(ledger), source_count
    )
    return ledger
