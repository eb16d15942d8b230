"""CSV export of the merged ledger, and the reader used by ``tribute report``.

Amounts are written in whole tokens with exactly ``Decimals`` places and USD
amounts in dollars with two places, so reading an export back yields the
same Transactions.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import IO, Any

from tribute.conv import parse_amount, parse_date
from tribute.exceptions import MalformedRecord, SerializationError
from tribute.model.tokens import decimals_for, to_cents, to_minor_units
from tribute.model.transaction import Side, Transaction

logger = logging.getLogger(__name__)

EXPORT_HEADER = [
    "ID",
    "Market",
    "Token",
    "Side",
    "Amount",
    "Decimals",
    "Rate",
    "USD Rate",
    "USD Amount",
    "Created At",
    "Provider",
]

REQUIRED_COLUMNS = {
    "ID",
    "Market",
    "Token",
    "Amount",
    "Rate",
    "USD Rate",
    "USD Amount",
    "Created At",
}


def _plain(value: Decimal) -> str:
    return format(value, "f")


def export_row(tx: Transaction) -> list[str]:
    return [
        tx.id,
        tx.market,
        tx.token,
        str(tx.side),
        _plain(tx.quantity),
        str(tx.decimals),
        _plain(tx.rate),
        _plain(tx.usd_rate),
        _plain(tx.usd_value),
        tx.created_at.isoformat(),
        tx.provider,
    ]


def write_ledger(transactions: Iterable[Transaction], fp: IO[str]) -> int:
    """Write the header and one row per transaction; return the row count."""
    count = 0
    try:
        writer = csv.writer(fp, lineterminator="\n")
        writer.writerow(EXPORT_HEADER)
        for tx in transactions:
            writer.writerow(export_row(tx))
            count += 1
        fp.flush()
    except (OSError, csv.Error) as e:
        raise SerializationError(f"Failed to write ledger export: {e}", cause=e) from e
    logger.debug("Wrote %d ledger row(s)", count)
    return count


def read_ledger(fp: IO[str]) -> list[Transaction]:
    """Parse a ledger export back into Transactions, in file order.

    ``Side``, ``Decimals`` and ``Provider`` are optional so that exports with
    signed amounts and no side column can be read too: a negative amount is
    a disposal.
    """
    reader = csv.DictReader(fp)
    missing = REQUIRED_COLUMNS - set(reader.fieldnames or [])
    if missing:
        raise MalformedRecord(f"Ledger CSV missing columns: {sorted(missing)}")

    transactions = []
    for row in reader:
        try:
            transactions.append(_parse_row(row))
        except MalformedRecord as e:
            raise MalformedRecord(
                f"Ledger CSV line {reader.line_num}: {e}", record=row
            ) from e
    logger.info("Read %d ledger row(s)", len(transactions))
    return transactions


def _parse_row(row: dict[str, Any]) -> Transaction:
    token = (row.get("Token") or "").strip().upper()
    try:
        quantity = parse_amount(row["Amount"] or "")
        decimals_s = (row.get("Decimals") or "").strip()
        decimals = int(decimals_s) if decimals_s else decimals_for(token)
        side_s = (row.get("Side") or "").strip().lower()
        side = Side(side_s) if side_s else Side.from_signed(quantity)
        amount = to_minor_units(quantity.copy_abs(), decimals)
        usd_amount = to_cents(parse_amount(row["USD Amount"] or "").copy_abs())
        rate = parse_amount(row["Rate"] or "")
        usd_rate = parse_amount(row["USD Rate"] or "")
        created_at = parse_date(row["Created At"] or "")
    except ValueError as e:
        raise MalformedRecord(str(e)) from e
    if amount == 0:
        raise MalformedRecord("Transaction amount is zero")

    return Transaction(
        id=(row.get("ID") or "").strip(),
        market=(row.get("Market") or "").strip(),
        token=token,
        side=side,
        amount=amount,
        decimals=decimals,
        rate=rate,
        usd_rate=usd_rate,
        usd_amount=usd_amount,
        created_at=created_at,
        provider=(row.get("Provider") or "").strip() or "manual",
    )
