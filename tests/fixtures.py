"""Transaction builders for tests.

Production code only builds Transactions through the normalizer or the
ledger CSV reader. Tests need them directly, with amounts in minor units and
costs in cents, without going through a raw exchange record.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

from tribute.model.transaction import Side, Transaction


def tx(
    txid: str,
    side: Side | str,
    amount: int,
    usd_amount: int,
    created_at: dt.date,
    *,
    token: str = "BTC",
    market: str | None = None,
    decimals: int = 0,
    rate: Decimal = Decimal("1"),
    usd_rate: Decimal = Decimal("1"),
    provider: str = "manual",
) -> Transaction:
    return Transaction(
        id=txid,
        market=market or f"{token}-USD",
        token=token,
        side=side,
        amount=amount,
        decimals=decimals,
        rate=rate,
        usd_rate=usd_rate,
        usd_amount=usd_amount,
        created_at=created_at,
        provider=provider,
    )


def buy(txid: str, amount: int, cost: int, created_at: dt.date, **kw) -> Transaction:
    return tx(txid, Side.BUY, amount, cost, created_at, **kw)


def sell(txid: str, amount: int, proceeds: int, created_at: dt.date, **kw) -> Transaction:
    return tx(txid, Side.SELL, amount, proceeds, created_at, **kw)
