"""Map exchange-specific raw records onto the canonical Transaction.

Each supported source is a tagged variant from ``tribute.model.exchanges``;
``normalize_record`` dispatches on the variant's ``kind`` to a mapper that
knows the record shape that source produces. Mappers are pure: they read the
record and the optional USD rate table and return exactly one Transaction.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from typing import Any

from tribute.conv import parse_date, parse_unix_date, to_dec_strict
from tribute.exceptions import (
    MalformedRecord,
    MissingRateData,
    NormalizationError,
    UnsupportedMarket,
)
from tribute.model.exchanges import (
    CoinbaseExchange,
    CoinbaseProExchange,
    EthereumExchange,
    EtherscanExchange,
    Exchange,
    ExchangeKind,
    ManualSource,
)
from tribute.model.tokens import (
    MAX_DECIMALS,
    REFERENCE_CURRENCY,
    decimals_for,
    from_minor_units,
    to_cents,
    to_minor_units,
)
from tribute.model.transaction import Side, Transaction

from .rates import UsdRateTable

logger = logging.getLogger(__name__)

RawRecord = Mapping[str, Any]
RecordMapper = Callable[[RawRecord, Any, UsdRateTable | None], Transaction]

_MARKET_SEPARATORS = ("-", "/")


def normalize(
    raw_records: Iterable[RawRecord],
    exchange: Exchange,
    *,
    usd_rates: UsdRateTable | None = None,
) -> list[Transaction]:
    """Normalize a source's raw records, skipping entries that are not trades.

    What counts as a non-trade depends on the source: Coinbase Pro fee and
    transfer entries, the USD cash leg of a fill, on-chain transfers that do
    not move value in or out of the configured accounts. Every other record
    is mapped one-to-one and any mapping error propagates.
    """
    is_trade = _TRADE_FILTERS.get(exchange.kind, _always)
    transactions: list[Transaction] = []
    skipped = 0
    for record in raw_records:
        if not is_trade(record, exchange):
            skipped += 1
            logger.debug("Skipping non-trade %s record: %r", exchange.kind, record)
            continue
        transactions.append(normalize_record(record, exchange, usd_rates=usd_rates))

    logger.info(
        "Normalized %d %s record(s); skipped %d non-trade record(s)",
        len(transactions),
        exchange.kind,
        skipped,
    )
    return transactions


def normalize_record(
    record: RawRecord,
    exchange: Exchange,
    *,
    usd_rates: UsdRateTable | None = None,
) -> Transaction:
    mapper = _MAPPERS.get(exchange.kind)
    if mapper is None:
        raise ValueError(f"No normalizer registered for {exchange!r}")
    try:
        return mapper(record, exchange, usd_rates)
    except NormalizationError as e:
        if e.record is None:
            e.record = record
        if e.exchange is None:
            e.exchange = str(exchange.kind)
        raise


# --------------------------------------------------------------------------- #
# Field helpers


def _require(record: RawRecord, key: str) -> Any:
    value = record.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MalformedRecord(f"Missing required field {key!r}")
    return value


def _mapping(record: RawRecord, key: str) -> RawRecord:
    value = _require(record, key)
    if not isinstance(value, Mapping):
        raise MalformedRecord(f"Field {key!r} must be an object, got {value!r}")
    return value


def _decimal(record: RawRecord, key: str) -> Decimal:
    value = _require(record, key)
    try:
        return to_dec_strict(value)
    except ValueError as e:
        raise MalformedRecord(f"Field {key!r} is not numeric: {value!r}") from e


def _optional_decimal(record: RawRecord, key: str) -> Decimal | None:
    if record.get(key) in (None, ""):
        return None
    return _decimal(record, key)


def _date(record: RawRecord, key: str) -> dt.date:
    value = _require(record, key)
    try:
        return parse_date(value)
    except (TypeError, ValueError) as e:
        raise MalformedRecord(f"Field {key!r} is not a date: {value!r}") from e


def _unix_date(record: RawRecord, key: str) -> dt.date:
    value = _require(record, key)
    try:
        return parse_unix_date(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedRecord(f"Field {key!r} is not a unix timestamp: {value!r}") from e


def _integer(record: RawRecord, key: str) -> int:
    value = _require(record, key)
    try:
        result = int(str(value).strip())
    except ValueError as e:
        raise MalformedRecord(f"Field {key!r} is not an integer: {value!r}") from e
    if result < 0:
        raise MalformedRecord(f"Field {key!r} must be non-negative, got {result}")
    return result


def _minor_units(quantity: Decimal, decimals: int) -> int:
    try:
        amount = to_minor_units(quantity.copy_abs(), decimals)
    except ValueError as e:
        raise MalformedRecord(str(e)) from e
    if amount == 0:
        raise MalformedRecord("Transaction amount is zero")
    return amount


def _cents(dollars: Decimal) -> int:
    try:
        return to_cents(dollars)
    except ValueError as e:
        raise MalformedRecord(str(e)) from e


def split_market(market: str) -> tuple[str, str]:
    """Split 'BASE-QUOTE' (or 'BASE/QUOTE') into its two currency symbols."""
    for sep in _MARKET_SEPARATORS:
        parts = market.split(sep)
        if len(parts) == 2 and all(p.strip() for p in parts):
            return parts[0].strip().upper(), parts[1].strip().upper()
    raise UnsupportedMarket(f"Cannot decompose market {market!r} into base/quote")


def _quote_usd_rate(
    currency: str, date: dt.date, usd_rates: UsdRateTable | None
) -> Decimal:
    if currency == REFERENCE_CURRENCY:
        return Decimal("1")
    rate = usd_rates.get_rate(date, currency) if usd_rates is not None else None
    if rate is None:
        raise MissingRateData(f"No USD rate for {currency} on or before {date}")
    return rate


def _usd_amount(quantity: Decimal, usd_rate: Decimal) -> int:
    return _cents(quantity.copy_abs() * usd_rate)


def _on_chain_side(record: RawRecord, accounts: tuple[str, ...]) -> Side | None:
    owned = {a.lower() for a in accounts}
    sender = str(record.get("from") or "").lower()
    receiver = str(record.get("to") or "").lower()
    incoming = receiver in owned
    outgoing = sender in owned
    if incoming and not outgoing:
        return Side.BUY
    if outgoing and not incoming:
        return Side.SELL
    return None


# --------------------------------------------------------------------------- #
# Per-source mappers


def _from_manual(
    record: RawRecord, exchange: ManualSource, usd_rates: UsdRateTable | None
) -> Transaction:
    txid = str(_require(record, "id"))
    market = str(_require(record, "market"))
    base, quote = split_market(market)
    token = str(_require(record, "token")).strip().upper()
    if token not in (base, quote):
        raise UnsupportedMarket(f"Token {token} is not part of market {market}")

    quantity = _decimal(record, "amount")
    decimals = record.get("decimals")
    if decimals is None:
        decimals = decimals_for(token)
    elif isinstance(decimals, bool) or not isinstance(decimals, int):
        raise MalformedRecord(f"Field 'decimals' must be an integer: {decimals!r}")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise MalformedRecord(f"Field 'decimals' out of range: {decimals}")

    if record.get("side") is not None:
        try:
            side = Side(str(record["side"]).strip().lower())
        except ValueError as e:
            raise MalformedRecord(f"Unknown side {record['side']!r}") from e
    else:
        side = Side.from_signed(quantity)

    created_at = _date(record, "created_at")
    rate = _decimal(record, "rate")
    usd_rate = _optional_decimal(record, "usd_rate")
    if usd_rate is None:
        usd_rate = rate * _quote_usd_rate(quote, created_at, usd_rates)

    usd_amount = _optional_decimal(record, "usd_amount")
    return Transaction(
        id=txid,
        market=market,
        token=token,
        side=side,
        amount=_minor_units(quantity, decimals),
        decimals=decimals,
        rate=rate,
        usd_rate=usd_rate,
        usd_amount=(
            _cents(usd_amount.copy_abs())
            if usd_amount is not None
            else _usd_amount(quantity, usd_rate)
        ),
        created_at=created_at,
        provider=str(exchange.kind),
    )


def _from_coinbase(
    record: RawRecord, exchange: CoinbaseExchange, usd_rates: UsdRateTable | None
) -> Transaction:
    txid = str(_require(record, "id"))
    traded = _mapping(record, "amount")
    native = _mapping(record, "native_amount")

    token = str(_require(traded, "currency")).strip().upper()
    quantity = _decimal(traded, "amount")
    decimals = decimals_for(token)
    amount = _minor_units(quantity, decimals)
    created_at = _date(record, "created_at")

    native_ccy = str(_require(native, "currency")).strip().upper()
    native_value = _decimal(native, "amount").copy_abs()
    usd_value = native_value * _quote_usd_rate(native_ccy, created_at, usd_rates)

    usd_rate = usd_value / quantity.copy_abs()
    return Transaction(
        id=txid,
        market=f"{token}-{REFERENCE_CURRENCY}",
        token=token,
        side=Side.from_signed(quantity),
        amount=amount,
        decimals=decimals,
        rate=Decimal("1"),
        usd_rate=usd_rate,
        usd_amount=_cents(usd_value),
        created_at=created_at,
        provider=str(exchange.kind),
    )


def _from_coinbase_pro(
    record: RawRecord, exchange: CoinbaseProExchange, usd_rates: UsdRateTable | None
) -> Transaction:
    details = _mapping(record, "details")
    product_id = str(_require(details, "product_id"))
    trade_id = str(_require(details, "trade_id"))
    base, quote = split_market(product_id)

    token = str(_require(record, "account_currency")).strip().upper()
    quantity = _decimal(record, "amount")
    decimals = decimals_for(token)
    amount = _minor_units(quantity, decimals)
    created_at = _date(record, "created_at")
    usd_rate = _optional_decimal(record, "usd_rate")

    if token == base:
        txid = trade_id
        rate = _decimal(record, "price")
        if usd_rate is None:
            usd_rate = rate * _quote_usd_rate(quote, created_at, usd_rates)
    elif token == quote:
        # The other leg of a crypto/crypto fill shares the trade id.
        txid = f"{trade_id}:{token}"
        rate = Decimal("1")
        if usd_rate is None:
            usd_rate = _quote_usd_rate(token, created_at, usd_rates)
    else:
        raise UnsupportedMarket(
            f"Account currency {token} is not part of product {product_id}"
        )

    return Transaction(
        id=txid,
        market=product_id,
        token=token,
        side=Side.from_signed(quantity),
        amount=amount,
        decimals=decimals,
        rate=rate,
        usd_rate=usd_rate,
        usd_amount=_usd_amount(quantity, usd_rate),
        created_at=created_at,
        provider=str(exchange.kind),
    )


def _from_chain_transfer(
    record: RawRecord,
    *,
    txid: str,
    token: str,
    amount: int,
    decimals: int,
    created_at: dt.date,
    accounts: tuple[str, ...],
    provider: str,
    usd_rates: UsdRateTable | None,
) -> Transaction:
    if amount == 0:
        raise MalformedRecord("Transaction amount is zero")
    side = _on_chain_side(record, accounts)
    if side is None:
        raise MalformedRecord(
            f"Transfer {txid} does not move value into or out of the configured accounts"
        )

    usd_rate = _optional_decimal(record, "usd_rate")
    if usd_rate is None:
        usd_rate = _quote_usd_rate(token, created_at, usd_rates)

    return Transaction(
        id=txid,
        market=f"{token}-{REFERENCE_CURRENCY}",
        token=token,
        side=side,
        amount=amount,
        decimals=decimals,
        rate=usd_rate,
        usd_rate=usd_rate,
        usd_amount=_usd_amount(from_minor_units(amount, decimals), usd_rate),
        created_at=created_at,
        provider=provider,
    )


def _from_etherscan(
    record: RawRecord, exchange: EtherscanExchange, usd_rates: UsdRateTable | None
) -> Transaction:
    tx_hash = str(_require(record, "hash"))
    log_index = record.get("logIndex")
    decimals = _integer(record, "tokenDecimal")
    if decimals > MAX_DECIMALS:
        raise MalformedRecord(f"Field 'tokenDecimal' out of range: {decimals}")
    return _from_chain_transfer(
        record,
        txid=f"{tx_hash}:{log_index}" if log_index not in (None, "") else tx_hash,
        token=str(_require(record, "tokenSymbol")).strip().upper(),
        amount=_integer(record, "value"),
        decimals=decimals,
        created_at=_unix_date(record, "timeStamp"),
        accounts=exchange.accounts,
        provider=str(exchange.kind),
        usd_rates=usd_rates,
    )


def _from_ethereum(
    record: RawRecord, exchange: EthereumExchange, usd_rates: UsdRateTable | None
) -> Transaction:
    return _from_chain_transfer(
        record,
        txid=str(_require(record, "hash")),
        token="ETH",
        amount=_integer(record, "value"),
        decimals=decimals_for("ETH"),
        created_at=_unix_date(record, "timestamp"),
        accounts=exchange.accounts,
        provider=str(exchange.kind),
        usd_rates=usd_rates,
    )


_MAPPERS: dict[ExchangeKind, RecordMapper] = {
    ExchangeKind.MANUAL: _from_manual,
    ExchangeKind.COINBASE: _from_coinbase,
    ExchangeKind.COINBASE_PRO: _from_coinbase_pro,
    ExchangeKind.ETHERSCAN: _from_etherscan,
    ExchangeKind.ETHEREUM: _from_ethereum,
}


# --------------------------------------------------------------------------- #
# Trade filters used by normalize()


def _always(record: RawRecord, exchange: Any) -> bool:
    return True


def _coinbase_is_trade(record: RawRecord, exchange: CoinbaseExchange) -> bool:
    traded = record.get("amount")
    if isinstance(traded, Mapping):
        return str(traded.get("currency", "")).upper() != REFERENCE_CURRENCY
    return True


def _coinbase_pro_is_trade(record: RawRecord, exchange: CoinbaseProExchange) -> bool:
    if record.get("type") != "match":
        return False
    return str(record.get("account_currency", "")).upper() != REFERENCE_CURRENCY


def _chain_is_trade(record: RawRecord, exchange: Any) -> bool:
    if str(record.get("value", "")).strip() in ("0", ""):
        return False
    return _on_chain_side(record, exchange.accounts) is not None


_TRADE_FILTERS: dict[ExchangeKind, Callable[[RawRecord, Any], bool]] = {
    ExchangeKind.COINBASE: _coinbase_is_trade,
    ExchangeKind.COINBASE_PRO: _coinbase_pro_is_trade,
    ExchangeKind.ETHERSCAN: _chain_is_trade,
    ExchangeKind.ETHEREUM: _chain_is_trade,
}
