from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import ClassVar


class ExchangeKind(StrEnum):
    MANUAL = "manual"
    COINBASE = "coinbase"
    COINBASE_PRO = "coinbase-pro"
    ETHEREUM = "ethereum"
    ETHERSCAN = "etherscan"


@dataclass(frozen=True)
class CoinbaseExchange:
    kind: ClassVar[ExchangeKind] = ExchangeKind.COINBASE

    key: str
    secret: str = field(repr=False)
    records: Path | None = None


@dataclass(frozen=True)
class CoinbaseProExchange:
    kind: ClassVar[ExchangeKind] = ExchangeKind.COINBASE_PRO

    key: str
    secret: str = field(repr=False)
    passphrase: str = field(repr=False)
    records: Path | None = None


@dataclass(frozen=True)
class EthereumExchange:
    kind: ClassVar[ExchangeKind] = ExchangeKind.ETHEREUM

    url: str
    accounts: tuple[str, ...] = ()
    records: Path | None = None


@dataclass(frozen=True)
class EtherscanExchange:
    kind: ClassVar[ExchangeKind] = ExchangeKind.ETHERSCAN

    key: str = field(repr=False)
    accounts: tuple[str, ...] = ()
    records: Path | None = None


@dataclass(frozen=True)
class ManualSource:
    """Transactions typed into the configuration file by the user."""

    kind: ClassVar[ExchangeKind] = ExchangeKind.MANUAL


Exchange = (
    CoinbaseExchange
    | CoinbaseProExchange
    | EthereumExchange
    | EtherscanExchange
    | ManualSource
)

# Config table tag -> variant
EXCHANGE_TAGS: dict[str, type] = {
    "Coinbase": CoinbaseExchange,
    "CoinbasePro": CoinbaseProExchange,
    "Ethereum": EthereumExchange,
    "Etherscan": EtherscanExchange,
}
