from .exchanges import (
    CoinbaseExchange,
    CoinbaseProExchange,
    EthereumExchange,
    EtherscanExchange,
    Exchange,
    ExchangeKind,
    ManualSource,
)
from .transaction import Side, Transaction

__all__ = [
    "CoinbaseExchange",
    "CoinbaseProExchange",
    "EthereumExchange",
    "EtherscanExchange",
    "Exchange",
    "ExchangeKind",
    "ManualSource",
    "Side",
    "Transaction",
]
