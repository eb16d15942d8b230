from .normalize import normalize, normalize_record, split_market
from .rates import UsdRateTable
from .sources import collect_sources, exchange_transactions, load_records

__all__ = [
    "normalize",
    "normalize_record",
    "split_market",
    "UsdRateTable",
    "collect_sources",
    "exchange_transactions",
    "load_records",
]
