from .csv_io import EXPORT_HEADER, read_ledger, write_ledger
from .merge import merge

__all__ = ["EXPORT_HEADER", "merge", "read_ledger", "write_ledger"]
