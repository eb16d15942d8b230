from .fifo import FifoMatcher, compute_gains, validate_ledger_order
from .fifo_domain import GainRecord, Holding, Lot, LotPortion
from .holding import Term, holding_term
from .positions import PositionBook
from .report_builder import ReportBuilder, SaleRow
from .report_sink import (
    REPORT_FORMATS,
    ExcelReportSink,
    Form8949CsvSink,
    ReportSink,
    TurboTaxCsvSink,
    csv_sink_for,
)

__all__ = [
    "FifoMatcher",
    "compute_gains",
    "validate_ledger_order",
    "GainRecord",
    "Holding",
    "Lot",
    "LotPortion",
    "Term",
    "holding_term",
    "PositionBook",
    "ReportBuilder",
    "SaleRow",
    "REPORT_FORMATS",
    "ExcelReportSink",
    "Form8949CsvSink",
    "ReportSink",
    "TurboTaxCsvSink",
    "csv_sink_for",
]
