from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Protocol

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from tribute.exceptions import SerializationError
from tribute.model.tokens import from_cents

from .money import format_quantity, format_usd
from .report_builder import ReportBuilder

REPORT_FORMATS = ("irs8949", "turbotax", "xlsx")

FORM_8949_HEADER = [
    "Description of property",
    "Token",
    "Amount",
    "Date acquired",
    "Date sold or disposed of",
    "Proceeds",
    "Cost basis",
    "Gain or (loss)",
]

TURBOTAX_HEADER = [
    "Currency Name",
    "Purchase Date",
    "Cost Basis",
    "Date sold",
    "Proceeds",
]


class ReportSink(Protocol):
    def write(self, report: ReportBuilder) -> None: ...


@dataclass
class Form8949CsvSink:
    """IRS Form 8949 short-term lines, followed by a Total row."""

    fp: IO[str]

    def write(self, report: ReportBuilder) -> None:
        try:
            writer = csv.writer(self.fp, lineterminator="\n")
            writer.writerow(FORM_8949_HEADER)
            for row in report.rows:
                writer.writerow(
                    [
                        row.description,
                        row.token,
                        format_quantity(row.quantity),
                        row.acquired_on.strftime("%m/%d/%y"),
                        row.disposed_on.strftime("%m/%d/%y"),
                        format_usd(row.proceeds),
                        format_usd(row.cost_basis),
                        format_usd(row.gain),
                    ]
                )
            writer.writerow(
                [
                    "Total",
                    "",
                    "",
                    "",
                    "",
                    format_usd(report.total_proceeds),
                    format_usd(report.total_cost_basis),
                    format_usd(report.total_gain),
                ]
            )
        except (OSError, csv.Error) as e:
            raise SerializationError(f"Failed to write Form 8949 CSV: {e}", cause=e) from e


@dataclass
class TurboTaxCsvSink:
    """TurboTax cryptocurrency import layout (plain numbers, MM/DD/YYYY)."""

    fp: IO[str]

    def write(self, report: ReportBuilder) -> None:
        try:
            writer = csv.writer(self.fp, lineterminator="\n")
            writer.writerow(TURBOTAX_HEADER)
            for row in report.rows:
                writer.writerow(
                    [
                        row.token,
                        row.acquired_on.strftime("%m/%d/%Y"),
                        f"{from_cents(row.cost_basis):.2f}",
                        row.disposed_on.strftime("%m/%d/%Y"),
                        f"{from_cents(row.proceeds):.2f}",
                    ]
                )
        except (OSError, csv.Error) as e:
            raise SerializationError(f"Failed to write TurboTax CSV: {e}", cause=e) from e


@dataclass
class ExcelReportSink:
    out_path: Path

    def write(self, report: ReportBuilder) -> Path:
        out_path = Path(self.out_path)
        wb = Workbook()

        # Remove the default sheet
        ws_default = wb.active
        wb.remove(ws_default)

        date_fmt = "YYYY-MM-DD"
        qty_fmt = "0.##################"
        money_fmt = "$#,##0.00;($#,##0.00)"

        def dollars(cents: int) -> float:
            return float(from_cents(cents))

        # Summary sheet (totals)
        ws = wb.create_sheet(title="Summary")
        ws.append(["Metric", "Amount"])
        ws.append(["Tax Year", report.year])
        for label, cents in (
            ("Total Proceeds (USD)", report.total_proceeds),
            ("Total Cost Basis (USD)", report.total_cost_basis),
            ("Total Short-Term Gain or (Loss) (USD)", report.total_gain),
        ):
            ws.append([label, dollars(cents)])
            ws.cell(row=ws.max_row, column=2).number_format = money_fmt
        for token, totals in sorted(report.token_totals.items()):
            ws.append([f"Short-Term Gain or (Loss) {token} (USD)", dollars(totals["gain"])])
            ws.cell(row=ws.max_row, column=2).number_format = money_fmt

        # Form 8949 lines
        ws = wb.create_sheet(title="Short-Term Sales (8949)")
        ws.append(FORM_8949_HEADER + ["Disposal ID", "Lot ID"])
        for row in report.rows:
            ws.append(
                [
                    row.description,
                    row.token,
                    float(row.quantity),
                    row.acquired_on,
                    row.disposed_on,
                    dollars(row.proceeds),
                    dollars(row.cost_basis),
                    dollars(row.gain),
                    row.disposal_id,
                    row.lot_id,
                ]
            )
            r = ws.max_row
            ws.cell(row=r, column=3).number_format = qty_fmt
            ws.cell(row=r, column=4).number_format = date_fmt
            ws.cell(row=r, column=5).number_format = date_fmt
            for col in (6, 7, 8):
                ws.cell(row=r, column=col).number_format = money_fmt

        # Remaining open lots
        ws = wb.create_sheet(title="Holdings")
        ws.append(["Token", "Amount", "Open Lots", "Cost Basis (USD)"])
        for h in report.holdings:
            ws.append([h.token, float(h.quantity), h.lots, dollars(h.cost_basis)])
            r = ws.max_row
            ws.cell(row=r, column=2).number_format = qty_fmt
            ws.cell(row=r, column=4).number_format = money_fmt

        def autosize(sheet, max_width: int = 60, min_width: int = 10) -> None:
            for col in range(1, sheet.max_column + 1):
                max_len = 0
                for row in range(1, sheet.max_row + 1):
                    v = sheet.cell(row=row, column=col).value
                    if v is None:
                        continue
                    s = v.strftime("%Y-%m-%d") if hasattr(v, "strftime") else str(v)
                    max_len = max(max_len, len(s))
                width = min(max_width, max(min_width, max_len + 2))
                sheet.column_dimensions[get_column_letter(col)].width = width

        for _ws in wb.worksheets:
            autosize(_ws)

        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(out_path)
        except OSError as e:
            raise SerializationError(f"Failed to save workbook {out_path}: {e}", cause=e) from e
        return out_path


def csv_sink_for(fmt: str, fp: IO[str]) -> ReportSink:
    """Return the CSV sink for ``fmt``; ``xlsx`` needs a path, not a stream."""
    if fmt == "irs8949":
        return Form8949CsvSink(fp)
    if fmt == "turbotax":
        return TurboTaxCsvSink(fp)
    raise ValueError(f"no CSV sink for report format {fmt!r}")
