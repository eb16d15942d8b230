"""
Crypto capital-gains ledger: merge exchange and manual transactions, then
report short-term gains for a tax year.

This module acts as the CLI orchestrator, delegating responsibilities to:
- Configuration: tribute.model.config
- Normalization of exchange records: tribute.ingest
- Merge and CSV export: tribute.ledger
- FIFO matching and report output: tribute.reporting

Usage
-----
    # Merge every configured source into one ledger CSV
    tribute --config ~/.config/tribute export --output ledger.csv

    # Form 8949 short-term lines for the configured tax year
    tribute --config ~/.config/tribute export | tribute report

    # TurboTax import file, or a workbook, for an explicit year
    tribute report --year 2018 --format turbotax --ledger ledger.csv
    tribute report --year 2018 --format xlsx --ledger ledger.csv --output gains.xlsx

Config (config.toml in --config, default the working directory)::

    tax_year = 2018
    usd_rates = "rates.csv"
    exchanges = [{ Coinbase = { key = "k", secret = "s", records = "cb.json" } }]
"""

from __future__ import annotations

import argparse
import io
import logging
import sys
from decimal import ROUND_HALF_UP, getcontext
from pathlib import Path

from tribute.exceptions import ConfigError, TributeError
from tribute.ingest import collect_sources
from tribute.ledger import merge, read_ledger, write_ledger
from tribute.logging import configure_logging
from tribute.model.config import Config, load_config
from tribute.reporting import (
    REPORT_FORMATS,
    ExcelReportSink,
    FifoMatcher,
    ReportBuilder,
    compute_gains,
    csv_sink_for,
)

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "irs8949"

# Monetary precision and rounding
getcontext().prec = 28
getcontext().rounding = ROUND_HALF_UP


def _emit(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8", newline="")
    else:
        sys.stdout.write(text)
        sys.stdout.flush()


def run_export(args: argparse.Namespace, config: Config) -> None:
    sources = collect_sources(config)
    logger.info(
        "Collected %d source(s): %s",
        len(sources),
        ", ".join(str(len(s)) for s in sources),
    )
    ledger = merge(sources)

    # Render to memory first so a failure never leaves a partial file behind.
    buf = io.StringIO()
    count = write_ledger(ledger, buf)
    try:
        _emit(buf.getvalue(), args.output)
    except OSError as e:
        raise TributeError(f"Cannot write ledger to {args.output}: {e}") from e
    logger.info("Exported %d transaction(s)", count)


def run_report(args: argparse.Namespace, config: Config | None) -> None:
    year = args.year if args.year is not None else config.tax_year
    fmt = args.format or (config.report_format if config else None) or DEFAULT_FORMAT
    if fmt not in REPORT_FORMATS:
        raise TributeError(
            f"Unknown report format {fmt!r}; expected one of {', '.join(REPORT_FORMATS)}"
        )

    if args.ledger and args.ledger != "-":
        try:
            with open(args.ledger, encoding="utf-8", newline="") as fp:
                transactions = read_ledger(fp)
        except OSError as e:
            raise TributeError(f"Cannot read ledger {args.ledger}: {e}") from e
    else:
        transactions = read_ledger(sys.stdin)

    # Later transactions cannot change the lots consumed up to the year end.
    ledger = merge([[tx for tx in transactions if tx.created_at.year <= year]])

    matcher = FifoMatcher()
    records = compute_gains(ledger, matcher=matcher)

    rb = ReportBuilder(year=year)
    for record in records:
        rb.add_gain(record)
    rb.set_holdings(matcher.holdings())
    rb.log_summary(logger)

    if fmt == "xlsx":
        out_path = Path(args.output) if args.output else Path(f"report_{year}.xlsx")
        out_path = ExcelReportSink(out_path=out_path).write(rb)
        logger.info("Wrote workbook to %s", out_path)
        return

    buf = io.StringIO()
    csv_sink_for(fmt, buf).write(rb)
    try:
        _emit(buf.getvalue(), args.output)
    except OSError as e:
        raise TributeError(f"Cannot write report to {args.output}: {e}") from e


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tribute",
        description="Crypto capital gains ledger and US tax report",
    )
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Directory holding config.toml (or the file itself); default: cwd",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity: -v (INFO), -vv (DEBUG)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    export = sub.add_parser(
        "export", help="Merge all configured sources and write the ledger CSV"
    )
    export.add_argument(
        "--output", type=str, default=None, help="Output CSV path (default: stdout)"
    )

    report = sub.add_parser(
        "report", help="Compute FIFO gains from a ledger CSV and write a tax report"
    )
    report.add_argument(
        "--year",
        type=int,
        default=None,
        help="Tax year to report (default: tax_year from the config)",
    )
    report.add_argument(
        "--format",
        type=str.lower,
        default=None,
        choices=list(REPORT_FORMATS),
        help="Report format (default: report_format from the config, else irs8949)",
    )
    report.add_argument(
        "--ledger",
        type=str,
        default=None,
        help="Ledger CSV produced by 'export' (default: stdin)",
    )
    report.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output path (default: stdout; report_<year>.xlsx for xlsx)",
    )
    return p


def main(argv: list[str] | None = None) -> None:
    parser = build_argparser()
    args = parser.parse_args(argv)

    # Configure logging based on verbosity
    verbosity_map = {
        0: logging.WARNING,  # Default: quiet
        1: logging.INFO,  # -v: informational
        2: logging.DEBUG,  # -vv and above: debug
    }
    level = verbosity_map.get(min(args.verbose, 2), logging.WARNING)
    configure_logging(level=level)

    try:
        if args.command == "export":
            run_export(args, load_config(args.config))
        else:
            config = None
            if args.year is None or args.format is None:
                try:
                    config = load_config(args.config)
                except ConfigError:
                    # Only the tax year is mandatory; the format has a default.
                    if args.year is None:
                        raise
                    logger.debug("No usable config; using default report format")
            run_report(args, config)
    except TributeError as e:
        logger.error("%s: %s", type(e).__name__, e)
        raise SystemExit(2) from e


if __name__ == "__main__":
    main()
