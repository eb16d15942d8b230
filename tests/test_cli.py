import csv
import io
import json
import logging

import pytest
from openpyxl import load_workbook

from tribute.cmd.cli import build_argparser, main
from tribute.ledger import EXPORT_HEADER

CONFIG = """
tax_year = 2018
exchanges = [
    { Coinbase = { key = "k", secret = "s", records = "coinbase.json" } },
]

[[transactions]]
id = "m1"
market = "BTC-USD"
token = "BTC"
amount = 1
rate = 1000
usd_rate = 1000
usd_amount = 1000
created_at = 2018-01-01
"""

COINBASE = {
    "data": [
        {
            "id": "cb1",
            "amount": {"amount": "-0.5", "currency": "BTC"},
            "native_amount": {"amount": "-800.00", "currency": "USD"},
            "created_at": "2018-03-01T15:00:00Z",
        },
        {
            "id": "cash",
            "amount": {"amount": "800.00", "currency": "USD"},
            "native_amount": {"amount": "800.00", "currency": "USD"},
            "created_at": "2018-03-01T15:00:00Z",
        },
    ]
}


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "config.toml").write_text(CONFIG, encoding="utf-8")
    (tmp_path / "coinbase.json").write_text(json.dumps(COINBASE), encoding="utf-8")
    return tmp_path


def _rows(text):
    return list(csv.reader(io.StringIO(text)))


def test_export_writes_merged_ledger_to_stdout(config_dir, capsys):
    main(["--config", str(config_dir), "export"])

    rows = _rows(capsys.readouterr().out)
    assert rows[0] == EXPORT_HEADER
    assert [r[0] for r in rows[1:]] == ["m1", "cb1"]
    assert rows[2][3] == "sell"
    assert rows[2][4] == "0.50000000"
    assert rows[2][10] == "coinbase"


def test_export_then_report(config_dir, capsys):
    ledger = config_dir / "ledger.csv"
    report = config_dir / "report.csv"
    main(["--config", str(config_dir), "export", "--output", str(ledger)])
    main(
        [
            "--config",
            str(config_dir),
            "report",
            "--ledger",
            str(ledger),
            "--output",
            str(report),
        ]
    )

    rows = _rows(report.read_text(encoding="utf-8"))
    assert rows[1] == [
        "0.5 BTC sold via BTC-USD pair",
        "BTC",
        "0.5",
        "01/01/18",
        "03/01/18",
        "$800.00",
        "$500.00",
        "$300.00",
    ]
    assert rows[2][0] == "Total"
    assert capsys.readouterr().out == ""


def test_report_reads_ledger_from_stdin(config_dir, capsys, monkeypatch):
    main(["--config", str(config_dir), "export"])
    exported = capsys.readouterr().out

    monkeypatch.setattr("sys.stdin", io.StringIO(exported))
    main(["--config", str(config_dir), "report", "--format", "turbotax"])

    rows = _rows(capsys.readouterr().out)
    assert rows[1] == ["BTC", "01/01/2018", "500.00", "03/01/2018", "800.00"]


def test_report_other_year_has_only_total(config_dir, capsys, monkeypatch):
    main(["--config", str(config_dir), "export"])
    monkeypatch.setattr("sys.stdin", io.StringIO(capsys.readouterr().out))

    main(["--config", str(config_dir), "report", "--year", "2017"])
    rows = _rows(capsys.readouterr().out)
    assert rows[1:] == [["Total", "", "", "", "", "$0.00", "$0.00", "$0.00"]]


def test_report_xlsx(config_dir):
    ledger = config_dir / "ledger.csv"
    out = config_dir / "gains.xlsx"
    main(["--config", str(config_dir), "export", "--output", str(ledger)])
    main(
        [
            "report",
            "--year",
            "2018",
            "--format",
            "xlsx",
            "--ledger",
            str(ledger),
            "--output",
            str(out),
        ]
    )
    wb = load_workbook(out)
    assert "Short-Term Sales (8949)" in wb.sheetnames


def test_report_without_lots_exits_2_and_writes_nothing(tmp_path, caplog):
    ledger = tmp_path / "ledger.csv"
    ledger.write_text(
        ",".join(EXPORT_HEADER)
        + "\ns1,BTC-USD,BTC,sell,1,8,1000,1000,1000.00,2018-01-05,manual\n",
        encoding="utf-8",
    )
    out = tmp_path / "report.csv"
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "report",
                "--year",
                "2018",
                "--format",
                "irs8949",
                "--ledger",
                str(ledger),
                "--output",
                str(out),
            ]
        )
    assert excinfo.value.code == 2
    assert not out.exists()
    assert "InsufficientLots" in caplog.text


def test_export_with_bad_config_exits_2(tmp_path, caplog):
    (tmp_path / "config.toml").write_text(
        'tax_year = 2018\nexchanges = [{ Kraken = { key = "k" } }]\n', encoding="utf-8"
    )
    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(tmp_path), "export"])
    assert excinfo.value.code == 2
    assert "ConfigError" in caplog.text


def test_argparser_rejects_unknown_format():
    with pytest.raises(SystemExit):
        build_argparser().parse_args(["report", "--format", "pdf"])


def test_report_with_zero_amount_row_exits_2(tmp_path, caplog):
    ledger = tmp_path / "ledger.csv"
    ledger.write_text(
        ",".join(EXPORT_HEADER)
        + "\nz,BTC-USD,BTC,buy,0.00000000,8,1000,1000,0.00,2018-01-01,manual\n",
        encoding="utf-8",
    )
    out = tmp_path / "report.csv"
    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "report",
                "--year",
                "2018",
                "--ledger",
                str(ledger),
                "--output",
                str(out),
            ]
        )
    assert excinfo.value.code == 2
    assert not out.exists()
    assert "MalformedRecord" in caplog.text
