"""
Load ``config.toml`` once into an immutable Config.

Shape (exchanges are tagged tables, one tag per entry)::

    tax_year = 2018
    usd_rates = "rates.csv"
    accounts = ["0xffffffffffffffffffffffffffffffffffffffff"]
    exchanges = [
        { Coinbase = { key = "k", secret = "s", records = "coinbase.json" } },
        { Etherscan = { key = "k", records = "etherscan.json" } },
    ]

    [[transactions]]
    id = "0x1"
    market = "BTC-USD"
    token = "BTC"
    amount = 1255.66
    rate = 0.387690
    usd_rate = 0.387690
    usd_amount = 848.85
    created_at = 1997-02-14

Relative paths resolve against the directory holding the config file.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import tomllib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tribute.exceptions import ConfigError, NormalizationError
from tribute.ingest.normalize import normalize
from tribute.ingest.rates import UsdRateTable

from .exchanges import EXCHANGE_TAGS, Exchange, ManualSource
from .transaction import Transaction

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.toml"

ACCOUNT_RE = re.compile(r"\A0x[0-9a-fA-F]{40}\Z")


@dataclass(frozen=True)
class Config:
    tax_year: int
    exchanges: tuple[Exchange, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    accounts: tuple[str, ...] = ()
    usd_rates: UsdRateTable | None = None
    report_format: str | None = None


def load_config(path: str | Path | None = None) -> Config:
    """Load the configuration from a file, or from ``config.toml`` in a directory.

    With no path, ``./config.toml`` is used.
    """
    config_path = Path(path) if path is not None else Path(".")
    if config_path.is_dir():
        config_path = config_path / CONFIG_FILENAME

    try:
        with open(config_path, "rb") as fp:
            data = tomllib.load(fp)
    except OSError as e:
        raise ConfigError(f"I/O error reading {config_path}: {e}", cause=e) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"TOML error in {config_path}: {e}", cause=e) from e

    logger.debug("Loaded configuration from %s", config_path)
    return parse_config(data, root=config_path.parent)


def parse_config(data: Mapping[str, Any], *, root: Path = Path(".")) -> Config:
    tax_year = data.get("tax_year")
    if isinstance(tax_year, bool) or not isinstance(tax_year, int):
        raise ConfigError(f"'tax_year' must be an integer year, got {tax_year!r}")

    accounts = _parse_accounts(data.get("accounts", []), "accounts")
    usd_rates = _load_usd_rates(data.get("usd_rates"), root)

    exchanges = tuple(
        _parse_exchange(entry, index, accounts=accounts, root=root)
        for index, entry in enumerate(_sequence(data.get("exchanges", []), "exchanges"))
    )

    records = _sequence(data.get("transactions", []), "transactions")
    try:
        transactions = tuple(normalize(records, ManualSource(), usd_rates=usd_rates))
    except NormalizationError as e:
        txid = e.record.get("id") if isinstance(e.record, Mapping) else None
        raise ConfigError(
            f"Invalid manual transaction {txid!r}: {e}", cause=e
        ) from e

    report_format = data.get("report_format")
    if report_format is not None and not isinstance(report_format, str):
        raise ConfigError(f"'report_format' must be a string, got {report_format!r}")

    return Config(
        tax_year=tax_year,
        exchanges=exchanges,
        transactions=transactions,
        accounts=accounts,
        usd_rates=usd_rates,
        report_format=report_format.lower() if report_format else None,
    )


def _sequence(value: Any, name: str) -> Sequence[Any]:
    if not isinstance(value, list):
        raise ConfigError(f"'{name}' must be an array, got {value!r}")
    return value


def _parse_accounts(value: Any, name: str) -> tuple[str, ...]:
    accounts = []
    for account in _sequence(value, name):
        if not isinstance(account, str) or not ACCOUNT_RE.match(account):
            raise ConfigError(f"Invalid account address in '{name}': {account!r}")
        accounts.append(account.lower())
    return tuple(accounts)


def _load_usd_rates(value: Any, root: Path) -> UsdRateTable | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"'usd_rates' must be a path, got {value!r}")
    path = root / value
    try:
        table = UsdRateTable.from_csv(path)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot load USD rates from {path}: {e}", cause=e) from e
    logger.debug("Loaded USD rates for %d currencies", len(table.data))
    return table


def _parse_exchange(
    entry: Any, index: int, *, accounts: tuple[str, ...], root: Path
) -> Exchange:
    if not isinstance(entry, Mapping) or len(entry) != 1:
        raise ConfigError(
            f"exchanges[{index}] must be a table with a single exchange tag"
        )
    (tag, settings), = entry.items()
    variant = EXCHANGE_TAGS.get(tag)
    if variant is None:
        raise ConfigError(
            f"exchanges[{index}]: unknown exchange {tag!r}; "
            f"expected one of {', '.join(sorted(EXCHANGE_TAGS))}"
        )
    if not isinstance(settings, Mapping):
        raise ConfigError(f"exchanges[{index}]: {tag} settings must be a table")

    fields = {f.name: f for f in dataclasses.fields(variant)}
    unknown = set(settings) - set(fields)
    if unknown:
        raise ConfigError(f"exchanges[{index}]: unknown {tag} keys {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    for name, f in fields.items():
        if name == "accounts":
            own = settings.get("accounts")
            kwargs[name] = (
                _parse_accounts(own, f"exchanges[{index}].accounts")
                if own is not None
                else accounts
            )
        elif name == "records":
            records = settings.get("records")
            if records is not None and not isinstance(records, str):
                raise ConfigError(f"exchanges[{index}]: 'records' must be a path")
            kwargs[name] = root / records if records else None
        elif name in settings:
            if not isinstance(settings[name], str):
                raise ConfigError(f"exchanges[{index}]: {tag}.{name} must be a string")
            kwargs[name] = settings[name]
        elif f.default is dataclasses.MISSING:
            raise ConfigError(f"exchanges[{index}]: {tag} is missing {name!r}")
    return variant(**kwargs)
