from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tribute.exceptions import ConfigError
from tribute.model.exchanges import EthereumExchange, EtherscanExchange, Exchange
from tribute.model.transaction import Transaction

from .normalize import normalize

if TYPE_CHECKING:
    from tribute.model.config import Config

logger = logging.getLogger(__name__)

# Envelope keys used by exchange APIs around the record list.
_ENVELOPE_KEYS = ("data", "result", "transactions")


def load_records(path: str | Path) -> list[dict[str, Any]]:
    """Read a JSON dump of raw exchange records.

    The dump is either the bare list of records or the API response object
    wrapping it (``{"data": [...]}`` for Coinbase, ``{"result": [...]}`` for
    Etherscan).
    """
    try:
        with open(path, encoding="utf-8") as fp:
            payload = json.load(fp)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read exchange records from {path}: {e}", cause=e) from e

    if isinstance(payload, dict):
        for key in _ENVELOPE_KEYS:
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
    if not isinstance(payload, list):
        raise ConfigError(f"Exchange records in {path} must be a JSON list")
    return payload


def exchange_transactions(config: Config, exchange: Exchange) -> list[Transaction]:
    if isinstance(exchange, (EthereumExchange, EtherscanExchange)) and not exchange.accounts:
        logger.warning(
            "Specified %s configuration with no accounts; skipping", exchange.kind
        )
        return []
    if exchange.records is None:
        logger.warning(
            "No record dump configured for %s; skipping", exchange.kind
        )
        return []

    logger.info("Loading %s records from %s", exchange.kind, exchange.records)
    return normalize(
        load_records(exchange.records), exchange, usd_rates=config.usd_rates
    )


def collect_sources(config: Config) -> list[list[Transaction]]:
    """Return the manual transactions followed by one list per exchange."""
    sources: list[list[Transaction]] = [list(config.transactions)]
    for exchange in config.exchanges:
        sources.append(exchange_transactions(config, exchange))
    return sources
