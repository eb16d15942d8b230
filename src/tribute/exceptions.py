"""Error taxonomy for the ledger pipeline.

Every error is raised synchronously and carries the record, transaction or
lot context that triggered it so the CLI can surface it verbatim.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


class TributeError(Exception):
    """Base exception for ledger, gain and report errors."""

    pass


class ConfigError(TributeError):
    """Raised when the configuration file cannot be read or is invalid."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class NormalizationError(TributeError):
    """Base for failures mapping a raw exchange record to a Transaction."""

    def __init__(
        self,
        message: str,
        *,
        record: Mapping[str, Any] | None = None,
        exchange: str | None = None,
    ) -> None:
        super().__init__(message)
        self.record = record
        self.exchange = exchange


class MalformedRecord(NormalizationError):
    """A required field (amount, rate, timestamp, ...) is missing or invalid."""

    pass


class UnsupportedMarket(NormalizationError):
    """The trading pair cannot be decomposed into token and quote currency."""

    pass


class MissingRateData(NormalizationError):
    """No USD rate can be derived for the record."""

    pass


class DuplicateTransactionId(TributeError):
    """The same transaction id appears more than once across ledger sources."""

    def __init__(self, transaction_id: str, *, sources: Sequence[int]) -> None:
        super().__init__(
            f"Duplicate transaction id {transaction_id!r} in sources "
            f"{', '.join(str(s) for s in sources)}"
        )
        self.transaction_id = transaction_id
        self.sources = tuple(sources)


class GainComputationError(TributeError):
    """Base for fatal errors raised by the cost-basis engine."""

    def __init__(self, message: str, *, transaction: Any = None) -> None:
        super().__init__(message)
        self.transaction = transaction


class InsufficientLots(GainComputationError):
    """A disposal exceeds the open acquisition lots for its token."""

    def __init__(
        self, message: str, *, token: str, transaction: Any, shortfall: int
    ) -> None:
        super().__init__(message, transaction=transaction)
        self.token = token
        self.shortfall = shortfall


class GainOverflowError(GainComputationError):
    """A cents figure left the signed 64-bit range."""

    pass


class SerializationError(TributeError):
    """The external writer failed while rendering an export or report."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause
