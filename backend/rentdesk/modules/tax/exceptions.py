"""
Errors raised by period resolution, aggregation and reconciliation.
"""

from typing import List, Optional, Union


class TaxSummaryError(Exception):
    """Base class for tax summary errors."""


class MalformedPeriodLabel(TaxSummaryError):
    """A payment period label could not be parsed into (month, year)."""

    def __init__(self, label: Optional[str], reason: str):
        self.label = label
        self.reason = reason
        super().__init__(f"Malformed period label {label!r}: {reason}")


class InvalidTaxRate(TaxSummaryError):
    """Tax rate is negative, non-finite or not a number."""

    def __init__(self, value):
        self.value = value
        super().__init__(
            f"Invalid tax rate {value!r}: must be a non-negative finite percentage"
        )


class ReconciliationWriteFailure(TaxSummaryError):
    """The summary upsert failed at the storage layer."""

    def __init__(self, period, original: Union[Exception, str]):
        self.period = period
        self.original = original
        super().__init__(f"Failed to write tax summary for {period}: {original}")


class AggregationPartialFailure(TaxSummaryError):
    """
    Some facts in an aggregation batch could not be resolved to a period.

    Never raised by the aggregator itself; it is returned alongside the
    totals so callers can report the skipped records.
    """

    def __init__(self, period, skipped: List):
        self.period = period
        self.skipped = list(skipped)
        ids = ", ".join(f"{s.kind}#{s.fact_id}" for s in self.skipped)
        super().__init__(
            f"{len(self.skipped)} fact(s) skipped while aggregating {period}: {ids}"
        )
