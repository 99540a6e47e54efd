"""Exceptions raised by the fee ledger.

Both errors derive from ``ValueError`` so callers that only care about bad
input can catch that, while the CLI and web layers can tell a missing identity
apart from a broken record.
"""

from __future__ import annotations


class LedgerError(ValueError):
    """Base class for all ledger input errors."""


class InvalidInput(LedgerError):
    """A required reference (student or class) is missing from the snapshot."""


class MalformedRecord(LedgerError):
    """A source record carries a value the ledger cannot use.

    ``record`` names the offending record, e.g. ``"payments[2]"``.
    """

    def __init__(self, record: str, message: str) -> None:
        super().__init__(f"{record}: {message}")
        self.record = record
