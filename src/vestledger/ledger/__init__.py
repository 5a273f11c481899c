"""Ledger package.

Public API:
- AllocationLedger: register allocations, release vested units, query state.
- AllocationRecord / ReleaseRow: per-recipient record and release history row.
- replay_records: rebuild records from an event history.
- SQLiteJournal: append-only event journal.
"""

from .ledger import AllocationLedger  # re-export
from .model import AllocationRecord, ReleaseRow
from .errors import (
    AllocationExists,
    ConfigurationError,
    InvalidAllocation,
    InvalidAmount,
    InvalidDuration,
    InvalidRecipient,
    InvalidStartTime,
    LedgerError,
    NoAllocation,
    NothingReleasable,
    ReplayError,
    UnauthorizedCaller,
)
from .replay import replay_records
from .store import SQLiteJournal
