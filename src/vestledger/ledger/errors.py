"""Ledger error taxonomy.

Every class carries a stable `reason` used for metrics labels and logs. None
of these leave partial state behind: the failing operation is a no-op.
"""
from __future__ import annotations


class LedgerError(Exception):
    reason = "ledger_error"


class ConfigurationError(LedgerError):
    reason = "null_asset"


class UnauthorizedCaller(LedgerError):
    reason = "unauthorized"

    def __init__(self, caller):
        super().__init__(f"{caller!r} may not register allocations")
        self.caller = caller


class InvalidAllocation(LedgerError):
    reason = "invalid_allocation"


class InvalidRecipient(InvalidAllocation):
    reason = "null_recipient"


class InvalidAmount(InvalidAllocation):
    reason = "zero_amount"


class InvalidDuration(InvalidAllocation):
    reason = "zero_duration"


class InvalidStartTime(InvalidAllocation):
    reason = "negative_start"


class AllocationExists(LedgerError):
    reason = "already_registered"

    def __init__(self, recipient: str):
        super().__init__(f"allocation already registered for {recipient}")
        self.recipient = recipient


class NoAllocation(LedgerError):
    reason = "no_allocation"

    def __init__(self, recipient):
        super().__init__(f"no allocation for {recipient!r}")
        self.recipient = recipient


class NothingReleasable(LedgerError):
    reason = "nothing_releasable"

    def __init__(self, recipient: str):
        super().__init__(f"nothing releasable for {recipient}")
        self.recipient = recipient


class ReplayError(LedgerError):
    reason = "invalid_history"
