"""vestledger: linear release of fixed allocations from ledger custody."""

__version__ = "0.1.0"
