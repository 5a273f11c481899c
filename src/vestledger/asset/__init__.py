"""Asset package.

Public API:
- PaperAsset: in-memory fungible asset with balances, allowances and mint.
- Custody: ledger-bound move-in/move-out adapter over an asset.
- AssetError, InsufficientBalance, InsufficientAllowance.
"""

from .paper import (  # re-export
    AssetError,
    AssetTransfer,
    Custody,
    InsufficientAllowance,
    InsufficientBalance,
    PaperAsset,
)
