"""In-memory fungible asset and the ledger's custody adapter.

`PaperAsset` keeps balances and spending allowances per identity, the way a
fungible-token contract does, so the ledger can be exercised without a chain.
`Custody` binds an asset to the ledger's own identity and exposes the two
moves the ledger needs: pull an authorized amount in, push an amount out.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Protocol, Tuple


logger = logging.getLogger(__name__)


class AssetError(Exception):
    reason = "asset_error"


class InsufficientBalance(AssetError):
    reason = "insufficient_balance"

    def __init__(self, holder: str, needed: int, available: int):
        super().__init__(f"{holder} holds {available}, needs {needed}")
        self.holder = holder
        self.needed = needed
        self.available = available


class InsufficientAllowance(AssetError):
    reason = "insufficient_allowance"

    def __init__(self, owner: str, spender: str, needed: int, allowed: int):
        super().__init__(f"{spender} may move {allowed} from {owner}, needs {needed}")
        self.owner = owner
        self.spender = spender
        self.needed = needed
        self.allowed = allowed


class AssetTransfer(Protocol):
    """Transfer primitive consumed by the ledger."""

    @property
    def asset_id(self) -> str: ...

    @property
    def holder(self) -> str: ...

    def move_in(self, source: str, amount: int) -> None: ...

    def move_out(self, target: str, amount: int) -> None: ...

    def held(self) -> int: ...


def _check_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"amount must be int, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError("amount must be non-negative")
    return amount


class PaperAsset:
    def __init__(self, asset_id: str, decimals: int = 18):
        self.asset_id = asset_id
        self.decimals = int(decimals)
        self.total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def balance_of(self, holder: str) -> int:
        with self._lock:
            return self._balances.get(holder, 0)

    def allowance(self, owner: str, spender: str) -> int:
        with self._lock:
            return self._allowances.get((owner, spender), 0)

    def mint(self, to: str, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._balances[to] = self._balances.get(to, 0) + amount
            self.total_supply += amount
        logger.debug("mint %s %s -> %s", amount, self.asset_id, to)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            self._debit(sender, amount)
            self._balances[to] = self._balances.get(to, 0) + amount

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        _check_amount(amount)
        with self._lock:
            allowed = self._allowances.get((owner, spender), 0)
            if allowed < amount:
                raise InsufficientAllowance(owner, spender, amount, allowed)
            self._debit(owner, amount)
            self._allowances[(owner, spender)] = allowed - amount
            self._balances[to] = self._balances.get(to, 0) + amount

    def _debit(self, holder: str, amount: int) -> None:
        available = self._balances.get(holder, 0)
        if available < amount:
            raise InsufficientBalance(holder, amount, available)
        self._balances[holder] = available - amount


class Custody:
    """Ledger-side view of a `PaperAsset` under the ledger's own identity."""

    def __init__(self, asset: PaperAsset, holder: str):
        self._asset = asset
        self._holder = holder

    @property
    def asset_id(self) -> str:
        return self._asset.asset_id

    @property
    def holder(self) -> str:
        return self._holder

    def move_in(self, source: str, amount: int) -> None:
        # pull requires a prior approve(source, holder, amount)
        self._asset.transfer_from(self._holder, source, self._holder, amount)

    def move_out(self, target: str, amount: int) -> None:
        self._asset.transfer(self._holder, target, amount)

    def held(self) -> int:
        return self._asset.balance_of(self._holder)
