from __future__ import annotations

import itertools
import logging
import os
import threading
from dataclasses import replace
from typing import Dict, List, Optional

import pandas as pd

from ..access.controller import AccessController
from ..access.identity import is_null_identity
from ..asset.paper import AssetTransfer
from ..clock import Clock, SystemClock
from ..events.bus import Publisher, publish as publish_event
from ..events.schema import AllocationRegistered, BaseEvent, EventEnvelope, TokensReleased
from ..metrics.ledger import (
    get_allocations_registered_total,
    get_held_balance_gauge,
    get_requests_rejected_total,
    get_units_released_total,
)
from .errors import (
    AllocationExists,
    ConfigurationError,
    InvalidAmount,
    InvalidDuration,
    InvalidRecipient,
    InvalidStartTime,
    LedgerError,
    NoAllocation,
    NothingReleasable,
    UnauthorizedCaller,
)
from .locks import KeyedLocks
from .model import AllocationRecord, ReleaseRow
from .vesting import releasable_amount, vested_amount


logger = logging.getLogger(__name__)


def _require_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    return value


class AllocationLedger:
    """Linear release of fixed allocations, one per recipient.

    The privileged identity registers an allocation once; afterwards anyone
    may call `release` to pay the recipient whatever has unlocked since the
    start time, net of earlier releases. Each recipient's record is guarded
    by its own lock, and every mutation follows the transfer it accounts for,
    so a failed transfer leaves the table untouched.
    """

    def __init__(
        self,
        custody: AssetTransfer,
        access: AccessController,
        clock: Optional[Clock] = None,
        publish: Optional[Publisher] = None,
    ):
        if custody is None or is_null_identity(getattr(custody, "asset_id", None)):
            raise ConfigurationError("asset identity must not be null")
        self._custody = custody
        self._asset_id = custody.asset_id
        self._access = access
        self._clock = clock or SystemClock()
        self._publish = publish or publish_event
        self._records: Dict[str, AllocationRecord] = {}
        self._table_lock = threading.Lock()
        self._locks = KeyedLocks()
        self._sequence = itertools.count(1)
        self._sequence_lock = threading.Lock()
        self.releases: List[ReleaseRow] = []
        # Metrics
        self._registered_counter = get_allocations_registered_total()
        self._released_counter = get_units_released_total()
        self._rejected_counter = get_requests_rejected_total()
        self._held_gauge = get_held_balance_gauge()

    # ---- queries ----

    @property
    def asset_id(self) -> str:
        return self._asset_id

    @property
    def privileged_identity(self) -> str:
        return self._access.privileged

    def held_balance(self) -> int:
        return self._custody.held()

    def get_allocation(self, recipient: str) -> Optional[AllocationRecord]:
        """Return a copy of the recipient's record, or None if never registered."""
        with self._table_lock:
            rec = self._records.get(recipient)
            return replace(rec) if rec is not None else None

    def records(self) -> Dict[str, AllocationRecord]:
        with self._table_lock:
            return {k: replace(v) for k, v in self._records.items()}

    def outstanding(self) -> int:
        """Sum of unreleased units across all allocations."""
        with self._table_lock:
            return sum(r.remaining for r in self._records.values())

    def vested_amount(self, recipient: str, now: Optional[int] = None) -> int:
        """Vested units for `recipient` at the ledger clock.

        `now` only overrides the time for this read-only query; `release`
        always uses the ledger clock.
        """
        ts = self._clock.now() if now is None else now
        return vested_amount(self.get_allocation(recipient), ts)

    def releasable_amount(self, recipient: str, now: Optional[int] = None) -> int:
        """Releasable units at the ledger clock, or at `now` as a query-time override."""
        ts = self._clock.now() if now is None else now
        return releasable_amount(self.get_allocation(recipient), ts)

    # ---- mutations ----

    def register(
        self,
        recipient: str,
        total_amount: int,
        start_time: int,
        duration: int,
        caller: Optional[str] = None,
    ) -> AllocationRecord:
        """Pull `total_amount` from the caller and create the recipient's record."""
        caller = caller if caller is not None else self._access.current_caller()
        try:
            if not self._access.is_privileged(caller):
                raise UnauthorizedCaller(caller)
            if is_null_identity(recipient):
                raise InvalidRecipient("recipient must not be null")
            if _require_int("total_amount", total_amount) <= 0:
                raise InvalidAmount("total_amount must be greater than zero")
            if _require_int("duration", duration) <= 0:
                raise InvalidDuration("duration must be greater than zero")
            if _require_int("start_time", start_time) < 0:
                raise InvalidStartTime("start_time must not be negative")
            with self._locks.hold(recipient):
                if self.get_allocation(recipient) is not None:
                    raise AllocationExists(recipient)
                # collaborator errors propagate as-is; nothing recorded yet
                self._custody.move_in(caller, total_amount)
                rec = AllocationRecord(
                    recipient=recipient,
                    total_amount=total_amount,
                    start_time=start_time,
                    duration=duration,
                )
                with self._table_lock:
                    self._records[recipient] = rec
                env = self._stamp(
                    recipient,
                    AllocationRegistered(
                        ts=self._clock.now(),
                        asset_id=self._asset_id,
                        recipient=recipient,
                        total_amount=total_amount,
                        start_time=start_time,
                        duration=duration,
                    ),
                )
        except LedgerError as e:
            self._reject("register", e)
            raise
        self._deliver(env)
        self._registered_counter.labels(self._asset_id).inc()
        self._refresh_held()
        logger.info(
            "registered %s %s for %s start=%s duration=%s",
            total_amount, self._asset_id, recipient, start_time, duration,
        )
        return replace(rec)

    def release(self, recipient: str) -> int:
        """Pay out everything releasable for `recipient` as of the ledger clock.

        Returns the amount paid. The time always comes from the ledger's own
        clock; callers cannot choose it.
        """
        try:
            # records are never deleted, so a key seen here stays valid; unknown
            # keys are rejected before a per-recipient lock is allocated
            with self._table_lock:
                known = recipient in self._records
            if not known:
                raise NoAllocation(recipient)
            with self._locks.hold(recipient):
                ts = self._clock.now()
                with self._table_lock:
                    rec = self._records[recipient]
                vested = vested_amount(rec, ts)
                amount = vested - rec.released_amount
                if amount <= 0:
                    raise NothingReleasable(recipient)
                self._custody.move_out(recipient, amount)
                with self._table_lock:
                    rec.released_amount += amount
                    released_total = rec.released_amount
                self.releases.append(
                    ReleaseRow(ts=ts, recipient=recipient, amount=amount, released_total=released_total, vested=vested)
                )
                env = self._stamp(
                    recipient,
                    TokensReleased(
                        ts=ts,
                        asset_id=self._asset_id,
                        recipient=recipient,
                        amount=amount,
                        released_total=released_total,
                    ),
                )
        except LedgerError as e:
            self._reject("release", e)
            raise
        self._deliver(env)
        self._released_counter.labels(self._asset_id).inc(amount)
        self._refresh_held()
        logger.info("released %s %s to %s (%s/%s)", amount, self._asset_id, recipient, released_total, rec.total_amount)
        return amount

    # ---- internals ----

    def _stamp(self, recipient: str, evt: BaseEvent) -> EventEnvelope:
        # called under the recipient lock so sequence order matches commit order
        with self._sequence_lock:
            seq = next(self._sequence)
        return EventEnvelope(correlation_id=f"{self._asset_id}:{recipient}", sequence=seq, event=evt)

    def _deliver(self, env: EventEnvelope) -> None:
        # called after the recipient lock is released; publishers may do I/O
        try:
            self._publish(env)
        except Exception:
            # state is already committed; a lost notification must not undo it
            logger.exception("failed to publish %s for %s", env.event.event_type, env.event.recipient)

    def _reject(self, op: str, err: LedgerError) -> None:
        self._rejected_counter.labels(op, err.reason).inc()
        logger.warning("%s rejected: %s (%s)", op, err.reason, err)

    def _refresh_held(self) -> None:
        self._held_gauge.labels(self._asset_id).set(self.held_balance())

    def write_parquet(self, base_dir: str = "data") -> None:
        os.makedirs(base_dir, exist_ok=True)
        rows = [r.__dict__ for r in self.records().values()]
        alloc_df = pd.DataFrame(rows, columns=["recipient", "total_amount", "start_time", "duration", "released_amount"])
        release_df = pd.DataFrame(
            [r.__dict__ for r in list(self.releases)],
            columns=["ts", "recipient", "amount", "released_total", "vested"],
        )
        # amounts can exceed int64 for 18-decimal assets; keep them exact as text
        for df, cols in ((alloc_df, ["total_amount", "released_amount"]), (release_df, ["amount", "released_total", "vested"])):
            for c in cols:
                df[c] = df[c].astype(str)
        alloc_df.to_parquet(os.path.join(base_dir, "allocations.parquet"))
        release_df.to_parquet(os.path.join(base_dir, "releases.parquet"))
