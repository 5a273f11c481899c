from __future__ import annotations

from typing import Dict, Iterable, Optional

from ..events.schema import AllocationRegistered, EventEnvelope, TokensReleased
from .errors import ReplayError
from .model import AllocationRecord


def replay_records(envelopes: Iterable[EventEnvelope], asset_id: Optional[str] = None) -> Dict[str, AllocationRecord]:
    """Rebuild the recipient -> record table from published envelopes.

    Envelopes are applied in `sequence` order. Events for other assets are
    skipped when `asset_id` is given; events that are not ledger events
    (e.g. privilege transfers) are ignored.
    """
    records: Dict[str, AllocationRecord] = {}
    for env in sorted(envelopes, key=lambda e: e.sequence):
        evt = env.event
        if asset_id is not None and evt.asset_id != asset_id:
            continue
        if isinstance(evt, AllocationRegistered):
            if evt.recipient in records:
                raise ReplayError(f"seq {env.sequence}: duplicate registration for {evt.recipient}")
            records[evt.recipient] = AllocationRecord(
                recipient=evt.recipient,
                total_amount=evt.total_amount,
                start_time=evt.start_time,
                duration=evt.duration,
            )
        elif isinstance(evt, TokensReleased):
            rec = records.get(evt.recipient)
            if rec is None:
                raise ReplayError(f"seq {env.sequence}: release for unknown recipient {evt.recipient}")
            rec.released_amount += evt.amount
            if rec.released_amount > rec.total_amount:
                raise ReplayError(f"seq {env.sequence}: {evt.recipient} released beyond allocation")
            if rec.released_amount != evt.released_total:
                raise ReplayError(
                    f"seq {env.sequence}: running total {rec.released_amount} != reported {evt.released_total}"
                )
    return records
