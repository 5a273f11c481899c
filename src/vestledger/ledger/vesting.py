from __future__ import annotations

from typing import Optional

from .model import AllocationRecord


def vested_amount(record: Optional[AllocationRecord], now: int) -> int:
    """Cumulative units unlocked at `now` for a linear schedule.

    Before the start nothing is vested; at or after `start_time + duration`
    the full amount is vested so no rounding dust is left locked. In between
    the linear share is truncated toward zero. Python ints do not overflow,
    so `total_amount * elapsed` is exact before the division.
    """
    if record is None or record.total_amount == 0:
        return 0
    if now < record.start_time:
        return 0
    if now >= record.end_time:
        return record.total_amount
    elapsed = now - record.start_time
    return (record.total_amount * elapsed) // record.duration


def releasable_amount(record: Optional[AllocationRecord], now: int) -> int:
    if record is None:
        return 0
    # vested is non-decreasing in `now`, but a caller may query a time earlier
    # than the last release; clamp instead of going negative
    return max(0, vested_amount(record, now) - record.released_amount)
