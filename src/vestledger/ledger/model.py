from __future__ import annotations

from dataclasses import dataclass


@dataclass
class AllocationRecord:
    recipient: str
    total_amount: int
    start_time: int
    duration: int
    released_amount: int = 0

    @property
    def end_time(self) -> int:
        return self.start_time + self.duration

    @property
    def remaining(self) -> int:
        """Units still held in custody for this recipient."""
        return self.total_amount - self.released_amount

    @property
    def fully_released(self) -> bool:
        return self.released_amount == self.total_amount


@dataclass
class ReleaseRow:
    ts: int
    recipient: str
    amount: int
    released_total: int
    vested: int
