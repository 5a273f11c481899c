from __future__ import annotations

from typing import Literal, Optional, Union
from pydantic import BaseModel, Field


# ---- Base + envelope ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int
    asset_id: Optional[str] = None
    recipient: Optional[str] = None


class AllocationRegistered(BaseEvent):
    event_type: Literal["allocation_registered"] = "allocation_registered"
    recipient: str
    total_amount: int = Field(gt=0)
    start_time: int = Field(ge=0)
    duration: int = Field(gt=0)


class TokensReleased(BaseEvent):
    event_type: Literal["tokens_released"] = "tokens_released"
    recipient: str
    amount: int = Field(gt=0)
    # cumulative released for the recipient after this release
    released_total: int = Field(gt=0)


class PrivilegeTransferred(BaseEvent):
    event_type: Literal["privilege_transferred"] = "privilege_transferred"
    previous: str
    current: str


AnyEvent = Union[
    AllocationRegistered,
    TokensReleased,
    PrivilegeTransferred,
]


class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: AnyEvent = Field(discriminator="event_type")
