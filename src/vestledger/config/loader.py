"""
Configuration loader for vestledger.

What it does:
- Reads static settings from `config/config.yaml`: the asset, the issuer
  (privileged identity), the ledger's custody identity, the schedules the
  demo entry point registers, and demo clock stepping.
- Applies environment overrides: `VESTLEDGER_ISSUER`, `VESTLEDGER_ASSET_ID`.
- Validates the result with Pydantic models.

Where it is used:
- Called by `vestledger.main` to build a `Settings` object for runtime.
"""

import os
from typing import List

import yaml
from pydantic import BaseModel, Field, field_validator


class ScheduleConfig(BaseModel):
    """One allocation to register; start is relative to the clock at startup."""
    recipient: str
    total_amount: int = Field(gt=0)
    start_offset_s: int = 0
    duration_s: int = Field(gt=0)


class DemoConfig(BaseModel):
    step_s: int = Field(default=86_400, gt=0)
    steps: int = Field(default=4, ge=0)


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    asset_id: str
    issuer: str
    ledger_id: str = "vesting-ledger"
    decimals: int = 18
    data_dir: str = "data"
    schedules: List[ScheduleConfig] = Field(default_factory=list)
    demo: DemoConfig = Field(default_factory=DemoConfig)

    @field_validator("asset_id", "issuer", "ledger_id")
    @classmethod
    def not_empty(cls, v, info):
        if not v or not str(v).strip():
            raise ValueError(f"Missing required identity: {info.field_name}")
        return v

    @property
    def total_scheduled(self) -> int:
        return sum(s.total_amount for s in self.schedules)


def load_settings(path: str = "config/config.yaml") -> Settings:
    """Load YAML config, apply env overrides, and return Settings."""
    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}
    issuer = os.getenv("VESTLEDGER_ISSUER") or config.get("issuer", "")
    asset_id = os.getenv("VESTLEDGER_ASSET_ID") or config.get("asset_id", "")
    return Settings(
        asset_id=asset_id,
        issuer=issuer,
        ledger_id=config.get("ledger_id", "vesting-ledger"),
        decimals=int(config.get("decimals", 18)),
        data_dir=config.get("data_dir", "data"),
        schedules=[ScheduleConfig(**s) for s in config.get("schedules") or []],
        demo=DemoConfig(**(config.get("demo") or {})),
    )
