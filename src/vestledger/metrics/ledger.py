from __future__ import annotations

from typing import Optional, Sequence
import os
from prometheus_client import Counter, Gauge, REGISTRY

_allocations_registered: Optional[Counter] = None
_units_released: Optional[Counter] = None
_requests_rejected: Optional[Counter] = None
_held_balance: Optional[Gauge] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _existing(name: str):
    # prometheus_client strips the _total suffix from counter names
    names = getattr(REGISTRY, "_names_to_collectors", {})
    for key in (name, name[:-6] if name.endswith("_total") else name):
        coll = names.get(key)
        if coll is not None:
            return coll
    return None


def _safe_counter(name: str, doc: str, labelnames: Sequence[str]):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        coll = _existing(name)
        return coll if coll is not None else _NoOp()


def _safe_gauge(name: str, doc: str, labelnames: Sequence[str]):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        coll = _existing(name)
        return coll if coll is not None else _NoOp()


def get_allocations_registered_total():
    global _allocations_registered
    if _allocations_registered is None:
        _allocations_registered = _safe_counter("allocations_registered_total", "Allocations registered", ["asset"])
    return _allocations_registered


def get_units_released_total():
    global _units_released
    if _units_released is None:
        _units_released = _safe_counter("units_released_total", "Asset units released to recipients", ["asset"])
    return _units_released


def get_requests_rejected_total():
    global _requests_rejected
    if _requests_rejected is None:
        _requests_rejected = _safe_counter("ledger_requests_rejected_total", "Ledger requests rejected", ["op", "reason"])
    return _requests_rejected


def get_held_balance_gauge():
    global _held_balance
    if _held_balance is None:
        _held_balance = _safe_gauge("ledger_held_balance", "Asset units held in ledger custody", ["asset"])
    return _held_balance
