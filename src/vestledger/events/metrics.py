from __future__ import annotations

from ..metrics.ledger import _safe_counter

_events_total = None
_publish_failures_total = None


def get_events_total():
    global _events_total
    if _events_total is None:
        _events_total = _safe_counter("vestledger_events_total", "Ledger events published", ["type"])
    return _events_total


def get_publish_failures_total():
    global _publish_failures_total
    if _publish_failures_total is None:
        _publish_failures_total = _safe_counter(
            "vestledger_publish_failures_total", "Event deliveries that failed", ["sink"]
        )
    return _publish_failures_total
