from __future__ import annotations

import json
import os
import logging
from typing import Callable, Iterator, Optional, Tuple

try:
    import redis
except Exception:  # pragma: no cover
    redis = None  # type: ignore

from .schema import EventEnvelope
from .metrics import get_events_total, get_publish_failures_total


STREAM_EVENTS = os.getenv("EVENTS_STREAM", "vestledger.events")
STREAM_DLQ = os.getenv("EVENTS_DLQ", "vestledger.dlq")

log = logging.getLogger("vestledger.events")

Publisher = Callable[[EventEnvelope], None]


def _redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


def _get_redis():
    if redis is None:
        raise RuntimeError("redis client not available")
    return redis.Redis.from_url(_redis_url(), decode_responses=True)


def to_json(env: EventEnvelope) -> str:
    return json.dumps(env.model_dump(mode="json"), separators=(",", ":"))


def publish(env: EventEnvelope) -> None:
    """Publish an event to Redis Streams and log a single-line JSON.

    Delivery is best-effort: an unreachable Redis sends the line to the DLQ
    stream, and if that fails too the line is only logged.
    """
    get_events_total().labels(env.event.event_type).inc()
    line = to_json(env)
    try:
        r = _get_redis()
        r.xadd(STREAM_EVENTS, {"json": line})
    except Exception as e:
        get_publish_failures_total().labels("stream").inc()
        log.debug("event stream unavailable: %s", e)
        try:
            r = _get_redis()
            r.xadd(STREAM_DLQ, {"json": line})
        except Exception:
            get_publish_failures_total().labels("dlq").inc()
    log.info(line)


def fanout(*publishers: Publisher) -> Publisher:
    """Compose publishers; each receives every envelope in order."""

    def _publish(env: EventEnvelope) -> None:
        for p in publishers:
            p(env)

    return _publish


def ensure_group(group: str) -> None:
    try:
        r = _get_redis()
        r.xgroup_create(name=STREAM_EVENTS, groupname=group, id="0", mkstream=True)
    except Exception as e:
        if "BUSYGROUP" in str(e):
            return
        raise


def consume(group: str, consumer: str, block_ms: int = 15000) -> Iterator[Optional[Tuple[str, EventEnvelope]]]:
    """Generator yielding (id, EventEnvelope) from a Redis Stream consumer group.

    Yields None when the block times out. Caller is responsible for XACK.
    """
    r = _get_redis()
    ensure_group(group)
    while True:
        resp = r.xreadgroup(group, consumer, {STREAM_EVENTS: ">"}, count=100, block=block_ms)
        if not resp:
            yield None
            continue
        # resp is list[(stream, [(id, {field:value}), ...])]
        for _stream, entries in resp:
            for msg_id, fields in entries:
                yield (msg_id, EventEnvelope.model_validate_json(fields.get("json", "{}")))
