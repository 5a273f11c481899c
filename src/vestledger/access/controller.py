from __future__ import annotations

import contextvars
import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from ..events.bus import Publisher, publish as publish_event
from ..events.schema import EventEnvelope, PrivilegeTransferred
from .identity import is_null_identity


logger = logging.getLogger(__name__)

_current_caller: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "vestledger_current_caller", default=None
)


class AccessDenied(Exception):
    reason = "unauthorized"


class AccessController:
    """Holds the single privileged identity allowed to create allocations."""

    def __init__(self, privileged: str, publish: Optional[Publisher] = None):
        if is_null_identity(privileged):
            raise ValueError("privileged identity must not be null")
        self._privileged = privileged
        self._lock = threading.Lock()
        self._publish = publish or publish_event

    @property
    def privileged(self) -> str:
        with self._lock:
            return self._privileged

    def is_privileged(self, identity: Optional[str]) -> bool:
        return identity is not None and identity == self.privileged

    def current_caller(self) -> Optional[str]:
        return _current_caller.get()

    @contextmanager
    def acting_as(self, identity: str) -> Iterator[str]:
        """Bind `identity` as the caller for the enclosed block."""
        token = _current_caller.set(identity)
        try:
            yield identity
        finally:
            _current_caller.reset(token)

    def transfer_privilege(self, new_holder: str, caller: Optional[str] = None) -> None:
        caller = caller if caller is not None else self.current_caller()
        if is_null_identity(new_holder):
            raise ValueError("new privileged identity must not be null")
        with self._lock:
            if caller != self._privileged:
                raise AccessDenied(f"{caller!r} does not hold the privileged role")
            previous = self._privileged
            self._privileged = new_holder
        logger.info("privileged role moved from %s to %s", previous, new_holder)
        evt = PrivilegeTransferred(ts=int(time.time()), previous=previous, current=new_holder)
        try:
            self._publish(EventEnvelope(correlation_id=f"privilege:{new_holder}", event=evt))
        except Exception:
            logger.exception("failed to publish privilege transfer")
