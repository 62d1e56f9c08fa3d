"""Serialises capacity check-and-insert per (date, time slot).

Two layers are used: an in-process lock per key, and on PostgreSQL a
transaction-scoped advisory lock so that several worker processes
agree on the same ordering. Waiting is bounded; a caller that cannot
get the slot in time is told the slot is full.
"""
from __future__ import annotations

import hashlib
import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.exceptions import SlotFull

logger = logging.getLogger(__name__)


class _SlotLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


_registry_lock = threading.Lock()
_locks: dict[str, _SlotLock] = {}


def slot_key(day: date, time_slot: str) -> str:
    return f"{day.isoformat()}:{time_slot}"


def _checkout(key: str) -> _SlotLock:
    with _registry_lock:
        entry = _locks.get(key)
        if entry is None:
            entry = _locks[key] = _SlotLock()
        entry.users += 1
        return entry


def _checkin(key: str, entry: _SlotLock) -> None:
    # last holder or waiter out drops the key
    with _registry_lock:
        entry.users -= 1
        if entry.users == 0:
            del _locks[key]


def _advisory_key(key: str) -> int:
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


def _acquire_advisory_lock(db: Session, key: str) -> None:
    bind = db.get_bind()
    if bind.dialect.name != "postgresql":
        return
    timeout_ms = int(get_settings().slot_lock_timeout_seconds * 1000)
    db.execute(select(func.set_config("lock_timeout", f"{timeout_ms}ms", True)))
    db.execute(select(func.pg_advisory_xact_lock(_advisory_key(key))))


def ticket_key(day: date) -> str:
    return f"ticket:{day.isoformat()}"


def hold(db: Session, day: date, time_slot: str, timeout: float | None = None):
    """Hold the slot lock for the body; the body must commit before leaving."""
    return hold_key(db, slot_key(day, time_slot), timeout)


@contextmanager
def hold_key(db: Session, key: str, timeout: float | None = None) -> Iterator[None]:
    if timeout is None:
        timeout = get_settings().slot_lock_timeout_seconds
    entry = _checkout(key)
    try:
        if not entry.lock.acquire(timeout=timeout):
            logger.warning("Timed out waiting for slot lock", extra={"slot": key})
            raise SlotFull("Time slot is busy, please pick another time")
        try:
            try:
                _acquire_advisory_lock(db, key)
            except OperationalError as exc:
                db.rollback()
                raise SlotFull("Time slot is busy, please pick another time") from exc
            yield
        finally:
            entry.lock.release()
    finally:
        _checkin(key, entry)


__all__ = ["hold", "hold_key", "slot_key", "ticket_key"]
