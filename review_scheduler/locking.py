"""Serialization of writes to one reviewer's calendar day.

Two layers are taken, in order:

* a process-local lock keyed by ``(reviewer_id, date)``, so request threads of
  one worker queue up instead of racing on the database;
* the ``reviewer_day_locks`` row for that key, selected ``FOR UPDATE`` and
  then written, which blocks other processes until this transaction ends.
  The write matters on SQLite, which ignores ``FOR UPDATE`` but serializes
  writers.

Callers must commit or roll back before leaving the ``with`` block.
"""

import logging
from contextlib import contextmanager
from datetime import date
from threading import Lock
from typing import Iterator
from weakref import WeakValueDictionary

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from review_scheduler.models.reviewer_day_lock import ReviewerDayLock

logger = logging.getLogger(__name__)

_registry_lock = Lock()
_day_locks: 'WeakValueDictionary[tuple[int, date], Lock]' = WeakValueDictionary()


def _local_lock(reviewer_id: int, day: date) -> Lock:
    with _registry_lock:
        lock = _day_locks.get((reviewer_id, day))
        if lock is None:
            lock = Lock()
            _day_locks[(reviewer_id, day)] = lock
        return lock


def _lock_row(db: Session, reviewer_id: int, day: date) -> ReviewerDayLock:
    def select_row() -> ReviewerDayLock | None:
        return db.query(ReviewerDayLock).filter(
            ReviewerDayLock.reviewer_id == reviewer_id,
            ReviewerDayLock.date == day,
        ).with_for_update().first()

    row = select_row()
    if row is None:
        db.add(ReviewerDayLock(reviewer_id=reviewer_id, date=day, version=0))
        try:
            db.flush()
        except IntegrityError:
            # Another process created the row first; its lock is what we wait on.
            db.rollback()
        row = select_row()

    row.version += 1
    db.flush()
    return row


@contextmanager
def reviewer_day_lock(db: Session, reviewer_id: int, day: date) -> Iterator[None]:
    lock = _local_lock(reviewer_id, day)
    with lock:
        _lock_row(db, reviewer_id, day)
        logger.debug('Acquired calendar lock: reviewer=%s date=%s', reviewer_id, day)
        yield
