from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """One mutex per key, created on demand and dropped when nobody holds it.

    Serializes check-then-write sequences inside one process. Cross-process
    safety still comes from the database constraints behind each write.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            lock, users = self._locks[key]
            if users <= 1:
                self._locks.pop(key, None)
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self._checkout(key)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            self._checkin(key)

    def active_keys(self) -> list[str]:
        with self._guard:
            return sorted(self._locks.keys())


folder_locks = KeyedLock('folders')
active_record_locks = KeyedLock('active_records')
schedule_slot_locks = KeyedLock('schedule_slots')
recent_access_locks = KeyedLock('recent_access')
