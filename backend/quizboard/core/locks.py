"""Per-key mutual exclusion for attempt mutations.

One lock per (user, quiz) pair serialises StartAttempt's check-and-create,
one lock per attempt id serialises SubmitAnswer / CompleteAttempt. Locks
are dropped from the registry once nobody holds or waits on them.

These only cover a single process; across workers the database constraints
on ``attempts`` / ``attempt_answers`` are what keep the invariants.
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Hashable, Iterator


class KeyedLocks:
    """Registry of reference-counted locks keyed by any hashable."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[Hashable, tuple[Lock, int]] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = Lock()
            self._locks[key] = (lock, users + 1)

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                _, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Process-wide registries used by the attempt service
quiz_slot_locks = KeyedLocks()
attempt_locks = KeyedLocks()
