# storefront/services/owner_locks.py
import threading
from contextlib import contextmanager

from storefront.schemas.cart import OwnerKey


class OwnerLocks:
    """
    One re-entrant lock per owner key, created on demand.

    Serializes cart mutations for the same owner inside this process so
    add_item's read-then-increment cannot lose an update. Writers in other
    processes are still last-write-wins; the unique constraint on
    cart_items turns a racing insert into a retryable error.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[OwnerKey, threading.RLock] = {}

    def _lock_for(self, owner: OwnerKey) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(owner)
            if lock is None:
                lock = self._locks[owner] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, *owners: OwnerKey):
        """
        Acquire the locks of all given owners.

        Locks are taken in a stable order (by str(owner)) so two merges
        over the same pair of owners cannot deadlock.
        """
        ordered = sorted(set(owners), key=str)
        locks = [self._lock_for(owner) for owner in ordered]
        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()
