# src/services/group_locks.py

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List

from src.core.models.group import GroupKey
from src.logic.errors import GroupBusyError

logger = logging.getLogger(__name__)


class GroupLockRegistry:
    """
    One lock per (owner, account, ticker) group. Every operation that mutates a
    group's lots holds its lock, so two writers never interleave on one group
    while different groups proceed in parallel.

    Example:
        with locks.hold(group):
            ...  # read lots, match, write
    """

    def __init__(self, timeout_seconds: float = 30.0):
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[GroupKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, group: GroupKey) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(group)
            if lock is None:
                lock = self._locks[group] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, group: GroupKey) -> Iterator[None]:
        """
        Raises GroupBusyError if the group stays locked for longer than the timeout.
        """
        lock = self.lock_for(group)
        if not lock.acquire(timeout=self.timeout_seconds):
            logger.warning(f"Group {group} busy for more than {self.timeout_seconds}s.")
            raise GroupBusyError(group, self.timeout_seconds)
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def hold_many(self, groups: Iterable[GroupKey]) -> Iterator[None]:
        """
        Holds several groups at once. Locks are taken in sorted key order so two
        callers asking for overlapping groups cannot deadlock.
        """
        ordered: List[GroupKey] = sorted(set(groups))
        acquired: List[threading.Lock] = []
        try:
            for group in ordered:
                lock = self.lock_for(group)
                if not lock.acquire(timeout=self.timeout_seconds):
                    logger.warning(f"Group {group} busy for more than {self.timeout_seconds}s.")
                    raise GroupBusyError(group, self.timeout_seconds)
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
