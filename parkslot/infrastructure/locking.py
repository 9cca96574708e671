# File: parkslot/infrastructure/locking.py
"""
Per-area exclusive access

Allocation, release and capacity edits read an area, decide, and write it
back. Two such operations on the same area must not interleave, otherwise
both can see the same slot as free and both occupy it.

1. InProcessAreaLockManager - threading locks, one per area id
2. RedisAreaLockManager     - redis-py distributed locks with a lease, for
                              several service processes sharing one store

Failing to obtain the lock within the wait budget raises AreaBusyError.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import ContextManager, Dict, Iterator, Optional
import logging
import threading

import redis
from redis.exceptions import LockError

from ..domain.errors import AreaBusyError


class AreaLockManager(ABC):
    """Hands out exclusive access to one parking area at a time"""

    @abstractmethod
    def acquire(self, area_id: str) -> ContextManager[None]:
        """
        Context manager holding the area lock for its body
        Raises: AreaBusyError if the lock cannot be obtained in time
        """
        pass


class InProcessAreaLockManager(AreaLockManager):
    """Threading locks keyed by area id; wait_seconds=None waits forever"""

    def __init__(self, wait_seconds: Optional[float] = None):
        self.wait_seconds = wait_seconds
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        self._logger = logging.getLogger(self.__class__.__name__)

    def _lock_for(self, area_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(area_id)
            if lock is None:
                lock = self._locks[area_id] = threading.Lock()
            return lock

    @contextmanager
    def acquire(self, area_id: str) -> Iterator[None]:
        lock = self._lock_for(str(area_id))
        timeout = -1 if self.wait_seconds is None else self.wait_seconds
        if not lock.acquire(timeout=timeout):
            self._logger.warning(f"Timed out after {self.wait_seconds}s waiting for parking area {area_id}")
            raise AreaBusyError(str(area_id), self.wait_seconds)
        try:
            yield
        finally:
            lock.release()


class RedisAreaLockManager(AreaLockManager):
    """
    Distributed area locks on Redis

    lease_seconds bounds how long a crashed holder keeps the area blocked;
    wait_seconds bounds how long a caller queues for it.
    """

    KEY_PREFIX = "parkslot:area-lock:"

    def __init__(
        self,
        client: redis.Redis,
        lease_seconds: float = 10.0,
        wait_seconds: float = 5.0
    ):
        self.client = client
        self.lease_seconds = lease_seconds
        self.wait_seconds = wait_seconds
        self._logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def acquire(self, area_id: str) -> Iterator[None]:
        lock = self.client.lock(
            f"{self.KEY_PREFIX}{area_id}",
            timeout=self.lease_seconds,
            blocking_timeout=self.wait_seconds,
        )
        if not lock.acquire():
            self._logger.warning(f"Timed out after {self.wait_seconds}s waiting for parking area {area_id}")
            raise AreaBusyError(str(area_id), self.wait_seconds)
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError as e:
                self._logger.error(
                    f"Lease on parking area {area_id} expired before release "
                    f"(lease {self.lease_seconds}s): {e}"
                )
