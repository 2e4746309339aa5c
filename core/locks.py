import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Hashable, Iterator

from core.errors import ConflictError

logger = logging.getLogger(__name__)


class KeyedLocks:
    """In-process mutexes keyed by an arbitrary value (e.g. a principal id).

    Serializes work per key inside one worker process. Cross-process
    serialization relies on the row locks taken by the repositories.
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = defaultdict(threading.Lock)
        self._waiters: dict[Hashable, int] = defaultdict(int)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks[key]
            self._waiters[key] += 1
        try:
            if not lock.acquire(timeout=self.timeout):
                logger.warning("Timed out waiting for lock %r", key)
                raise ConflictError("Another request for this resource is in progress")
            try:
                yield
            finally:
                lock.release()
        finally:
            with self._guard:
                self._waiters[key] -= 1
                if not self._waiters[key]:
                    del self._waiters[key]
                    self._locks.pop(key, None)
