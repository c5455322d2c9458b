"""
Per-scope locking for score calculations.

Two calculations for the same competition (or league) must not interleave
their upserts and rank updates. Calculations for different scopes run in
parallel. The database row lock taken by the scoring service covers
multiple worker processes; this guard covers threads within one process.
"""

import threading
from contextlib import contextmanager

from app.services.errors import CalculationInProgressError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


class CalculationGuard:
    """Registry of one lock per calculation scope"""

    def __init__(self):
        # scope -> [lock, number of holders and waiters]
        self._locks = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, scope):
        with self._registry_lock:
            entry = self._locks.get(scope)
            if entry is None:
                entry = self._locks[scope] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _checkin(self, scope):
        with self._registry_lock:
            entry = self._locks[scope]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[scope]

    @contextmanager
    def hold(self, scope, timeout=30.0):
        """
        Hold the lock for a scope such as ("competition", 7).

        Waits up to `timeout` seconds for a running calculation to finish.
        The scope's lock is dropped from the registry once nobody holds or
        waits for it.

        Raises:
            CalculationInProgressError: if the lock could not be acquired
        """
        lock = self._checkout(scope)
        try:
            if not lock.acquire(timeout=timeout):
                kind, scope_id = scope
                raise CalculationInProgressError(
                    f"A {kind} calculation for {kind} {scope_id} is already in progress"
                )

            logger.debug(f"Acquired calculation lock for {scope}")
            try:
                yield
            finally:
                lock.release()
                logger.debug(f"Released calculation lock for {scope}")
        finally:
            self._checkin(scope)


calculation_guard = CalculationGuard()
