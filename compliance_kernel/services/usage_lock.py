"""
compliance_kernel.services.usage_lock -- Serialisation of threshold usage reads.

Responsibility:
    Implements the UsageLock port.  Cumulative threshold evaluation reads
    historical usage, adds the current transaction and compares against a
    limit; two concurrent validations for the same customer can both read a
    stale total.  CustomerUsageLock closes that window within one process:
    the validation service holds it per customer account and data area
    from the first history read until the outcome is flushed, and callers
    extend it over their commit with hold_usage().  NullUsageLock (the
    default) leaves the window open.

Architecture position:
    Kernel > Services.  Selected by compliance_config usage_lock_strategy.

Invariants enforced:
    - Locks are re-entrant and keyed by (customer_account, data_area_id),
      compared case-insensitively.
    - Acquisition waits at most ``timeout_seconds``.
    - The registry only holds customers with a current holder or waiter.

Failure modes:
    - UsageLockTimeoutError when the lock is not acquired in time.
    - ConfigurationError from build_usage_lock() for an unknown strategy.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from compliance_kernel.domain.ports import NullUsageLock, UsageLock
from compliance_kernel.exceptions import ConfigurationError, UsageLockTimeoutError
from compliance_kernel.logging_config import get_logger

logger = get_logger("services.usage_lock")

USAGE_LOCK_STRATEGIES = ("none", "per_customer")


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class CustomerUsageLock:
    """In-process re-entrant lock per customer account and data area.

    Only customers with a holder or a waiter have an entry in the registry;
    the entry is dropped when its last user leaves.
    """

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        self._timeout_seconds = timeout_seconds
        self._registry_guard = threading.Lock()
        self._entries: dict[tuple[str, str], _LockEntry] = {}

    def _checkout(self, key: tuple[str, str]) -> _LockEntry:
        with self._registry_guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _LockEntry()
                self._entries[key] = entry
            entry.users += 1
            return entry

    def _checkin(self, key: tuple[str, str], entry: _LockEntry) -> None:
        with self._registry_guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, customer_account: str, data_area_id: str) -> Iterator[None]:
        key = (customer_account.casefold(), data_area_id.casefold())
        lock_key = f"{customer_account}/{data_area_id}"
        entry = self._checkout(key)
        try:
            if not entry.lock.acquire(timeout=self._timeout_seconds):
                raise UsageLockTimeoutError(lock_key, self._timeout_seconds)
            logger.debug("usage_lock_acquired", extra={"lock_key": lock_key})
            try:
                yield
            finally:
                entry.lock.release()
                logger.debug("usage_lock_released", extra={"lock_key": lock_key})
        finally:
            self._checkin(key, entry)


def build_usage_lock(strategy: str, timeout_seconds: float = 10.0) -> UsageLock:
    """Usage lock for a configured strategy name."""
    if strategy == "none":
        return NullUsageLock()
    if strategy == "per_customer":
        return CustomerUsageLock(timeout_seconds=timeout_seconds)
    raise ConfigurationError(
        "usage_lock",
        f"unknown strategy {strategy!r}; expected one of {', '.join(USAGE_LOCK_STRATEGIES)}",
    )
