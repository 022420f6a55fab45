"""Per-store priority lock table.

Mutating operations on a store's index take a lease first. Leases are tiered
(see LockType): a lease blocks every request of equal or lower tier for the
same store, and stores never affect each other. The two sync tiers also
block each other in both directions. Leases live in process memory
only and expire after a per-tier timeout, so a crashed holder delays other
operations for at most that timeout.

All table operations are synchronous. On a single event loop they cannot
interleave, which makes check-and-grant atomic without a mutex.
"""

import asyncio
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from shared.helper.HelperConfig import HelperConfig
from shared.models.locks import (
    AcquireResult,
    ConflictCheck,
    Lease,
    LockStatus,
    LockType,
    ReleaseResult,
    WaitResult,
)

DEFAULT_TIMEOUTS: dict[LockType, float] = {
    LockType.BACKGROUND_SYNC: 120,
    LockType.MANUAL_SYNC: 180,
    LockType.RECONNECTION: 300,
    LockType.DELETION: 120,
}
DEFAULT_POLL_INTERVAL = 0.5

# both run an ingestion, so they exclude each other regardless of tier
SYNC_TIERS = (LockType.BACKGROUND_SYNC, LockType.MANUAL_SYNC)


class LockManager:
    def __init__(self, helper_config: HelperConfig, clock: Callable[[], float] = time.monotonic) -> None:
        self.logging = helper_config.get_logger()
        self._clock = clock
        self._timeouts: dict[LockType, float] = {
            lock_type: float(helper_config.get_number_val(f"LOCK_TIMEOUT_{lock_type.name}", default=default))
            for lock_type, default in DEFAULT_TIMEOUTS.items()
        }
        self.poll_interval = float(helper_config.get_number_val("LOCK_POLL_INTERVAL", default=DEFAULT_POLL_INTERVAL))

        # store_id -> lease_id -> lease
        self._leases: dict[str, dict[str, Lease]] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_timeout(self, lock_type: LockType) -> float:
        return self._timeouts[LockType(lock_type)]

    def get_tenant_leases(self, store_id: str) -> list[Lease]:
        """Returns the store's current leases without sweeping expired ones."""
        return list(self._leases.get(store_id, {}).values())

    def status(self) -> LockStatus:
        """
        Snapshot of the lease table for observability. Does not sweep or
        otherwise mutate the table.
        """
        leases_by_type = {lock_type.name: 0 for lock_type in LockType}
        per_tenant: dict[str, list[Lease]] = {}
        for store_id, leases in self._leases.items():
            if not leases:
                continue
            per_tenant[store_id] = [lease.model_copy() for lease in leases.values()]
            for lease in leases.values():
                leases_by_type[lease.lock_type.name] += 1
        return LockStatus(
            total_tenants=len(per_tenant),
            total_leases=sum(len(leases) for leases in per_tenant.values()),
            leases_by_type=leases_by_type,
            per_tenant_detail=per_tenant,
        )

    ##########################################
    ################ LEASES ##################
    ##########################################

    def acquire(self, store_id: str, lock_type: LockType, operation: str, reason: str = "") -> AcquireResult:
        """Try to take a lease on a store.

        Never queues or retries. A conflict is a normal outcome that the
        caller answers by skipping, polling or failing fast.

        Args:
            store_id (str): The store to lock.
            lock_type (LockType): The requested tier.
            operation (str): Short operation name shown in status output.
            reason (str): Human-readable reason.

        Returns:
            AcquireResult: granted with a lease_id, or the blocking leases and a reason.
        """
        lock_type = LockType(lock_type)
        self._sweep_expired(store_id)

        blocking = self._find_blocking(store_id, lock_type)
        if blocking:
            message = self._describe_conflict(lock_type, blocking)
            self.logging.info("Lock %s denied for store %s: %s", lock_type.name, store_id, message)
            return AcquireResult(granted=False, blocking_leases=blocking, reason=message)

        lease = Lease(
            lease_id=str(uuid.uuid4()),
            store_id=store_id,
            lock_type=lock_type,
            operation=operation,
            reason=reason,
            acquired_at=self._clock(),
            started_at=datetime.now(timezone.utc),
            timeout=self._timeouts[lock_type],
        )
        self._leases.setdefault(store_id, {})[lease.lease_id] = lease
        self.logging.debug("Lock %s granted for store %s (%s, lease %s).", lock_type.name, store_id, operation, lease.lease_id)
        return AcquireResult(granted=True, lease_id=lease.lease_id)

    def release(self, store_id: str, lease_id: str | None) -> ReleaseResult:
        """
        Releases a lease. Releasing an unknown or already released lease is
        not an error and returns released=False.
        """
        leases = self._leases.get(store_id)
        if not lease_id or not leases or lease_id not in leases:
            self.logging.debug("Release of unknown lease %s for store %s ignored.", lease_id, store_id)
            return ReleaseResult(released=False)

        lease = leases.pop(lease_id)
        if not leases:
            del self._leases[store_id]
        self.logging.debug("Lock %s released for store %s after %.1fs.", lease.lock_type.name, store_id, lease.age(self._clock()))
        return ReleaseResult(released=True)

    def check_conflicts(self, store_id: str, lock_type: LockType) -> ConflictCheck:
        """
        Read-only probe whether `acquire` would currently be granted. Expired
        leases are swept first, like in `acquire`.
        """
        lock_type = LockType(lock_type)
        self._sweep_expired(store_id)
        blocking = self._find_blocking(store_id, lock_type)
        if blocking:
            return ConflictCheck(
                has_conflicts=True,
                can_proceed=False,
                blocking_leases=blocking,
                reason=self._describe_conflict(lock_type, blocking),
            )
        return ConflictCheck(has_conflicts=False, can_proceed=True)

    async def wait_for_availability(self, store_id: str, lock_type: LockType, timeout: float) -> WaitResult:
        """Poll `check_conflicts` until the tier is free or the timeout elapses.

        A free tier is not reserved; the caller still has to `acquire`.

        Args:
            store_id (str): The store to watch.
            lock_type (LockType): The tier the caller wants to take.
            timeout (float): Maximum wait in seconds. 0 checks exactly once.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max(timeout, 0.0)
        while True:
            check = self.check_conflicts(store_id, lock_type)
            if check.can_proceed:
                return WaitResult(success=True)
            remaining = deadline - loop.time()
            if remaining <= 0:
                return WaitResult(success=False, error=f"Timed out after {timeout:.1f}s waiting for {LockType(lock_type).name}: {check.reason}")
            await asyncio.sleep(min(self.poll_interval, remaining))

    def force_release_all(self, store_id: str) -> int:
        """
        Drops every lease of a store, e.g. after an operator intervention.

        Returns:
            int: Number of leases removed.
        """
        leases = self._leases.pop(store_id, {})
        if leases:
            self.logging.warning("Force-released %d lease(s) for store %s.", len(leases), store_id)
        return len(leases)

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _find_blocking(self, store_id: str, lock_type: LockType) -> list[Lease]:
        return [
            lease for lease in self._leases.get(store_id, {}).values()
            if lease.lock_type >= lock_type or (lease.lock_type in SYNC_TIERS and lock_type in SYNC_TIERS)
        ]

    def _sweep_expired(self, store_id: str) -> None:
        leases = self._leases.get(store_id)
        if not leases:
            return
        now = self._clock()
        for lease_id, lease in list(leases.items()):
            if lease.is_expired(now):
                del leases[lease_id]
                self.logging.warning(
                    "Lease %s (%s, %s) for store %s expired after %.1fs and was removed.",
                    lease_id, lease.lock_type.name, lease.operation, store_id, lease.age(now),
                )
        if not leases:
            del self._leases[store_id]

    @staticmethod
    def _describe_conflict(lock_type: LockType, blocking: list[Lease]) -> str:
        held = ", ".join(f"{lease.lock_type.name} ({lease.operation})" for lease in blocking)
        return f"{lock_type.name} is blocked by active lease(s): {held}"


##########################################
############# LOCK GROUPS ################
##########################################

class _TypedLocks:
    """Binds a LockManager to one lock tier."""

    lock_type: LockType
    operation: str

    def __init__(self, lock_manager: LockManager) -> None:
        self._lock_manager = lock_manager

    def acquire(self, store_id: str, reason: str = "") -> AcquireResult:
        return self._lock_manager.acquire(store_id, self.lock_type, self.operation, reason)

    def release(self, store_id: str, lease_id: str | None) -> ReleaseResult:
        return self._lock_manager.release(store_id, lease_id)

    def check(self, store_id: str) -> ConflictCheck:
        return self._lock_manager.check_conflicts(store_id, self.lock_type)


class BackgroundSyncLocks(_TypedLocks):
    lock_type = LockType.BACKGROUND_SYNC
    operation = "background_sync"


class ManualSyncLocks(_TypedLocks):
    lock_type = LockType.MANUAL_SYNC
    operation = "manual_sync"


class ReconnectionLocks(_TypedLocks):
    lock_type = LockType.RECONNECTION
    operation = "reconnection"


class DeletionLocks(_TypedLocks):
    lock_type = LockType.DELETION
    operation = "deletion"
