"""Lease models for the per-store priority lock table."""

from datetime import datetime
from enum import IntEnum

from pydantic import BaseModel


class LockType(IntEnum):
    """Lock tiers in ascending priority. A lease blocks every request of equal or lower tier."""

    BACKGROUND_SYNC = 1
    MANUAL_SYNC = 2
    RECONNECTION = 3
    DELETION = 4


class Lease(BaseModel):
    """An active lease on one store.

    Attributes:
        lease_id:     Process-unique identifier returned to the holder.
        store_id:     The store the lease guards.
        lock_type:    The priority tier.
        operation:    Short operation name (e.g. "manual_sync").
        reason:       Human-readable reason, shown in status output.
        acquired_at:  Clock value at acquisition, used for expiry.
        started_at:   Wall-clock acquisition time, for display.
        timeout:      Seconds after which the lease is swept.
    """

    lease_id: str
    store_id: str
    lock_type: LockType
    operation: str
    reason: str = ""
    acquired_at: float
    started_at: datetime
    timeout: float

    def age(self, now: float) -> float:
        return now - self.acquired_at

    def is_expired(self, now: float) -> bool:
        return self.age(now) > self.timeout


class AcquireResult(BaseModel):
    granted: bool
    lease_id: str | None = None
    blocking_leases: list[Lease] = []
    reason: str | None = None


class ReleaseResult(BaseModel):
    released: bool


class ConflictCheck(BaseModel):
    has_conflicts: bool
    can_proceed: bool
    blocking_leases: list[Lease] = []
    reason: str | None = None


class WaitResult(BaseModel):
    success: bool
    error: str | None = None


class LockStatus(BaseModel):
    """Read-only snapshot of the lease table."""

    total_tenants: int
    total_leases: int
    leases_by_type: dict[str, int]
    per_tenant_detail: dict[str, list[Lease]]
