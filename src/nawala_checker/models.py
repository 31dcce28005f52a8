"""
Data models for the Nawala checker system.

This module defines the records kept by the stores (domains, check results,
periodic reports), the oracle result and summary shapes passed between
components, and the persisted-file wrapper.

Wire format (``to_dict``/``from_dict``) uses camelCase keys, matching the
REST surface.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .enums import CheckFrequency, CycleState, CycleStatus


def utc_now() -> str:
    """Current time as an ISO 8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class DomainStatus:
    """Last known verdict for a domain. ``blocked`` is None until checked."""

    blocked: Optional[bool] = None
    timestamp: Optional[str] = None

    def to_dict(self) -> dict:
        return {"blocked": self.blocked, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "DomainStatus":
        data = data or {}
        return cls(blocked=data.get("blocked"), timestamp=data.get("timestamp"))


@dataclass
class Domain:
    """A monitored domain name and its last known status."""

    name: str  # normalized: trimmed, lowercase
    description: str = ""
    is_active: bool = True
    check_frequency: CheckFrequency = CheckFrequency.HOURLY
    last_checked: Optional[str] = None
    last_status: DomainStatus = field(default_factory=DomainStatus)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "isActive": self.is_active,
            "checkFrequency": self.check_frequency.value,
            "lastChecked": self.last_checked,
            "lastStatus": self.last_status.to_dict(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Domain":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            is_active=data.get("isActive", True),
            check_frequency=CheckFrequency(data.get("checkFrequency", "hourly")),
            last_checked=data.get("lastChecked"),
            last_status=DomainStatus.from_dict(data.get("lastStatus")),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


@dataclass(frozen=True)
class CheckResult:
    """One immutable check outcome for one domain."""

    domain: str
    blocked: bool
    timestamp: str
    response_time_ms: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "blocked": self.blocked,
            "timestamp": self.timestamp,
            "responseTime": self.response_time_ms,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CheckResult":
        return cls(
            domain=data["domain"],
            blocked=bool(data["blocked"]),
            timestamp=data["timestamp"],
            response_time_ms=data.get("responseTime"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class Summary:
    """Aggregate counts and name partitions for one batch of verdicts."""

    total_checked: int
    blocked: int
    unblocked: int
    blocked_domains: tuple[str, ...] = ()
    unblocked_domains: tuple[str, ...] = ()

    @classmethod
    def from_partition(
        cls, blocked_domains: list[str], unblocked_domains: list[str]
    ) -> "Summary":
        """Build a summary whose counts always agree with its name lists."""
        return cls(
            total_checked=len(blocked_domains) + len(unblocked_domains),
            blocked=len(blocked_domains),
            unblocked=len(unblocked_domains),
            blocked_domains=tuple(blocked_domains),
            unblocked_domains=tuple(unblocked_domains),
        )

    def to_dict(self) -> dict:
        return {
            "totalChecked": self.total_checked,
            "blocked": self.blocked,
            "unblocked": self.unblocked,
            "blockedDomains": list(self.blocked_domains),
            "unblockedDomains": list(self.unblocked_domains),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Summary":
        return cls.from_partition(
            list(data.get("blockedDomains", [])),
            list(data.get("unblockedDomains", [])),
        )


@dataclass(frozen=True)
class PeriodicReport:
    """Immutable record of one successful reconciliation cycle."""

    timestamp: str
    domains_checked: int
    summary: Summary
    details: dict = field(default_factory=dict)  # raw oracle response by domain
    created_at: str = ""

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "domainsChecked": self.domains_checked,
            "summary": self.summary.to_dict(),
            "details": self.details,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PeriodicReport":
        return cls(
            timestamp=data["timestamp"],
            domains_checked=data.get("domainsChecked", 0),
            summary=Summary.from_dict(data.get("summary", {})),
            details=data.get("details", {}),
            created_at=data.get("createdAt", ""),
        )


@dataclass(frozen=True)
class LastCheck:
    """Most recent in-memory verdict for a name (not authoritative)."""

    blocked: bool
    timestamp: str

    def to_dict(self) -> dict:
        return {"blocked": self.blocked, "timestamp": self.timestamp}


@dataclass
class OracleResult:
    """Outcome of one batched oracle query.

    On failure ``data`` is empty: a failed batch never carries partial verdicts.
    """

    success: bool
    timestamp: str
    data: dict[str, Any] = field(default_factory=dict)
    checked_domains: list[str] = field(default_factory=list)
    error: Optional[str] = None
    response_time_ms: float = 0.0


@dataclass
class BatchSummary:
    """Summary of one oracle batch, as returned to callers and notifiers."""

    success: bool
    timestamp: str
    summary: Optional[Summary] = None
    details: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.success:
            return {
                "success": False,
                "error": self.error,
                "timestamp": self.timestamp,
            }
        return {
            "success": True,
            "timestamp": self.timestamp,
            "summary": self.summary.to_dict() if self.summary else None,
            "details": self.details,
        }


@dataclass(frozen=True)
class DomainStatistics:
    """Registry counts plus a global rolling sample of recent verdicts."""

    total_domains: int
    active_domains: int
    hourly_domains: int
    recent_checks: int
    blocked_count: int
    unblocked_count: int

    def to_dict(self) -> dict:
        return {
            "totalDomains": self.total_domains,
            "activeDomains": self.active_domains,
            "hourlyDomains": self.hourly_domains,
            "recentChecks": self.recent_checks,
            "blockedCount": self.blocked_count,
            "unblockedCount": self.unblocked_count,
        }


@dataclass
class CycleOutcome:
    """What one reconciliation trigger did."""

    status: CycleStatus
    started_at: str
    finished_at: Optional[str] = None
    failed_state: Optional[CycleState] = None  # state the cycle failed in
    summary: Optional[BatchSummary] = None
    report: Optional[PeriodicReport] = None
    error: Optional[str] = None


@dataclass
class PersistedData:
    """
    Generic wrapper for all persisted data with HMAC protection.

    All data stored to disk uses this format to ensure integrity.
    """

    version: int
    created_at: str
    updated_at: str
    data: dict
    hmac: str  # HMAC-SHA256 over json.dumps(data, sort_keys=True)
