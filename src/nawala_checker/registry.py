"""
Domain Registry: the durable set of monitored domains and their last known
status.

Every name is normalized (trimmed, lowercased) before it is stored or looked
up. Recording a check updates the domain's status fields and appends one
CheckResult to the history. Removing a domain is a two-step operation: the
domain record goes first, then its history. If the history step fails the
domain stays deleted and the orphaned results are left for a later removal;
the failure is logged, not raised.
"""

from __future__ import annotations

from typing import Optional, Union

from .audit_logger import AuditLogger
from .domain_validator import DomainValidator
from .enums import CheckFrequency, ErrorCode, LogLevel
from .exceptions import NawalaCheckerError, ValidationError
from .history import CheckHistoryStore
from .models import CheckResult, Domain, DomainStatistics, DomainStatus, utc_now
from .state_store import StateStore


RECENT_SAMPLE_SIZE = 100


class DomainRegistry:
    """Owns domain records; the authoritative source of ``last_status``."""

    def __init__(
        self,
        store: StateStore,
        history: CheckHistoryStore,
        validator: Optional[DomainValidator] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._store = store
        self._history = history
        self._validator = validator or DomainValidator()
        self._logger = logger

    @property
    def validator(self) -> DomainValidator:
        return self._validator

    async def add(
        self,
        name: str,
        description: Optional[str] = None,
        frequency: Union[CheckFrequency, str, None] = CheckFrequency.HOURLY,
    ) -> Domain:
        """
        Register a new active domain.

        Raises:
            InvalidFormatError: If the name fails the syntax check
            ValidationError: If the frequency is not a known class
            DuplicateDomainError: If the normalized name already exists
        """
        canonical = self._validator.require_valid(name)
        check_frequency = parse_frequency(frequency)
        now = utc_now()

        domain = Domain(
            name=canonical,
            description=(description or "").strip(),
            is_active=True,
            check_frequency=check_frequency,
            created_at=now,
            updated_at=now,
        )
        stored = await self._store.insert_domain(domain)
        self._log(LogLevel.INFO, f"Domain added: {canonical}", {"domain": canonical})
        return stored

    async def get(self, name: str) -> Optional[Domain]:
        return await self._store.get_domain(self._validator.normalize(name))

    async def list(self, active_only: bool = False) -> list[Domain]:
        """All domains (or only active ones), ordered by name ascending."""
        domains = await self._store.list_domains()
        if active_only:
            domains = [d for d in domains if d.is_active]
        return sorted(domains, key=lambda d: d.name)

    async def list_eligible_for_frequency(self, frequency: CheckFrequency) -> list[str]:
        """Names of active domains in the given frequency class, by name."""
        domains = await self.list(active_only=True)
        return [d.name for d in domains if d.check_frequency == frequency]

    async def record_check(
        self,
        name: str,
        blocked: bool,
        response_time_ms: Optional[float] = None,
        error: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Domain:
        """
        Store a verdict as the domain's last status and append it to history.

        ``timestamp`` defaults to now; the oracle client passes the batch time.

        Raises:
            NotFoundError: If the domain is not registered
            PersistenceError: If the history append fails; the status update
                is kept
        """
        canonical = self._validator.normalize(name)
        now = timestamp or utc_now()

        def apply(domain: Domain) -> None:
            domain.last_checked = now
            domain.last_status = DomainStatus(blocked=blocked, timestamp=now)

        domain = await self._store.update_domain(canonical, apply)
        await self._history.append(
            CheckResult(
                domain=canonical,
                blocked=blocked,
                timestamp=now,
                response_time_ms=response_time_ms,
                error=error,
            )
        )
        return domain

    async def toggle_active(self, name: str) -> Domain:
        """
        Flip a domain's active flag.

        Raises:
            NotFoundError: If the domain is not registered
        """
        def flip(domain: Domain) -> None:
            domain.is_active = not domain.is_active

        domain = await self._store.update_domain(self._validator.normalize(name), flip)
        self._log(
            LogLevel.INFO,
            f"Domain {domain.name} is now {'active' if domain.is_active else 'inactive'}",
            {"domain": domain.name, "is_active": domain.is_active},
        )
        return domain

    async def remove(self, name: str) -> Domain:
        """
        Delete a domain and then its check history.

        Raises:
            NotFoundError: If the domain is not registered
        """
        canonical = self._validator.normalize(name)
        domain = await self._store.delete_domain(canonical)

        try:
            removed = await self._history.delete_for_domain(canonical)
        except NawalaCheckerError as e:
            self._log(
                LogLevel.ERROR,
                f"Domain {canonical} deleted but its history could not be removed",
                {"domain": canonical, "error": e.message},
            )
        else:
            self._log(
                LogLevel.INFO,
                f"Domain removed: {canonical}",
                {"domain": canonical, "check_results_removed": removed},
            )
        return domain

    async def statistics(self) -> DomainStatistics:
        """Registry counts plus verdict counts over the latest 100 checks overall."""
        domains = await self._store.list_domains()
        recent = await self._history.latest(RECENT_SAMPLE_SIZE)
        blocked = sum(1 for r in recent if r.blocked)

        return DomainStatistics(
            total_domains=len(domains),
            active_domains=sum(1 for d in domains if d.is_active),
            hourly_domains=sum(
                1 for d in domains
                if d.is_active and d.check_frequency == CheckFrequency.HOURLY
            ),
            recent_checks=len(recent),
            blocked_count=blocked,
            unblocked_count=len(recent) - blocked,
        )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "DomainRegistry", message, data)


def parse_frequency(value: Union[CheckFrequency, str, None]) -> CheckFrequency:
    """
    Coerce a frequency value; None and empty strings mean hourly.

    Raises:
        ValidationError: If the value is not hourly, daily or weekly
    """
    if isinstance(value, CheckFrequency):
        return value
    if value is None or not str(value).strip():
        return CheckFrequency.HOURLY
    try:
        return CheckFrequency(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            code=ErrorCode.INVALID_FREQUENCY.value,
            message="Check frequency must be one of: hourly, daily, weekly",
            details={"frequency": value},
        )
