"""
Reconciliation Engine for the Nawala checker system.

One cycle walks Idle -> Fetching -> Querying -> Persisting -> Notifying -> Idle:

- Fetching: load the active hourly domains. An empty set ends the cycle
  quietly (no report, no notification).
- Querying: one oracle call for the whole set, no chunking. The oracle
  client records every per-domain verdict before it returns.
- Persisting: partition the verdicts into a summary and save one periodic
  report. Per-domain records written during Querying are never rolled back.
- Notifying: hand the summary to the notifier, which replaces the previous
  summary message.

A failure in Fetching, Querying or Persisting moves the cycle to Failed: the
error is logged and an error notice is published (best effort), then the
engine is Idle again. There is no retry; the next tick is the next chance.

At most one cycle runs at a time. The busy flag is set before the first
await, so a trigger that arrives while a cycle is running returns a skipped
outcome without waiting. Manual checks (``check_domains``/``check_domain``)
go straight to the oracle client and never touch the flag.
"""

from typing import Any, Optional, Protocol

from .audit_logger import AuditLogger
from .enums import CheckFrequency, CycleState, CycleStatus, ErrorCode, LogLevel
from .exceptions import InvalidFormatError, NawalaCheckerError, OracleRequestError, ValidationError
from .history import CheckHistoryStore
from .models import BatchSummary, CheckResult, CycleOutcome, utc_now
from .notifications import Notifier
from .oracle_client import OracleClient, generate_summary, interpret_verdict
from .registry import DomainRegistry


class ScheduleInfo(Protocol):
    """What the engine reports about the timer driving it."""

    @property
    def is_running(self) -> bool: ...

    @property
    def cron_expression(self) -> Optional[str]: ...


class ReconciliationEngine:
    """
    Runs reconciliation cycles and manual checks.

    All collaborators are passed in; nothing is looked up globally.
    """

    def __init__(
        self,
        registry: DomainRegistry,
        oracle: OracleClient,
        history: CheckHistoryStore,
        notifier: Optional[Notifier] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._registry = registry
        self._oracle = oracle
        self._history = history
        self._notifier = notifier
        self._logger = logger
        self._state = CycleState.IDLE
        self._busy = False
        self._schedule: Optional[ScheduleInfo] = None

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def has_notifier(self) -> bool:
        return self._notifier is not None

    def attach_schedule(self, schedule: ScheduleInfo) -> None:
        self._schedule = schedule

    async def trigger(self) -> CycleOutcome:
        """Run one cycle now, unless one is already running."""
        self._log(LogLevel.INFO, "Reconciliation triggered", {"busy": self._busy})
        return await self.run_cycle()

    async def run_cycle(self) -> CycleOutcome:
        """
        Run one full reconciliation cycle.

        Returns:
            CycleOutcome; ``status`` is SKIPPED if a cycle was already running
        """
        started_at = utc_now()
        if self._busy:
            return CycleOutcome(
                status=CycleStatus.SKIPPED,
                started_at=started_at,
                finished_at=started_at,
            )

        self._busy = True
        try:
            return await self._run(started_at)
        finally:
            self._state = CycleState.IDLE
            self._busy = False

    async def _run(self, started_at: str) -> CycleOutcome:
        self._state = CycleState.FETCHING
        try:
            names = await self._registry.list_eligible_for_frequency(CheckFrequency.HOURLY)
        except NawalaCheckerError as e:
            return await self._fail(CycleState.FETCHING, e.message, started_at)

        if not names:
            self._log(LogLevel.DEBUG, "No eligible domains, cycle skipped", {})
            return CycleOutcome(
                status=CycleStatus.EMPTY,
                started_at=started_at,
                finished_at=utc_now(),
            )

        self._state = CycleState.QUERYING
        self._log(
            LogLevel.INFO,
            f"Checking {len(names)} domain(s)",
            {"domains": names},
        )
        result = await self._oracle.check(names)
        if not result.success:
            return await self._fail(
                CycleState.QUERYING, result.error or "Oracle request failed", started_at
            )

        self._state = CycleState.PERSISTING
        batch = generate_summary(result)
        try:
            report = await self._history.save_periodic_report(
                cycle_timestamp=result.timestamp,
                domains_checked=len(names),
                summary=batch.summary,
                details=batch.details,
            )
        except NawalaCheckerError as e:
            return await self._fail(
                CycleState.PERSISTING,
                f"Failed to save periodic report: {e.message}",
                started_at,
                summary=batch,
            )

        self._state = CycleState.NOTIFYING
        if self._notifier is not None:
            await self._notifier.publish(batch)

        self._log(
            LogLevel.INFO,
            "Reconciliation cycle completed",
            batch.summary.to_dict(),
        )
        return CycleOutcome(
            status=CycleStatus.COMPLETED,
            started_at=started_at,
            finished_at=utc_now(),
            summary=batch,
            report=report,
        )

    async def _fail(
        self,
        failed_state: CycleState,
        error: str,
        started_at: str,
        summary: Optional[BatchSummary] = None,
    ) -> CycleOutcome:
        self._state = CycleState.FAILED
        self._log(
            LogLevel.ERROR,
            f"Reconciliation failed while {failed_state.value}: {error}",
            {"failed_state": failed_state.value},
        )
        if self._notifier is not None:
            await self._notifier.publish_error(error)

        return CycleOutcome(
            status=CycleStatus.FAILED,
            started_at=started_at,
            finished_at=utc_now(),
            failed_state=failed_state,
            summary=summary,
            error=error,
        )

    async def status(self) -> dict[str, Any]:
        """Engine and schedule status plus the current eligible set."""
        try:
            domains = await self._registry.list_eligible_for_frequency(CheckFrequency.HOURLY)
            error = None
        except NawalaCheckerError as e:
            domains, error = [], e.message

        status: dict[str, Any] = {
            "is_running": self._schedule.is_running if self._schedule else False,
            "state": self._state.value,
            "busy": self._busy,
            "domains_to_check": domains,
            "has_notifier": self.has_notifier,
            "cron_expression": self._schedule.cron_expression if self._schedule else None,
        }
        if error:
            status["error"] = error
        return status

    # Manual checks

    def prepare_batch(self, names: list[str]) -> list[str]:
        """
        Validate and normalize a manual batch without any I/O.

        Raises:
            ValidationError: If the batch is empty or exceeds the batch limit
            InvalidFormatError: If any name fails the syntax check
        """
        if not names:
            raise ValidationError(
                code=ErrorCode.EMPTY_BATCH.value,
                message="Please provide an array of domains",
            )

        limit = self._oracle.max_batch_size
        if len(names) > limit:
            raise ValidationError(
                code=ErrorCode.BATCH_TOO_LARGE.value,
                message=f"Maximum {limit} domains allowed per request",
                details={"count": len(names), "limit": limit},
            )

        validator = self._registry.validator
        canonical: list[str] = []
        invalid: list[str] = []
        for raw in names:
            result = validator.validate(raw if isinstance(raw, str) else None)
            if not result.valid:
                invalid.append(str(raw))
            elif result.canonical_domain not in canonical:
                canonical.append(result.canonical_domain)

        if invalid:
            raise InvalidFormatError(", ".join(invalid), details={"invalid": invalid})
        return canonical

    async def check_domains(self, names: list[str]) -> BatchSummary:
        """
        Check an ad hoc batch of names outside the cycle.

        Registered names get their status and history updated; other names
        only reach the LastCheckCache. No periodic report is written.

        Raises:
            ValidationError / InvalidFormatError: See ``prepare_batch``
            OracleRequestError: If the oracle request fails
        """
        canonical = self.prepare_batch(names)
        result = await self._oracle.check(canonical)
        if not result.success:
            raise OracleRequestError(
                code=ErrorCode.ORACLE_REQUEST_FAILED.value,
                message=result.error or "Oracle request failed",
                details={"domains": canonical},
            )
        return generate_summary(result)

    async def check_domain(self, name: str) -> CheckResult:
        """
        Check a single name outside the cycle.

        Raises:
            InvalidFormatError: If the name fails the syntax check
            OracleRequestError: If the oracle request fails
        """
        canonical = self._registry.validator.require_valid(name)
        result = await self._oracle.check(canonical)
        if not result.success:
            raise OracleRequestError(
                code=ErrorCode.ORACLE_REQUEST_FAILED.value,
                message=result.error or "Oracle request failed",
                details={"domain": canonical},
            )
        return CheckResult(
            domain=canonical,
            blocked=interpret_verdict(result.data, canonical),
            timestamp=result.timestamp,
            response_time_ms=result.response_time_ms,
        )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "ReconciliationEngine", message, data)
