"""
Check History Store: append-only log of per-domain check outcomes and of
periodic reconciliation reports.
"""

from typing import Any, Optional

from .models import CheckResult, PeriodicReport, Summary, utc_now
from .state_store import StateStore


class CheckHistoryStore:
    """Append-only history over the shared StateStore."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    async def append(self, result: CheckResult) -> CheckResult:
        """Insert one immutable check result. There is no update or merge."""
        await self._store.append_check_result(result)
        return result

    async def recent(self, name: str, limit: int = 50) -> list[CheckResult]:
        """A domain's check results, newest first."""
        return await self._store.check_results(domain=name, limit=limit)

    async def latest(self, limit: int = 100) -> list[CheckResult]:
        """The most recent check results across all domains, newest first."""
        return await self._store.check_results(limit=limit)

    async def delete_for_domain(self, name: str) -> int:
        return await self._store.delete_check_results(name)

    async def save_periodic_report(
        self,
        cycle_timestamp: str,
        domains_checked: int,
        summary: Summary,
        details: Optional[dict[str, Any]] = None,
    ) -> PeriodicReport:
        """
        Insert one report for a reconciliation cycle.

        Raises:
            PersistenceError: If the write fails
        """
        report = PeriodicReport(
            timestamp=cycle_timestamp,
            domains_checked=domains_checked,
            summary=summary,
            details=dict(details or {}),
            created_at=utc_now(),
        )
        await self._store.insert_report(report)
        return report

    async def recent_reports(self, limit: int = 10) -> list[PeriodicReport]:
        """Periodic reports, newest first."""
        return await self._store.reports(limit=limit)

    async def report_count(self) -> int:
        return len(await self._store.reports())
