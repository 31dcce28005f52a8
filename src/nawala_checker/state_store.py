"""
State Store module: the persistence backend behind the domain registry and
the check history.

Holds three collections (domains keyed by unique name, check results,
periodic reports) in memory and, when a file path is configured, writes them
as a single HMAC-protected JSON document after every mutation. All mutations
are serialized through one asyncio lock, so overlapping manual checks and the
scheduled cycle never interleave inside a single record update.

A failed write raises PersistenceError and leaves the in-memory collections
as they were before the failed operation.
"""

import asyncio
import copy
import hashlib
import hmac
import json
from pathlib import Path
from typing import Callable, Optional

from .enums import ErrorCode
from .exceptions import DuplicateDomainError, NotFoundError, PersistenceError, TamperingError
from .models import CheckResult, Domain, PeriodicReport, PersistedData, utc_now


class StateStore:
    """
    Lock-protected in-memory collections with optional HMAC file persistence.

    ``file_path=None`` gives a purely in-memory store.
    """

    VERSION = 1

    def __init__(self, file_path: Optional[Path] = None, hmac_secret: str = "") -> None:
        """
        Initialize the state store.

        Args:
            file_path: Path to the state file (JSON format), or None
            hmac_secret: Secret key for HMAC computation
        """
        self._file_path = file_path
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._lock = asyncio.Lock()
        self._created_at = utc_now()
        self._domains: dict[str, Domain] = {}
        self._check_results: list[CheckResult] = []
        self._reports: list[PeriodicReport] = []

    def load(self) -> bool:
        """
        Load state from file and validate its HMAC.

        Returns:
            True if a state file was loaded, False if none exists yet

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If the file cannot be read or parsed
        """
        if self._file_path is None or not self._file_path.exists():
            return False

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code=ErrorCode.PERSISTENCE_FAILED.value,
                message=f"Failed to parse state file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise PersistenceError(
                code=ErrorCode.PERSISTENCE_FAILED.value,
                message=f"Failed to read state file: {e}",
                details={"file_path": str(self._file_path)},
            )

        persisted = PersistedData(
            version=raw.get("version", self.VERSION),
            created_at=raw.get("created_at", ""),
            updated_at=raw.get("updated_at", ""),
            data=raw.get("data", {}),
            hmac=raw.get("hmac", ""),
        )

        if not self.validate_hmac(persisted.hmac, self.compute_hmac(persisted.data)):
            raise TamperingError(
                code=ErrorCode.HMAC_MISMATCH.value,
                message="HMAC validation failed - data may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        try:
            domains = [Domain.from_dict(d) for d in persisted.data.get("domains", [])]
            self._check_results = [
                CheckResult.from_dict(r) for r in persisted.data.get("check_results", [])
            ]
            self._reports = [
                PeriodicReport.from_dict(r) for r in persisted.data.get("reports", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(
                code=ErrorCode.PERSISTENCE_FAILED.value,
                message=f"State file has an unexpected layout: {e}",
                details={"file_path": str(self._file_path)},
            )

        self._domains = {d.name: d for d in domains}
        self._created_at = persisted.created_at or self._created_at
        return True

    # Domains

    async def insert_domain(self, domain: Domain) -> Domain:
        """
        Insert a new domain record.

        Raises:
            DuplicateDomainError: If a domain with the same name exists
            PersistenceError: If the write fails
        """
        async with self._lock:
            if domain.name in self._domains:
                raise DuplicateDomainError(domain.name)
            self._domains[domain.name] = copy.deepcopy(domain)
            try:
                self._write()
            except PersistenceError:
                del self._domains[domain.name]
                raise
            return copy.deepcopy(domain)

    async def get_domain(self, name: str) -> Optional[Domain]:
        async with self._lock:
            domain = self._domains.get(name)
            return copy.deepcopy(domain) if domain else None

    async def list_domains(self) -> list[Domain]:
        async with self._lock:
            return [copy.deepcopy(d) for d in self._domains.values()]

    async def update_domain(self, name: str, mutate: Callable[[Domain], None]) -> Domain:
        """
        Apply ``mutate`` to one domain record as a single serialized update.

        Raises:
            NotFoundError: If the domain does not exist
            PersistenceError: If the write fails (the record is left unchanged)
        """
        async with self._lock:
            current = self._domains.get(name)
            if current is None:
                raise NotFoundError(name)
            updated = copy.deepcopy(current)
            mutate(updated)
            updated.updated_at = utc_now()
            self._domains[name] = updated
            try:
                self._write()
            except PersistenceError:
                self._domains[name] = current
                raise
            return copy.deepcopy(updated)

    async def delete_domain(self, name: str) -> Domain:
        """
        Remove one domain record.

        Raises:
            NotFoundError: If the domain does not exist
            PersistenceError: If the write fails
        """
        async with self._lock:
            removed = self._domains.pop(name, None)
            if removed is None:
                raise NotFoundError(name)
            try:
                self._write()
            except PersistenceError:
                self._domains[name] = removed
                raise
            return removed

    # Check results

    async def append_check_result(self, result: CheckResult) -> None:
        async with self._lock:
            self._check_results.append(result)
            try:
                self._write()
            except PersistenceError:
                self._check_results.pop()
                raise

    async def check_results(
        self, domain: Optional[str] = None, limit: Optional[int] = None
    ) -> list[CheckResult]:
        """Check results, newest first, optionally for one domain only."""
        async with self._lock:
            results = [
                r for r in self._check_results if domain is None or r.domain == domain
            ]
        return _newest_first(results, limit)

    async def delete_check_results(self, domain: str) -> int:
        """Delete every check result for ``domain``. Returns how many went."""
        async with self._lock:
            kept = [r for r in self._check_results if r.domain != domain]
            removed = len(self._check_results) - len(kept)
            if removed == 0:
                return 0
            previous = self._check_results
            self._check_results = kept
            try:
                self._write()
            except PersistenceError:
                self._check_results = previous
                raise
            return removed

    # Periodic reports

    async def insert_report(self, report: PeriodicReport) -> None:
        async with self._lock:
            self._reports.append(report)
            try:
                self._write()
            except PersistenceError:
                self._reports.pop()
                raise

    async def reports(self, limit: Optional[int] = None) -> list[PeriodicReport]:
        async with self._lock:
            reports = list(self._reports)
        return _newest_first(reports, limit)

    # File handling

    def _write(self) -> None:
        """Serialize all collections to disk. Caller holds the lock."""
        if self._file_path is None:
            return

        data = {
            "domains": [d.to_dict() for d in self._domains.values()],
            "check_results": [r.to_dict() for r in self._check_results],
            "reports": [r.to_dict() for r in self._reports],
        }
        persisted = PersistedData(
            version=self.VERSION,
            created_at=self._created_at,
            updated_at=utc_now(),
            data=data,
            hmac=self.compute_hmac(data),
        )

        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(
                    {
                        "version": persisted.version,
                        "created_at": persisted.created_at,
                        "updated_at": persisted.updated_at,
                        "data": persisted.data,
                        "hmac": persisted.hmac,
                    },
                    f,
                    indent=2,
                    sort_keys=True,
                )
            tmp_path.replace(self._file_path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(
                code=ErrorCode.PERSISTENCE_FAILED.value,
                message=f"Failed to write state file: {e}",
                details={"file_path": str(self._file_path)},
            )

    def compute_hmac(self, data: dict) -> str:
        """
        Compute HMAC-SHA256 over serialized data.

        Args:
            data: Dictionary to compute HMAC over

        Returns:
            Hexadecimal HMAC string
        """
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def validate_hmac(self, stored_hmac: str, computed_hmac: str) -> bool:
        """Validate HMAC using constant-time comparison."""
        return hmac.compare_digest(stored_hmac, computed_hmac)

    @property
    def file_path(self) -> Optional[Path]:
        """Get the state file path."""
        return self._file_path


def _newest_first(records: list, limit: Optional[int]) -> list:
    # sorted() is stable: equal timestamps keep reverse insertion order
    ordered = sorted(reversed(records), key=lambda r: r.timestamp, reverse=True)
    if limit is not None:
        ordered = ordered[: max(limit, 0)]
    return ordered
