"""
Block-Check Oracle Client.

Wraps the single batched query to the external block-check service: every
name in the batch is joined into one ``domains`` query parameter and the
service answers with a JSON object keyed by domain name. Any transport error,
timeout, non-2xx status or non-object body fails the whole batch; there are
no partial results and no retries within one call.

On success every name in the batch is recorded in the LastCheckCache and in
the Domain Registry. Names the registry does not know (ad hoc checks) and
individual registry failures are logged and skipped, so one bad record never
fails the batch for the caller.
"""

import time
from typing import Any, Optional, Protocol, Union

import httpx

from .audit_logger import AuditLogger
from .config import OracleConfig
from .enums import LogLevel
from .exceptions import NawalaCheckerError, NotFoundError
from .models import BatchSummary, LastCheck, OracleResult, Summary, utc_now


class OracleFetchError(Exception):
    """Internal: any reason a batch request produced no usable data."""


class CheckRecorder(Protocol):
    """The part of the Domain Registry the client writes verdicts to."""

    async def record_check(
        self,
        name: str,
        blocked: bool,
        response_time_ms: Optional[float] = None,
        error: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Any: ...


def interpret_verdict(raw: Any, name: str) -> bool:
    """
    Turn the oracle's raw response into a verdict for one name.

    Fail-open: a missing key, a non-object entry or a ``blocked`` field that
    is not literally ``true`` all count as "not blocked". This is the only
    place that decides how raw oracle data maps to a verdict.
    """
    if not isinstance(raw, dict):
        return False
    entry = raw.get(name)
    if not isinstance(entry, dict):
        return False
    return entry.get("blocked") is True


def generate_summary(result: OracleResult) -> BatchSummary:
    """
    Partition a batch's verdicts into blocked and unblocked names.

    The requested names are partitioned (the response keys are used only if
    the result carries no request list), so the summary always agrees with
    the per-domain records written for the same batch.
    """
    if not result.success:
        return BatchSummary(
            success=False,
            timestamp=result.timestamp,
            error=result.error,
        )

    names = list(result.checked_domains) or list(result.data.keys())
    blocked = [n for n in names if interpret_verdict(result.data, n)]
    unblocked = [n for n in names if not interpret_verdict(result.data, n)]

    return BatchSummary(
        success=True,
        timestamp=result.timestamp,
        summary=Summary.from_partition(blocked, unblocked),
        details=dict(result.data),
    )


class LastCheckCache:
    """Volatile name -> most recent verdict map. Not authoritative."""

    def __init__(self) -> None:
        self._entries: dict[str, LastCheck] = {}

    def put(self, name: str, blocked: bool, timestamp: str) -> None:
        self._entries[name] = LastCheck(blocked=blocked, timestamp=timestamp)

    def get(self, name: str) -> Optional[LastCheck]:
        return self._entries.get(name)

    def all(self) -> dict[str, LastCheck]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class OracleClient:
    """
    Async client for the block-check oracle.

    ``transport`` lets tests plug in an ``httpx.MockTransport``; with
    ``simulation_mode`` no request is made and every name is reported as
    not blocked.
    """

    def __init__(
        self,
        config: Optional[OracleConfig] = None,
        recorder: Optional[CheckRecorder] = None,
        cache: Optional[LastCheckCache] = None,
        logger: Optional[AuditLogger] = None,
        simulation_mode: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or OracleConfig()
        self._recorder = recorder
        self._cache = cache if cache is not None else LastCheckCache()
        self._logger = logger
        self._simulation_mode = simulation_mode
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "OracleClient":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def cache(self) -> LastCheckCache:
        return self._cache

    @property
    def max_batch_size(self) -> int:
        return self._config.max_batch_size

    def set_recorder(self, recorder: CheckRecorder) -> None:
        self._recorder = recorder

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers={"User-Agent": self._config.user_agent},
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def check(self, domains: Union[str, list[str]]) -> OracleResult:
        """
        Query the oracle once for a name or a list of names.

        Args:
            domains: A single name or a non-empty list of names

        Returns:
            OracleResult; on failure ``success`` is False and ``data`` empty
        """
        names = [domains] if isinstance(domains, str) else list(domains)
        start_time = time.perf_counter()

        if not names:
            return OracleResult(
                success=False,
                timestamp=utc_now(),
                error="No domains given",
            )

        if self._simulation_mode:
            data: Any = {name: {"blocked": False} for name in names}
        else:
            try:
                data = await self._fetch(names)
            except OracleFetchError as e:
                self._log(
                    LogLevel.ERROR,
                    f"Oracle request failed: {e}",
                    {"domains": names},
                )
                return OracleResult(
                    success=False,
                    timestamp=utc_now(),
                    checked_domains=names,
                    error=str(e),
                    response_time_ms=self._elapsed_ms(start_time),
                )

        result = OracleResult(
            success=True,
            timestamp=utc_now(),
            data=data,
            checked_domains=names,
            response_time_ms=self._elapsed_ms(start_time),
        )
        await self._record(result)
        return result

    async def _fetch(self, names: list[str]) -> dict:
        client = self._ensure_client()
        url = self._config.base_url.rstrip("/") + "/"
        try:
            response = await client.get(url, params={"domains": ",".join(names)})
        except httpx.TimeoutException:
            raise OracleFetchError(
                f"Request timed out after {self._config.timeout_seconds}s"
            )
        except httpx.HTTPError as e:
            raise OracleFetchError(f"Connection error: {e}")

        if not response.is_success:
            raise OracleFetchError(f"Unexpected HTTP status: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise OracleFetchError(f"Failed to parse oracle response: {e}")

        if not isinstance(data, dict):
            raise OracleFetchError("Oracle response is not a JSON object")
        return data

    async def _record(self, result: OracleResult) -> None:
        """Write each verdict to the cache and the registry, one at a time."""
        for name in result.checked_domains:
            blocked = interpret_verdict(result.data, name)
            self._cache.put(name, blocked, result.timestamp)

            if self._recorder is None:
                continue
            try:
                await self._recorder.record_check(
                    name,
                    blocked,
                    response_time_ms=result.response_time_ms,
                    timestamp=result.timestamp,
                )
            except NotFoundError:
                self._log(
                    LogLevel.DEBUG,
                    f"{name} is not registered; status kept in cache only",
                    {"domain": name},
                )
            except NawalaCheckerError as e:
                self._log(
                    LogLevel.ERROR,
                    f"Error updating domain status for {name}",
                    {"domain": name, "error": e.message, "code": e.code},
                )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "OracleClient", message, data)

    def _elapsed_ms(self, start_time: float) -> float:
        """Calculate elapsed time in milliseconds."""
        return (time.perf_counter() - start_time) * 1000

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
