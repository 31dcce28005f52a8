"""
Scheduler module for the Nawala checker system.

Cron-compatible timing for the single recurring reconciliation job,
evaluated in one fixed IANA timezone (Asia/Jakarta by default). The
scheduler owns the start/stop lifecycle of its asyncio task and exposes
``trigger()`` so manual runs go through the same callback, and therefore
through the engine's busy guard, as timer runs.
"""

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .audit_logger import AuditLogger
from .enums import LogLevel


# Upper bound for next_after(); an expression like "0 0 30 2 *" never fires
MAX_SEARCH_YEARS = 5


class CronParseError(Exception):
    """Raised when a cron expression cannot be parsed."""

    def __init__(self, message: str, expression: str) -> None:
        self.message = message
        self.expression = expression
        super().__init__(f"{message}: '{expression}'")


@dataclass
class CronField:
    """Represents a parsed cron field with allowed values."""

    values: set[int]
    min_value: int
    max_value: int

    def matches(self, value: int) -> bool:
        return value in self.values

    @property
    def is_unrestricted(self) -> bool:
        return self.values == set(range(self.min_value, self.max_value + 1))


def cron_weekday(dt: datetime) -> int:
    """Cron day-of-week for a datetime: 0 = Sunday ... 6 = Saturday."""
    return (dt.weekday() + 1) % 7


@dataclass
class CronSchedule:
    """A parsed cron schedule bound to a timezone."""

    minute: CronField
    hour: CronField
    day_of_month: CronField
    month: CronField
    day_of_week: CronField
    original_expression: str
    tz: Any = timezone.utc

    def day_matches(self, dt: datetime) -> bool:
        # Both restricted: either may match (standard cron OR rule)
        dom_all = self.day_of_month.is_unrestricted
        dow_all = self.day_of_week.is_unrestricted

        if dom_all and dow_all:
            return True
        if dom_all:
            return self.day_of_week.matches(cron_weekday(dt))
        if dow_all:
            return self.day_of_month.matches(dt.day)
        return self.day_of_month.matches(dt.day) or self.day_of_week.matches(cron_weekday(dt))

    def matches(self, dt: datetime) -> bool:
        """Check if a datetime (converted to the schedule's timezone) matches."""
        if dt.tzinfo is not None:
            dt = dt.astimezone(self.tz)
        return (
            self.minute.matches(dt.minute)
            and self.hour.matches(dt.hour)
            and self.month.matches(dt.month)
            and self.day_matches(dt)
        )

    def next_after(self, dt: datetime) -> datetime:
        """
        The first firing minute strictly after ``dt``.

        Naive datetimes are read as wall time in the schedule's timezone. The
        result is timezone-aware in that timezone.

        Raises:
            CronParseError: If the schedule has no firing time in range
        """
        if dt.tzinfo is None:
            local = dt
        else:
            local = dt.astimezone(self.tz).replace(tzinfo=None)

        candidate = local.replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit = candidate + timedelta(days=366 * MAX_SEARCH_YEARS)

        while candidate <= limit:
            if not self.month.matches(candidate.month):
                year = candidate.year + (candidate.month == 12)
                month = candidate.month % 12 + 1
                candidate = candidate.replace(year=year, month=month, day=1, hour=0, minute=0)
                continue
            if not self.day_matches(candidate):
                candidate = (candidate + timedelta(days=1)).replace(hour=0, minute=0)
                continue
            if not self.hour.matches(candidate.hour):
                candidate = (candidate + timedelta(hours=1)).replace(minute=0)
                continue
            if not self.minute.matches(candidate.minute):
                candidate += timedelta(minutes=1)
                continue
            return candidate.replace(tzinfo=self.tz)

        raise CronParseError("Expression never fires", self.original_expression)


class CronParser:
    """Parser for cron expressions."""

    # Field definitions: (min, max, name)
    FIELD_DEFS = [
        (0, 59, "minute"),
        (0, 23, "hour"),
        (1, 31, "day_of_month"),
        (1, 12, "month"),
        (0, 7, "day_of_week"),  # 0 and 7 are both Sunday
    ]

    MONTH_NAMES = {
        "jan": 1, "feb": 2, "mar": 3, "apr": 4,
        "may": 5, "jun": 6, "jul": 7, "aug": 8,
        "sep": 9, "oct": 10, "nov": 11, "dec": 12,
    }

    DOW_NAMES = {
        "sun": 0, "mon": 1, "tue": 2, "wed": 3,
        "thu": 4, "fri": 5, "sat": 6,
    }

    def parse(self, expression: str, timezone_name: Optional[str] = None) -> CronSchedule:
        """
        Parse a cron expression into a CronSchedule.

        Supports standard 5-field cron expressions:
        - minute (0-59)
        - hour (0-23)
        - day of month (1-31)
        - month (1-12 or jan-dec)
        - day of week (0-7 or sun-sat, 0 and 7 = Sunday)

        A 6-field expression is accepted too; its leading seconds field is
        ignored. ``*``, lists (``,``), ranges (``-``) and steps (``/``) work
        in every field.

        Args:
            expression: The cron expression to parse
            timezone_name: IANA timezone the schedule runs in (default UTC)

        Raises:
            CronParseError: If the expression or timezone is invalid
        """
        expression = (expression or "").strip()
        if not expression:
            raise CronParseError("Empty cron expression", expression)

        tz: Any = timezone.utc
        if timezone_name:
            try:
                tz = ZoneInfo(timezone_name)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise CronParseError(f"Unknown timezone {timezone_name!r}", expression) from e

        fields = expression.split()
        if len(fields) == 6:
            fields = fields[1:]
        elif len(fields) != 5:
            raise CronParseError(
                f"Invalid number of fields (expected 5 or 6, got {len(fields)})",
                expression,
            )

        parsed_fields = []
        for field_str, (min_val, max_val, name) in zip(fields, self.FIELD_DEFS):
            try:
                parsed_fields.append(self._parse_field(field_str, min_val, max_val, name))
            except ValueError as e:
                raise CronParseError(f"Invalid {name} field: {e}", expression) from e

        return CronSchedule(
            minute=parsed_fields[0],
            hour=parsed_fields[1],
            day_of_month=parsed_fields[2],
            month=parsed_fields[3],
            day_of_week=parsed_fields[4],
            original_expression=expression,
            tz=tz,
        )

    def _parse_field(
        self, field_str: str, min_val: int, max_val: int, field_name: str
    ) -> CronField:
        """Parse a single cron field."""
        values: set[int] = set()

        names = {"month": self.MONTH_NAMES, "day_of_week": self.DOW_NAMES}.get(field_name)
        if names:
            field_str = re.sub(
                r"[a-z]{3}",
                lambda m: str(names[m.group(0)]) if m.group(0) in names else m.group(0),
                field_str.lower(),
            )

        for part in field_str.split(","):
            part = part.strip()
            if not part:
                continue

            # Step values (e.g., */5, 0-30/5)
            step = 1
            if "/" in part:
                part, step_str = part.split("/", 1)
                try:
                    step = int(step_str)
                except ValueError as e:
                    raise ValueError(f"Invalid step value: {step_str}") from e
                if step < 1:
                    raise ValueError(f"Step must be >= 1, got {step}")

            if part == "*":
                values.update(range(min_val, max_val + 1, step))
                continue

            if "-" in part:
                start_str, end_str = part.split("-", 1)
                try:
                    start, end = int(start_str), int(end_str)
                except ValueError as e:
                    raise ValueError(f"Invalid range: {part}") from e

                for bound in (start, end):
                    if bound < min_val or bound > max_val:
                        raise ValueError(
                            f"Range bound {bound} out of bounds [{min_val}-{max_val}]"
                        )
                if start > end:
                    raise ValueError(f"Range start {start} > end {end}")

                values.update(range(start, end + 1, step))
                continue

            try:
                val = int(part)
            except ValueError as e:
                raise ValueError(f"Invalid value: {part}") from e

            if val < min_val or val > max_val:
                raise ValueError(f"Value {val} out of bounds [{min_val}-{max_val}]")
            if step > 1:
                # "5/15" means from 5 to the end of the range every 15
                values.update(range(val, max_val + 1, step))
            else:
                values.add(val)

        if not values:
            raise ValueError("No values parsed from field")

        if field_name == "day_of_week":
            values = {0 if v == 7 else v for v in values}
            max_val = 6

        return CronField(values=values, min_value=min_val, max_value=max_val)


def _utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class Scheduler:
    """
    Runs one async callback on a cron schedule.

    ``start()`` launches the timer task and, if ``initial_delay_seconds`` is
    set, one extra run shortly after start. ``clock`` and ``sleep`` are
    injectable for tests.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[Any]],
        cron_expression: str = "0 * * * *",
        timezone_name: str = "Asia/Jakarta",
        initial_delay_seconds: Optional[float] = 5.0,
        logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = _utc_clock,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Raises:
            CronParseError: If the expression or timezone is invalid
        """
        self._callback = callback
        self._schedule = CronParser().parse(cron_expression, timezone_name)
        self._initial_delay = initial_delay_seconds
        self._logger = logger
        self._clock = clock
        self._sleep = sleep
        self._tasks: list[asyncio.Task] = []
        self._running = False
        self._last_fired: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cron_expression(self) -> Optional[str]:
        return self._schedule.original_expression if self._running else None

    @property
    def schedule(self) -> CronSchedule:
        return self._schedule

    def next_run(self, now: Optional[datetime] = None) -> datetime:
        return self._schedule.next_after(now or self._clock())

    def start(self) -> None:
        """Start the timer. Calling start() on a running scheduler does nothing."""
        if self._running:
            return
        self._running = True
        self._tasks.append(asyncio.create_task(self._loop()))
        if self._initial_delay is not None:
            self._tasks.append(asyncio.create_task(self._initial_run()))
        self._log(
            LogLevel.INFO,
            "Scheduler started",
            {
                "cron_expression": self._schedule.original_expression,
                "next_run": self.next_run().isoformat(),
            },
        )

    async def stop(self) -> None:
        """Stop the timer and wait for its tasks to finish cancelling."""
        if not self._running:
            return
        self._running = False
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._log(LogLevel.INFO, "Scheduler stopped", {})

    async def trigger(self) -> Any:
        """Run the callback now, outside the timer."""
        return await self._invoke("manual")

    async def _initial_run(self) -> None:
        await self._sleep(self._initial_delay)
        await self._invoke("initial")

    async def _loop(self) -> None:
        while self._running:
            now = self._clock()
            next_run = self._schedule.next_after(now)
            # Never fire the same minute twice, even if the clock lags the sleep
            if self._last_fired is not None and next_run <= self._last_fired:
                next_run = self._schedule.next_after(self._last_fired)
            await self._sleep(max((next_run - now).total_seconds(), 0.0))
            if not self._running:
                break
            self._last_fired = next_run
            await self._invoke("scheduled")

    async def _invoke(self, reason: str) -> Any:
        try:
            return await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # A failing run must not kill the timer
            if self._logger:
                self._logger.log_error(
                    "Scheduler", f"{reason} run failed", error=e
                )
            return None

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "Scheduler", message, data)
