"""
Telegram chat bot for the Nawala checker system.

Long-polls ``getUpdates`` and maps commands onto the shared services. Only
the configured admin may use it; anyone else gets an "Access denied" reply
and has their message deleted after a short delay. ``/myid`` is open to
everyone so users can find out which id to hand to the admin.

Command messages are deleted after the same delay, keeping the admin chat
down to bot output.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from .config import TelegramConfig
from .enums import CheckFrequency, CycleStatus, ErrorCode, LogLevel
from .exceptions import (
    DuplicateDomainError,
    InvalidFormatError,
    NawalaCheckerError,
    NotFoundError,
    NotificationError,
    OracleRequestError,
    ValidationError,
)
from .i18n import get_message
from .models import utc_now
from .notifications import format_summary_message, format_timestamp
from .service import Services


REPORTS_DEFAULT = 5
REPORTS_MAX = 24
POLL_ERROR_BACKOFF_SECONDS = 5.0

Handler = Callable[[str, str], Awaitable[None]]


class TelegramBot:
    """Admin-only command interface over the Telegram Bot API."""

    def __init__(
        self,
        services: Services,
        api: Any,
        config: TelegramConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            services: Shared components
            api: TelegramApi (or anything with send_message, delete_message
                and get_updates)
            config: Bot token, admin id and timing settings
            sleep: Injectable sleep used for delayed deletion and backoff
        """
        self._services = services
        self._api = api
        self._config = config
        self._sleep = sleep
        self._language = services.config.language
        self._timezone = services.config.schedule.timezone
        self._logger = services.logger
        self._offset: Optional[int] = None
        self._pending: set[asyncio.Task] = set()

        self._handlers: dict[str, Handler] = {
            "start": self._cmd_start,
            "help": self._cmd_help,
            "check": self._cmd_check,
            "checkmultiple": self._cmd_checkmultiple,
            "results": self._cmd_results,
            "reports": self._cmd_reports,
            "status": self._cmd_status,
            "domains": self._cmd_domains,
            "adddomain": self._cmd_adddomain,
            "toggledomain": self._cmd_toggledomain,
            "deletedomain": self._cmd_deletedomain,
            "checknow": self._cmd_checknow,
        }

    async def run(self) -> None:
        """Poll for updates until cancelled."""
        self._log(LogLevel.INFO, "Telegram bot started", {"admin_id": self._config.admin_id})
        while True:
            try:
                updates = await self._api.get_updates(
                    offset=self._offset,
                    timeout=self._config.poll_timeout_seconds,
                )
            except NotificationError as e:
                self._log(LogLevel.WARN, "getUpdates failed", {"error": e.message})
                await self._sleep(POLL_ERROR_BACKOFF_SECONDS)
                continue

            for update in updates:
                self._offset = update["update_id"] + 1
                try:
                    await self.handle_update(update)
                except Exception as e:
                    # One bad update must not stop the poller
                    self._logger.log_error("TelegramBot", "Update handling failed", error=e)

    async def drain(self) -> None:
        """Wait for all scheduled message deletions to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def handle_update(self, update: dict) -> None:
        """Dispatch one Telegram update."""
        message = update.get("message")
        if not message:
            return

        chat_id = message["chat"]["id"]
        command, args = self._parse_command(message.get("text"))

        sender = message.get("from")
        if not sender:
            await self._reply(chat_id, get_message("bot.no_user", self._language), markdown=False)
            return

        if command == "myid":
            self._delete_later(chat_id, message["message_id"])
            await self._cmd_myid(chat_id, sender)
            return

        # Strangers are rejected whatever they send, commands or not
        if str(sender.get("id")) != str(self._config.admin_id):
            self._delete_later(chat_id, message["message_id"])
            self._log(
                LogLevel.WARN,
                "Rejected message from unauthorized user",
                {"user_id": sender.get("id"), "command": command},
            )
            await self._reply(chat_id, get_message("bot.access_denied", self._language), markdown=False)
            return

        if command is None:
            return

        self._delete_later(chat_id, message["message_id"])
        handler = self._handlers.get(command)
        if handler is None:
            return

        try:
            await handler(chat_id, args)
        except NawalaCheckerError as e:
            self._logger.log_error(
                "TelegramBot", f"/{command} failed", error=e, additional_data={"code": e.code}
            )
            await self._reply(chat_id, get_message("bot.unexpected_error", self._language), markdown=False)

    @staticmethod
    def _parse_command(text: Any) -> tuple[Optional[str], str]:
        """Split ``/cmd@Bot args`` into the command name and its arguments."""
        if not isinstance(text, str) or not text.strip().startswith("/"):
            return None, ""
        head, _, args = text.strip().partition(" ")
        return head[1:].split("@", 1)[0].lower(), args.strip()

    # Commands

    async def _cmd_myid(self, chat_id: Any, sender: dict) -> None:
        username = sender.get("username")
        name = " ".join(p for p in (sender.get("first_name"), sender.get("last_name")) if p)
        await self._reply(
            chat_id,
            get_message(
                "bot.myid",
                self._language,
                user_id=sender.get("id"),
                username=f"@{username}" if username else get_message("bot.no_username", self._language),
                name=name or "-",
                admin_id=self._config.admin_id,
            ),
        )

    async def _cmd_start(self, chat_id: Any, args: str) -> None:
        await self._reply(
            chat_id,
            get_message("bot.welcome", self._language, commands=self._commands_text()),
        )

    async def _cmd_help(self, chat_id: Any, args: str) -> None:
        await self._reply(chat_id, self._commands_text())

    async def _cmd_check(self, chat_id: Any, args: str) -> None:
        if not args:
            await self._reply(chat_id, get_message("bot.check_usage", self._language), markdown=False)
            return
        if not self._services.registry.validator.validate(args).valid:
            await self._reply(chat_id, get_message("bot.invalid_domain", self._language), markdown=False)
            return

        await self._reply(chat_id, get_message("bot.checking", self._language), markdown=False)
        try:
            result = await self._services.engine.check_domain(args)
        except OracleRequestError as e:
            await self._reply(
                chat_id,
                get_message("bot.check_error", self._language, error=e.message),
                markdown=False,
            )
            return

        await self._reply(
            chat_id,
            get_message(
                "bot.check_result",
                self._language,
                emoji="🔴" if result.blocked else "🟢",
                domain=result.domain,
                status=self._verdict_label(result.blocked),
                time=self._time(result.timestamp),
            ),
        )

    async def _cmd_checkmultiple(self, chat_id: Any, args: str) -> None:
        if not args:
            await self._reply(chat_id, get_message("bot.checkmultiple_usage", self._language), markdown=False)
            return

        names = [n.strip() for n in args.split(",") if n.strip()]
        engine = self._services.engine
        try:
            canonical = engine.prepare_batch(names)
        except InvalidFormatError as e:
            invalid = e.details.get("invalid") or [e.details.get("name", "")]
            await self._reply(
                chat_id,
                get_message("bot.invalid_domains", self._language, domains=", ".join(invalid)),
                markdown=False,
            )
            return
        except ValidationError as e:
            if e.code == ErrorCode.BATCH_TOO_LARGE.value:
                text = get_message("bot.too_many_domains", self._language, max=e.details["limit"])
            else:
                text = get_message("bot.no_valid_domains", self._language)
            await self._reply(chat_id, text, markdown=False)
            return

        await self._reply(
            chat_id,
            get_message("bot.checking_many", self._language, count=len(canonical)),
            markdown=False,
        )
        try:
            batch = await engine.check_domains(canonical)
        except OracleRequestError as e:
            await self._reply(
                chat_id,
                get_message("bot.checkmultiple_error", self._language, error=e.message),
                markdown=False,
            )
            return

        await self._reply(
            chat_id,
            format_summary_message(
                batch,
                self._language,
                self._timezone,
                title_key="report.multi_title",
                list_unblocked=True,
            ),
        )

    async def _cmd_results(self, chat_id: Any, args: str) -> None:
        cached = self._services.oracle.cache.all()
        if not cached:
            await self._reply(chat_id, get_message("bot.no_results", self._language), markdown=False)
            return

        lines = [get_message("bot.results_title", self._language), ""]
        for name, entry in cached.items():
            lines.append(f"*{name}*")
            lines.append(f"{self._verdict_label(entry.blocked)} - {self._time(entry.timestamp)}")
            lines.append("")
        await self._reply(chat_id, "\n".join(lines).rstrip())

    async def _cmd_reports(self, chat_id: Any, args: str) -> None:
        limit = REPORTS_DEFAULT
        if args:
            try:
                limit = int(args.split()[0])
            except ValueError:
                limit = 0
        if limit < 1 or limit > REPORTS_MAX:
            await self._reply(chat_id, get_message("bot.invalid_limit", self._language), markdown=False)
            return

        reports = await self._services.history.recent_reports(limit)
        if not reports:
            await self._reply(chat_id, get_message("bot.no_reports", self._language), markdown=False)
            return

        blocks = [get_message("bot.reports_title", self._language, count=len(reports))]
        for index, report in enumerate(reports, start=1):
            blocks.append(
                get_message(
                    "bot.report_item",
                    self._language,
                    index=index,
                    time=self._time(report.timestamp),
                    total=report.summary.total_checked,
                    blocked=report.summary.blocked,
                    unblocked=report.summary.unblocked,
                )
            )
        await self._reply(chat_id, "\n\n".join(blocks))

    async def _cmd_status(self, chat_id: Any, args: str) -> None:
        stats = await self._services.registry.statistics()
        report_count = await self._services.history.report_count()
        scheduler = self._services.scheduler
        await self._reply(
            chat_id,
            get_message(
                "bot.status",
                self._language,
                total=stats.total_domains,
                active=stats.active_domains,
                hourly=stats.hourly_domains,
                recent=stats.recent_checks,
                blocked=stats.blocked_count,
                unblocked=stats.unblocked_count,
                reports=report_count,
                admin_id=self._config.admin_id,
                scheduler=scheduler.cron_expression or get_message("label.inactive", self._language),
                time=self._time(utc_now()),
            ),
        )

    async def _cmd_domains(self, chat_id: Any, args: str) -> None:
        domains = await self._services.registry.list()
        if not domains:
            await self._reply(chat_id, get_message("bot.domains_empty", self._language), markdown=False)
            return

        blocks = [get_message("bot.domains_title", self._language)]
        for index, domain in enumerate(domains, start=1):
            blocked = domain.last_status.blocked
            block = get_message(
                "bot.domain_item",
                self._language,
                index=index,
                name=domain.name,
                status=self._active_label(domain.is_active),
                frequency=domain.check_frequency.value,
                last_status=(
                    get_message("label.unknown", self._language) if blocked is None
                    else self._verdict_label(blocked)
                ),
                last_checked=(
                    self._time(domain.last_checked) if domain.last_checked
                    else get_message("label.never", self._language)
                ),
            )
            if domain.description:
                block += "\n" + get_message(
                    "bot.domain_description", self._language, description=domain.description
                )
            blocks.append(block)
        await self._reply(chat_id, "\n\n".join(blocks))

    async def _cmd_adddomain(self, chat_id: Any, args: str) -> None:
        if not args:
            await self._reply(chat_id, get_message("bot.adddomain_usage", self._language), markdown=False)
            return
        try:
            domain = await self._services.registry.add(args)
        except InvalidFormatError:
            await self._reply(chat_id, get_message("bot.invalid_domain", self._language), markdown=False)
            return
        except DuplicateDomainError:
            await self._reply(chat_id, get_message("bot.domain_exists", self._language), markdown=False)
            return

        await self._reply(
            chat_id,
            get_message(
                "bot.domain_added",
                self._language,
                name=domain.name,
                status=self._active_label(domain.is_active),
                frequency=domain.check_frequency.value,
                time=self._time(domain.created_at),
            ),
        )

    async def _cmd_toggledomain(self, chat_id: Any, args: str) -> None:
        if not args:
            await self._reply(chat_id, get_message("bot.toggledomain_usage", self._language), markdown=False)
            return
        try:
            domain = await self._services.registry.toggle_active(args)
        except NotFoundError:
            await self._reply(chat_id, get_message("bot.domain_not_found", self._language), markdown=False)
            return

        await self._reply(
            chat_id,
            get_message(
                "bot.domain_toggled",
                self._language,
                name=domain.name,
                status=self._active_label(domain.is_active),
                time=self._time(domain.updated_at),
            ),
        )

    async def _cmd_deletedomain(self, chat_id: Any, args: str) -> None:
        if not args:
            await self._reply(chat_id, get_message("bot.deletedomain_usage", self._language), markdown=False)
            return
        try:
            domain = await self._services.registry.remove(args)
        except NotFoundError:
            await self._reply(chat_id, get_message("bot.domain_not_found", self._language), markdown=False)
            return

        await self._reply(
            chat_id,
            get_message(
                "bot.domain_deleted",
                self._language,
                name=domain.name,
                time=self._time(utc_now()),
            ),
        )

    async def _cmd_checknow(self, chat_id: Any, args: str) -> None:
        eligible = await self._services.registry.list_eligible_for_frequency(CheckFrequency.HOURLY)
        if not eligible:
            await self._reply(chat_id, get_message("bot.checknow_empty", self._language), markdown=False)
            return

        # The summary itself arrives through the notifier
        outcome = await self._services.engine.trigger()
        if outcome.status == CycleStatus.SKIPPED:
            await self._reply(chat_id, get_message("bot.checknow_busy", self._language), markdown=False)
        elif outcome.status == CycleStatus.EMPTY:
            await self._reply(chat_id, get_message("bot.checknow_empty", self._language), markdown=False)
        elif outcome.status == CycleStatus.FAILED:
            await self._reply(
                chat_id,
                get_message("bot.checknow_failed", self._language, error=outcome.error),
                markdown=False,
            )

    # Helpers

    def _commands_text(self) -> str:
        return get_message(
            "bot.commands", self._language, max=self._services.oracle.max_batch_size
        )

    def _verdict_label(self, blocked: bool) -> str:
        return get_message("label.blocked" if blocked else "label.unblocked", self._language)

    def _active_label(self, active: bool) -> str:
        return get_message("label.active" if active else "label.inactive", self._language)

    def _time(self, timestamp: Optional[str]) -> str:
        return format_timestamp(timestamp, self._language, self._timezone)

    async def _reply(self, chat_id: Any, text: str, markdown: bool = True) -> None:
        try:
            await self._api.send_message(chat_id, text, parse_mode="Markdown" if markdown else None)
        except NotificationError as e:
            self._log(LogLevel.ERROR, "Failed to send reply", {"error": e.message})

    def _delete_later(self, chat_id: Any, message_id: int) -> None:
        task = asyncio.create_task(self._delete_after_delay(chat_id, message_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _delete_after_delay(self, chat_id: Any, message_id: int) -> None:
        await self._sleep(self._config.delete_delay_seconds)
        try:
            await self._api.delete_message(chat_id, message_id)
        except NotificationError as e:
            self._log(
                LogLevel.DEBUG,
                "Could not delete user message",
                {"message_id": message_id, "error": e.message},
            )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        self._logger.log(level, "TelegramBot", message, data)
