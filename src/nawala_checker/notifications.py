"""
Notifier module for the Nawala checker system.

Delivers reconciliation summaries and failure notices to the single
administrative Telegram chat through the Bot API (``httpx``).

Summary messages replace each other: before a new summary is sent the
previously delivered one is deleted (best effort), so at most one summary is
visible in the chat at any time. Failure notices never touch that slot and
accumulate.
"""

import asyncio
import itertools
from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable
from zoneinfo import ZoneInfo

import httpx

from .audit_logger import AuditLogger
from .enums import ErrorCode, LogLevel
from .exceptions import NotificationError
from .i18n import get_message
from .models import BatchSummary, utc_now


DEFAULT_TIMEZONE = "Asia/Jakarta"


def format_timestamp(
    iso_timestamp: Optional[str],
    language: str = "en",
    timezone_name: str = DEFAULT_TIMEZONE,
) -> str:
    """
    Format an ISO timestamp as local time in the given timezone.

    Args:
        iso_timestamp: ISO 8601 timestamp string
        language: 'en' for English, 'id' for Indonesian
        timezone_name: IANA timezone the reader is in

    Returns:
        Formatted timestamp string, or the input unchanged if unparseable
    """
    if not iso_timestamp:
        return ""
    try:
        dt = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
        if dt.tzinfo is not None:
            dt = dt.astimezone(ZoneInfo(timezone_name))
    except (ValueError, KeyError):
        return iso_timestamp

    if language == "id":
        # Indonesian locale style: 19/10/2026, 17.29.00
        return dt.strftime("%d/%m/%Y, %H.%M.%S")
    # English format: Oct 19, 2026, 05:29 PM
    return dt.strftime("%b %d, %Y, %I:%M %p")


def format_summary_message(
    summary: BatchSummary,
    language: str = "en",
    timezone_name: str = DEFAULT_TIMEZONE,
    title_key: str = "report.title",
    list_unblocked: bool = False,
) -> str:
    """
    Render a successful batch summary as a Markdown message.

    Blocked names are always listed; unblocked names only with
    ``list_unblocked`` (ad hoc multi-domain checks).
    """
    counts = summary.summary
    lines = [
        get_message(title_key, language),
        "",
        get_message("report.summary", language),
        get_message(
            "report.domains_checked" if title_key == "report.title" else "report.total_checked",
            language,
            count=counts.total_checked,
        ),
        get_message("report.blocked", language, count=counts.blocked),
        get_message("report.unblocked", language, count=counts.unblocked),
        "",
    ]

    if counts.blocked_domains:
        lines.append(get_message("report.blocked_domains", language))
        lines.extend(f"• {name}" for name in counts.blocked_domains)
        lines.append("")

    if list_unblocked and counts.unblocked_domains:
        lines.append(get_message("report.unblocked_domains", language))
        lines.extend(f"• {name}" for name in counts.unblocked_domains)
        lines.append("")

    lines.append(
        get_message(
            "report.checked_at",
            language,
            time=format_timestamp(summary.timestamp, language, timezone_name),
        )
    )
    return "\n".join(lines)


def format_error_message(
    error: str,
    language: str = "en",
    timezone_name: str = DEFAULT_TIMEZONE,
    timestamp: Optional[str] = None,
) -> str:
    """Render a reconciliation failure notice as a Markdown message."""
    return "\n".join([
        get_message("report.error_title", language),
        "",
        get_message("report.error_body", language),
        f"`{error}`",
        "",
        get_message(
            "report.error_time",
            language,
            time=format_timestamp(timestamp or utc_now(), language, timezone_name),
        ),
    ])


class TelegramApi:
    """
    Minimal async Telegram Bot API client.

    Every failure (transport error, non-2xx status, ``ok: false``) is raised
    as NotificationError. In simulation mode nothing leaves the process and
    sends return increasing fake message ids.
    """

    BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        simulation_mode: bool = False,
    ) -> None:
        self._bot_url = f"{base_url.rstrip('/')}/bot{bot_token}"
        self._timeout = timeout
        self._transport = transport
        self._simulation_mode = simulation_mode
        self._fake_ids = itertools.count(1)
        self._client: Optional[httpx.AsyncClient] = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def call(
        self,
        method: str,
        payload: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Invoke one Bot API method and return its ``result``.

        Raises:
            NotificationError: If the request fails or the API reports an error
        """
        client = self._ensure_client()
        try:
            response = await client.post(
                f"{self._bot_url}/{method}",
                json=payload or {},
                timeout=timeout if timeout is not None else self._timeout,
            )
            body = response.json()
        except httpx.HTTPError as e:
            raise NotificationError(
                code=ErrorCode.NOTIFICATION_FAILED.value,
                message=f"Telegram {method} request failed: {e}",
                details={"method": method},
            )
        except ValueError:
            raise NotificationError(
                code=ErrorCode.NOTIFICATION_FAILED.value,
                message=f"Telegram {method} returned a non-JSON body",
                details={"method": method, "status_code": response.status_code},
            )

        if not response.is_success or not isinstance(body, dict) or not body.get("ok"):
            description = body.get("description") if isinstance(body, dict) else None
            raise NotificationError(
                code=ErrorCode.NOTIFICATION_FAILED.value,
                message=f"Telegram {method} failed: {description or response.status_code}",
                details={"method": method, "status_code": response.status_code},
            )
        return body.get("result")

    async def send_message(
        self, chat_id: str, text: str, parse_mode: Optional[str] = "Markdown"
    ) -> int:
        """Send a message and return its message_id."""
        if self._simulation_mode:
            return next(self._fake_ids)
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        result = await self.call("sendMessage", payload)
        try:
            return int(result["message_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise NotificationError(
                code=ErrorCode.NOTIFICATION_FAILED.value,
                message=f"Telegram sendMessage returned no usable message_id: {e!r}",
                details={"method": "sendMessage"},
            )

    async def delete_message(self, chat_id: str, message_id: int) -> None:
        if self._simulation_mode:
            return
        await self.call("deleteMessage", {"chat_id": chat_id, "message_id": message_id})

    async def get_updates(self, offset: Optional[int] = None, timeout: int = 30) -> list[dict]:
        """Long-poll for new updates."""
        if self._simulation_mode:
            await asyncio.sleep(timeout)
            return []
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        # HTTP timeout must outlast the long poll itself
        result = await self.call("getUpdates", payload, timeout=timeout + self._timeout)
        return list(result or [])

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


@runtime_checkable
class MessageChannel(Protocol):
    """A destination that can send messages and delete them by id."""

    async def send(self, text: str) -> int:
        """Deliver a message; return its identifier. Raises NotificationError."""
        ...

    async def delete(self, message_id: int) -> None:
        """Remove a delivered message. Raises NotificationError."""
        ...

    def get_name(self) -> str:
        ...


class TelegramChannel:
    """The administrative Telegram chat as a MessageChannel."""

    def __init__(self, api: TelegramApi, chat_id: str) -> None:
        self._api = api
        self._chat_id = chat_id

    async def send(self, text: str) -> int:
        return await self._api.send_message(self._chat_id, text)

    async def delete(self, message_id: int) -> None:
        await self._api.delete_message(self._chat_id, message_id)

    def get_name(self) -> str:
        return "telegram"


class Notifier:
    """
    Publishes summaries and failure notices to one MessageChannel.

    Owns the notification handle: the id of the last delivered summary. The
    handle lives only in memory and is reachable only through ``publish``.
    """

    def __init__(
        self,
        channel: MessageChannel,
        language: str = "en",
        timezone_name: str = DEFAULT_TIMEZONE,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._channel = channel
        self._language = language
        self._timezone_name = timezone_name
        self._logger = logger
        self._handle: Optional[int] = None
        self._lock = asyncio.Lock()

    @property
    def channel_name(self) -> str:
        return self._channel.get_name()

    async def publish(self, summary: BatchSummary) -> bool:
        """
        Replace the outstanding summary message with a new one.

        The previous summary (if any) is deleted first; a failed delete is
        logged and ignored. A failed send is logged and reported as False.
        """
        if not summary.success or summary.summary is None:
            return await self.publish_error(summary.error or "unknown error")

        text = format_summary_message(summary, self._language, self._timezone_name)

        async with self._lock:
            previous = self._handle
            delete_failed = False

            if previous is not None:
                try:
                    await self._channel.delete(previous)
                except NotificationError as e:
                    delete_failed = True
                    self._log(
                        LogLevel.WARN,
                        "Could not delete previous summary message",
                        {"message_id": previous, "error": e.message},
                    )

            try:
                message_id = await self._channel.send(text)
            except NotificationError as e:
                # A still-visible previous message stays addressable
                self._handle = previous if delete_failed else None
                self._log(
                    LogLevel.ERROR,
                    "Failed to send summary notification",
                    {"channel": self.channel_name, "error": e.message},
                )
                return False

            self._handle = message_id
            self._log(
                LogLevel.INFO,
                "Summary notification sent",
                {"message_id": message_id, "replaced": previous},
            )
            return True

    async def publish_error(self, error: str) -> bool:
        """Send a failure notice. Never reads or replaces the summary handle."""
        text = format_error_message(error, self._language, self._timezone_name)
        try:
            message_id = await self._channel.send(text)
        except NotificationError as e:
            self._log(
                LogLevel.ERROR,
                "Failed to send error notification",
                {"channel": self.channel_name, "error": e.message},
            )
            return False

        self._log(LogLevel.INFO, "Error notification sent", {"message_id": message_id})
        return True

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "Notifier", message, data)
