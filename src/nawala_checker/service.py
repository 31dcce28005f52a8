"""
Composition root: builds every component once and wires them together.

Each collaborator is created here and passed by reference, so the REST API,
the chat bot, the scheduler and the CLI all share one registry, one history
store, one oracle client and one notifier.
"""

import asyncio
import sys
from dataclasses import dataclass
from typing import Optional

import httpx

from .audit_logger import AuditLogger
from .config import SystemConfig
from .domain_validator import DomainValidator
from .enums import LogLevel
from .history import CheckHistoryStore
from .notifications import MessageChannel, Notifier, TelegramApi, TelegramChannel
from .oracle_client import OracleClient
from .reconciler import ReconciliationEngine
from .registry import DomainRegistry
from .scheduler import Scheduler
from .state_store import StateStore


@dataclass
class Services:
    """Every long-lived component of one running process."""

    config: SystemConfig
    logger: AuditLogger
    store: StateStore
    history: CheckHistoryStore
    registry: DomainRegistry
    oracle: OracleClient
    engine: ReconciliationEngine
    scheduler: Scheduler
    notifier: Optional[Notifier] = None
    telegram_api: Optional[TelegramApi] = None

    async def aclose(self) -> None:
        await self.scheduler.stop()
        await self.oracle.close()
        if self.telegram_api is not None:
            await self.telegram_api.close()


def build_logger(config: SystemConfig) -> AuditLogger:
    return AuditLogger(
        output_format=config.logging.output_format,
        output_stream=sys.stderr,
        min_level=config.logging.level,
    )


def build_services(
    config: SystemConfig,
    logger: Optional[AuditLogger] = None,
    oracle_transport: Optional[httpx.AsyncBaseTransport] = None,
    telegram_transport: Optional[httpx.AsyncBaseTransport] = None,
    channel: Optional[MessageChannel] = None,
    load_state: bool = True,
) -> Services:
    """
    Construct and wire all components for ``config``.

    ``channel`` overrides the Telegram channel (tests pass an in-process
    fake). Without a channel and without a bot token there is no notifier.

    Raises:
        PersistenceError / TamperingError: If the state file cannot be loaded
        CronParseError: If the schedule is invalid
    """
    logger = logger or build_logger(config)

    store = StateStore(
        file_path=config.persistence.state_file_path,
        hmac_secret=config.persistence.hmac_secret,
    )
    if load_state and store.load():
        logger.log(
            LogLevel.INFO,
            "Service",
            "State loaded",
            {"state_file": str(config.persistence.state_file_path)},
        )

    history = CheckHistoryStore(store)
    registry = DomainRegistry(store, history, DomainValidator(), logger)
    oracle = OracleClient(
        config=config.oracle,
        recorder=registry,
        logger=logger,
        simulation_mode=config.simulation_mode,
        transport=oracle_transport,
    )

    telegram_api = None
    if channel is None and config.telegram is not None and config.telegram.bot_token:
        telegram_api = TelegramApi(
            config.telegram.bot_token,
            transport=telegram_transport,
            simulation_mode=config.simulation_mode,
        )
        channel = TelegramChannel(telegram_api, config.telegram.admin_id)

    notifier = None
    if channel is not None:
        notifier = Notifier(
            channel,
            language=config.language,
            timezone_name=config.schedule.timezone,
            logger=logger,
        )

    engine = ReconciliationEngine(registry, oracle, history, notifier, logger)
    scheduler = Scheduler(
        engine.trigger,
        cron_expression=config.schedule.cron_expression,
        timezone_name=config.schedule.timezone,
        initial_delay_seconds=config.schedule.initial_check_delay_seconds,
        logger=logger,
    )
    engine.attach_schedule(scheduler)

    return Services(
        config=config,
        logger=logger,
        store=store,
        history=history,
        registry=registry,
        oracle=oracle,
        engine=engine,
        scheduler=scheduler,
        notifier=notifier,
        telegram_api=telegram_api,
    )


async def run_service(services: Services) -> None:
    """
    Run the scheduler, the chat bot (if configured) and the REST API until
    the server exits or the task is cancelled.
    """
    import uvicorn

    from .api import create_app
    from .bot import TelegramBot

    config = services.config
    app = create_app(services)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.api.host,
            port=config.api.port,
            log_level="warning",
            access_log=False,
        )
    )

    bot_task: Optional[asyncio.Task] = None
    if services.telegram_api is not None and config.telegram is not None:
        bot = TelegramBot(services, services.telegram_api, config.telegram)
        bot_task = asyncio.create_task(bot.run())

    services.scheduler.start()
    services.logger.log(
        LogLevel.INFO,
        "Service",
        f"API listening on {config.api.host}:{config.api.port}",
        {"telegram": bot_task is not None, "simulation_mode": config.simulation_mode},
    )

    try:
        await server.serve()
    finally:
        if bot_task is not None:
            bot_task.cancel()
            await asyncio.gather(bot_task, return_exceptions=True)
        await services.aclose()
