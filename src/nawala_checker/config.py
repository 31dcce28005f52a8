"""
Configuration dataclasses for the Nawala checker system.

This module defines all configuration structures used throughout the system
(oracle access, Telegram, REST API, scheduling, persistence and logging) and
the loaders that build them from the environment (``.env`` via python-dotenv)
or from a JSON file.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_STATE_FILE = Path.home() / ".nawala_checker" / "state.json"
DEFAULT_HMAC_SECRET = "default-secret-change-me"


@dataclass
class OracleConfig:
    """Access to the external block-check oracle."""

    base_url: str = "https://check.skiddle.id"
    timeout_seconds: float = 10.0
    user_agent: str = "Nawala-Live/1.0"
    max_batch_size: int = 10


@dataclass
class TelegramConfig:
    """Telegram bot credentials and the single administrative recipient."""

    bot_token: str
    admin_id: str
    poll_timeout_seconds: int = 30
    delete_delay_seconds: float = 5.0


@dataclass
class ApiConfig:
    """REST server binding."""

    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class ScheduleConfig:
    """The single recurring reconciliation job."""

    cron_expression: str = "0 * * * *"
    timezone: str = "Asia/Jakarta"
    initial_check_delay_seconds: Optional[float] = 5.0


@dataclass
class PersistenceConfig:
    """Persistence and state storage configuration."""

    state_file_path: Optional[Path] = DEFAULT_STATE_FILE
    hmac_secret: str = DEFAULT_HMAC_SECRET


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    oracle: OracleConfig = field(default_factory=OracleConfig)
    telegram: Optional[TelegramConfig] = None
    api: ApiConfig = field(default_factory=ApiConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    language: str = "en"  # 'en' or 'id'
    simulation_mode: bool = False


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _bool_env(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config_from_env(env_file: Optional[Path] = None) -> SystemConfig:
    """
    Build a SystemConfig from environment variables.

    A ``.env`` file is loaded first (without overriding variables that are
    already set). Malformed numeric values fall back to their defaults.

    Args:
        env_file: Optional explicit path to the .env file

    Returns:
        SystemConfig populated from the environment
    """
    load_dotenv(dotenv_path=env_file)

    telegram = None
    bot_token = os.getenv("TELEGRAM_BOT_TOKEN", "").strip()
    admin_id = os.getenv("TELEGRAM_ADMIN_ID", "").strip()
    if bot_token:
        telegram = TelegramConfig(
            bot_token=bot_token,
            admin_id=admin_id,
            poll_timeout_seconds=_int_env("TELEGRAM_POLL_TIMEOUT", 30),
            delete_delay_seconds=_float_env("TELEGRAM_DELETE_DELAY", 5.0),
        )

    state_file = os.getenv("STATE_FILE", "").strip()

    return SystemConfig(
        oracle=OracleConfig(
            base_url=os.getenv("ORACLE_BASE_URL", OracleConfig.base_url).strip(),
            timeout_seconds=_float_env("ORACLE_TIMEOUT", OracleConfig.timeout_seconds),
        ),
        telegram=telegram,
        api=ApiConfig(
            host=os.getenv("HOST", ApiConfig.host),
            port=_int_env("PORT", ApiConfig.port),
        ),
        schedule=ScheduleConfig(
            cron_expression=os.getenv("CRON_EXPRESSION", ScheduleConfig.cron_expression),
            timezone=os.getenv("SCHEDULE_TIMEZONE", ScheduleConfig.timezone),
        ),
        persistence=PersistenceConfig(
            state_file_path=Path(state_file) if state_file else DEFAULT_STATE_FILE,
            hmac_secret=os.getenv("HMAC_SECRET", DEFAULT_HMAC_SECRET),
        ),
        logging=LoggingConfig(
            level=os.getenv("LOG_LEVEL", "info").lower(),
            output_format=os.getenv("LOG_FORMAT", "text").lower(),
        ),
        language=os.getenv("LANGUAGE", "en").lower(),
        simulation_mode=_bool_env("SIMULATION_MODE"),
    )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None if the file is missing or malformed
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return None

    try:
        oracle_data = data.get("oracle", {})
        telegram_data = data.get("telegram") or {}
        api_data = data.get("api", {})
        schedule_data = data.get("schedule", {})
        persistence_data = data.get("persistence", {})
        logging_data = data.get("logging", {})

        telegram = None
        if telegram_data.get("bot_token"):
            telegram = TelegramConfig(
                bot_token=telegram_data["bot_token"],
                admin_id=str(telegram_data.get("admin_id", "")),
                poll_timeout_seconds=telegram_data.get("poll_timeout_seconds", 30),
                delete_delay_seconds=telegram_data.get("delete_delay_seconds", 5.0),
            )

        state_file_path = persistence_data.get("state_file_path")

        return SystemConfig(
            oracle=OracleConfig(
                base_url=oracle_data.get("base_url", OracleConfig.base_url),
                timeout_seconds=oracle_data.get("timeout_seconds", OracleConfig.timeout_seconds),
                user_agent=oracle_data.get("user_agent", OracleConfig.user_agent),
                max_batch_size=oracle_data.get("max_batch_size", OracleConfig.max_batch_size),
            ),
            telegram=telegram,
            api=ApiConfig(
                host=api_data.get("host", ApiConfig.host),
                port=api_data.get("port", ApiConfig.port),
            ),
            schedule=ScheduleConfig(
                cron_expression=schedule_data.get("cron_expression", ScheduleConfig.cron_expression),
                timezone=schedule_data.get("timezone", ScheduleConfig.timezone),
                initial_check_delay_seconds=schedule_data.get(
                    "initial_check_delay_seconds",
                    ScheduleConfig.initial_check_delay_seconds,
                ),
            ),
            persistence=PersistenceConfig(
                state_file_path=Path(state_file_path) if state_file_path else DEFAULT_STATE_FILE,
                hmac_secret=persistence_data.get("hmac_secret", DEFAULT_HMAC_SECRET),
            ),
            logging=LoggingConfig(
                level=logging_data.get("level", "info"),
                output_format=logging_data.get("output_format", "text"),
            ),
            language=data.get("language", "en"),
            simulation_mode=data.get("simulation_mode", False),
        )
    except (AttributeError, KeyError, TypeError):
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    data = {
        "oracle": {
            "base_url": config.oracle.base_url,
            "timeout_seconds": config.oracle.timeout_seconds,
            "user_agent": config.oracle.user_agent,
            "max_batch_size": config.oracle.max_batch_size,
        },
        "telegram": {
            "bot_token": config.telegram.bot_token,
            "admin_id": config.telegram.admin_id,
            "poll_timeout_seconds": config.telegram.poll_timeout_seconds,
            "delete_delay_seconds": config.telegram.delete_delay_seconds,
        } if config.telegram else None,
        "api": {"host": config.api.host, "port": config.api.port},
        "schedule": {
            "cron_expression": config.schedule.cron_expression,
            "timezone": config.schedule.timezone,
            "initial_check_delay_seconds": config.schedule.initial_check_delay_seconds,
        },
        "persistence": {
            "state_file_path": (
                str(config.persistence.state_file_path)
                if config.persistence.state_file_path else None
            ),
            "hmac_secret": config.persistence.hmac_secret,
        },
        "logging": {
            "level": config.logging.level,
            "output_format": config.logging.output_format,
        },
        "language": config.language,
        "simulation_mode": config.simulation_mode,
    }

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except (OSError, TypeError):
        return False
    return True
