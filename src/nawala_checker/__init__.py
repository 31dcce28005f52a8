"""
Nawala Checker - monitors domains for Nawala DNS blocking.

Keeps a registry of domains, checks them hourly against a blocking oracle,
stores the history, and reports through Telegram, a REST API and a CLI.
"""

__version__ = "1.0.0"
__author__ = "Nawala Checker Team"

from nawala_checker.exceptions import (
    NawalaCheckerError,
    ValidationError,
    InvalidFormatError,
    DuplicateDomainError,
    NotFoundError,
    OracleRequestError,
    PersistenceError,
    TamperingError,
    NotificationError,
)
from nawala_checker.enums import (
    CheckFrequency,
    CycleState,
    CycleStatus,
    LogLevel,
    ErrorCode,
)
from nawala_checker.domain_validator import (
    DomainValidator,
    DomainValidationResult,
    DomainValidationError,
)
from nawala_checker.config import (
    OracleConfig,
    TelegramConfig,
    ApiConfig,
    ScheduleConfig,
    PersistenceConfig,
    LoggingConfig,
    SystemConfig,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from nawala_checker.models import (
    Domain,
    DomainStatus,
    CheckResult,
    Summary,
    PeriodicReport,
    LastCheck,
    OracleResult,
    BatchSummary,
    DomainStatistics,
    CycleOutcome,
    PersistedData,
)
from nawala_checker.state_store import (
    StateStore,
)
from nawala_checker.history import (
    CheckHistoryStore,
)
from nawala_checker.registry import (
    DomainRegistry,
)
from nawala_checker.oracle_client import (
    OracleClient,
    LastCheckCache,
    interpret_verdict,
    generate_summary,
)
from nawala_checker.reconciler import (
    ReconciliationEngine,
)
from nawala_checker.audit_logger import (
    AuditLogger,
    LogEntry,
)
from nawala_checker.notifications import (
    MessageChannel,
    TelegramApi,
    TelegramChannel,
    Notifier,
)
from nawala_checker.i18n import (
    get_message,
    get_missing_translations,
    validate_translations,
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
)
from nawala_checker.scheduler import (
    Scheduler,
    CronSchedule,
    CronField,
    CronParser,
    CronParseError,
)
from nawala_checker.self_test import (
    SelfTest,
    SelfTestResult,
    EndpointTestResult,
    ConfigValidationResult,
    run_self_test,
)
from nawala_checker.service import (
    Services,
    build_services,
)

__all__ = [
    # Exceptions
    "NawalaCheckerError",
    "ValidationError",
    "InvalidFormatError",
    "DuplicateDomainError",
    "NotFoundError",
    "OracleRequestError",
    "PersistenceError",
    "TamperingError",
    "NotificationError",
    # Enums
    "CheckFrequency",
    "CycleState",
    "CycleStatus",
    "LogLevel",
    "ErrorCode",
    # Domain Validator
    "DomainValidator",
    "DomainValidationResult",
    "DomainValidationError",
    # Configuration
    "OracleConfig",
    "TelegramConfig",
    "ApiConfig",
    "ScheduleConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "SystemConfig",
    "load_config_from_env",
    "load_config_from_file",
    "save_config_to_file",
    # Models
    "Domain",
    "DomainStatus",
    "CheckResult",
    "Summary",
    "PeriodicReport",
    "LastCheck",
    "OracleResult",
    "BatchSummary",
    "DomainStatistics",
    "CycleOutcome",
    "PersistedData",
    # Storage
    "StateStore",
    "CheckHistoryStore",
    "DomainRegistry",
    # Oracle
    "OracleClient",
    "LastCheckCache",
    "interpret_verdict",
    "generate_summary",
    # Reconciliation
    "ReconciliationEngine",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Notifications
    "MessageChannel",
    "TelegramApi",
    "TelegramChannel",
    "Notifier",
    # I18n
    "get_message",
    "get_missing_translations",
    "validate_translations",
    "TRANSLATIONS",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    # Scheduler
    "Scheduler",
    "CronSchedule",
    "CronField",
    "CronParser",
    "CronParseError",
    # Self-Test
    "SelfTest",
    "SelfTestResult",
    "EndpointTestResult",
    "ConfigValidationResult",
    "run_self_test",
    # Composition
    "Services",
    "build_services",
]
