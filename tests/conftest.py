import pytest


ENV_VARS = (
    "TELEGRAM_BOT_TOKEN", "TELEGRAM_ADMIN_ID", "TELEGRAM_POLL_TIMEOUT",
    "TELEGRAM_DELETE_DELAY", "ORACLE_BASE_URL", "ORACLE_TIMEOUT", "HOST", "PORT",
    "CRON_EXPRESSION", "SCHEDULE_TIMEZONE", "STATE_FILE", "HMAC_SECRET",
    "LOG_LEVEL", "LOG_FORMAT", "LANGUAGE", "SIMULATION_MODE",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Unset every configuration variable for the duration of a test."""
    # setenv first so values written by load_dotenv are removed on undo
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch
