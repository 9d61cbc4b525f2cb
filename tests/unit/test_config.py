"""Test settings loading from the environment."""
import pytest
from doctors_portal.config import DEV_TOKEN_SECRET, Settings

ENV_VARS = [
    "DATABASE_URL", "ACCESS_TOKEN_SECRET", "ACCESS_TOKEN", "TOKEN_TTL_SECONDS",
    "VERIFY_PAYMENT_AMOUNT", "PAYMENT_MAX_RETRIES", "OWNER_CHECK", "CORS_ORIGINS", "PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of these tests
    monkeypatch.setattr("doctors_portal.config.load_dotenv", lambda: None)


def test_defaults():
    settings = Settings.from_env()

    assert settings.database_url == "sqlite:///doctors_portal.db"
    assert settings.access_token_secret == DEV_TOKEN_SECRET
    assert settings.token_ttl_seconds == 3600
    assert settings.verify_payment_amount is True
    assert settings.owner_check == "token"
    assert settings.cors_origins == ["*"]
    assert settings.payment_max_retries == 0
    assert settings.port == 5000


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/portal")
    monkeypatch.setenv("ACCESS_TOKEN_SECRET", "s3cret")
    monkeypatch.setenv("VERIFY_PAYMENT_AMOUNT", "false")
    monkeypatch.setenv("OWNER_CHECK", "query")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("PAYMENT_MAX_RETRIES", "2")

    settings = Settings.from_env()

    assert settings.database_url == "postgresql://u:p@db/portal"
    assert settings.access_token_secret == "s3cret"
    assert settings.verify_payment_amount is False
    assert settings.owner_check == "query"
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.port == 8080
    assert settings.payment_max_retries == 2


def test_legacy_secret_variable(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN", "legacy")

    assert Settings.from_env().access_token_secret == "legacy"


def test_invalid_owner_check(monkeypatch):
    monkeypatch.setenv("OWNER_CHECK", "anything")

    with pytest.raises(ValueError):
        Settings.from_env()
