import pytest

from hr_requests.core.config import get_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "APP_ENV",
        "JWT_SECRET",
        "ENFORCE_ROLE_GATES",
        "CORS_ALLOW_ORIGINS",
        "REQUEST_ID_PREFIX",
        "NOTIFICATION_MAX_ATTEMPTS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./settings-test.db")
    return monkeypatch


def test_database_url_is_required(clean_env):
    clean_env.delenv("DATABASE_URL")
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        get_settings()


def test_defaults(clean_env):
    settings = get_settings()
    assert settings.app_env == "dev"
    assert settings.enforce_role_gates is False
    assert settings.request_id_prefix == "REQ"
    assert settings.system_recipient == "system"
    assert settings.notification_max_attempts == 3
    assert settings.cors_allow_origins == ["http://localhost:5173", "http://127.0.0.1:5173"]


def test_overrides_are_parsed(clean_env):
    clean_env.setenv("ENFORCE_ROLE_GATES", "yes")
    clean_env.setenv("CORS_ALLOW_ORIGINS", "https://hr.example.com, https://admin.example.com ,")
    clean_env.setenv("REQUEST_ID_PREFIX", "HR")
    clean_env.setenv("NOTIFICATION_MAX_ATTEMPTS", "5")

    settings = get_settings()

    assert settings.enforce_role_gates is True
    assert settings.cors_allow_origins == ["https://hr.example.com", "https://admin.example.com"]
    assert settings.request_id_prefix == "HR"
    assert settings.notification_max_attempts == 5


def test_production_requires_real_jwt_secret(clean_env):
    clean_env.setenv("APP_ENV", "production")
    with pytest.raises(RuntimeError, match="JWT_SECRET"):
        get_settings()

    clean_env.setenv("JWT_SECRET", "a-long-random-value")
    assert get_settings().jwt_secret == "a-long-random-value"
