"""Settings parsing and production guard rails."""
import pytest
from pydantic import ValidationError

from tinypm.config import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_cname_target_defaults_to_root_domain():
    s = _settings(ROOT_DOMAIN="Tiny.PM")
    assert s.root_domain == "tiny.pm"
    assert s.cname_target == "tiny.pm"
    assert _settings(CNAME_TARGET="Proxy.Tiny.PM.").cname_target == "proxy.tiny.pm"


def test_list_settings_are_split():
    s = _settings(DEV_HOSTS="localhost, 127.0.0.1 ,", DNS_NAMESERVERS="1.1.1.1,8.8.8.8")
    assert s.dev_hosts == ["localhost", "127.0.0.1"]
    assert s.dns_nameservers == ["1.1.1.1", "8.8.8.8"]
    assert "/api" in s.proxy_bypass_prefixes


def test_platform_hosts():
    s = _settings()
    assert s.is_platform_host("tiny.pm")
    assert s.is_platform_host("alice.tiny.pm")
    assert not s.is_platform_host("nottiny.pm")
    assert not s.is_platform_host("links.example.com")


@pytest.fixture
def _no_database_url_env(monkeypatch):
    # conftest exports DATABASE_URL for the app; isolate this test from it.
    monkeypatch.delenv("DATABASE_URL", raising=False)


@pytest.mark.usefixtures("_no_database_url_env")
def test_database_url_prefers_explicit_url():
    assert _settings(DATABASE_URL="sqlite://").database_url == "sqlite://"
    s = _settings(POSTGRES_USER="u", POSTGRES_PASSWORD="p", POSTGRES_SERVER="db", POSTGRES_DB="x")
    assert s.database_url == "postgresql://u:p@db/x"


def test_production_rejects_insecure_secret_key():
    with pytest.raises(ValidationError):
        _settings(APP_ENV="production", SECRET_KEY="change_this")


def test_production_requires_stripe_keys():
    with pytest.raises(ValidationError, match="STRIPE_SECRET_KEY"):
        _settings(
            APP_ENV="production",
            SECRET_KEY="x" * 40,
            DATABASE_URL="postgresql://u:strong@db/tinypm",
        )


def test_production_accepts_complete_configuration():
    s = _settings(
        APP_ENV="production",
        SECRET_KEY="x" * 40,
        DATABASE_URL="postgresql://u:strong@db/tinypm",
        STRIPE_SECRET_KEY="sk",
        STRIPE_WEBHOOK_SECRET="wh",
        STRIPE_PREMIUM_MONTHLY_PRICE_ID="m",
        STRIPE_PREMIUM_YEARLY_PRICE_ID="y",
    )
    assert s.is_production
