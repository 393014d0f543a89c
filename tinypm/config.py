from typing import List, Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ── Known insecure default keys (must never be used in production) ──
_INSECURE_KEYS = {
    "change_this",
    "change_this_to_a_secure_random_string",
    "secret",
}


class Settings(BaseSettings):
    APP_NAME: str = "TinyPM"
    APP_ENV: str = "development"
    API_PREFIX: str = "/api"
    SECRET_KEY: str = "change_this"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30  # 30 days
    ALGORITHM: str = "HS256"

    # CORS
    BACKEND_CORS_ORIGINS: str = ""

    # Logging
    LOG_LEVEL: str = ""  # level of the tinypm.* loggers, empty = by APP_ENV

    # Database
    DATABASE_URL: Optional[str] = None  # overrides POSTGRES_* when set
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "tinypm"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False
    SLOW_QUERY_THRESHOLD_MS: int = 500

    # Platform domain
    ROOT_DOMAIN: str = "tiny.pm"
    CNAME_TARGET: str = ""  # empty = ROOT_DOMAIN
    DEV_HOSTS: str = "localhost,127.0.0.1,dev.tiny.pm"
    PROXY_BYPASS_PREFIXES: str = "/api,/health,/metrics,/docs,/openapi.json"

    # Custom domain verification
    DOMAIN_MAX_VERIFICATION_ATTEMPTS: int = 5
    DOMAIN_VERIFICATION_COOLDOWN_SECONDS: int = 5 * 60
    DNS_TIMEOUT_SECONDS: float = 10.0
    DNS_NAMESERVERS: str = ""  # comma-separated, empty = system resolver
    DOMAIN_POLL_INTERVAL_SECONDS: float = 10.0
    DOMAIN_POLL_MAX_ROUNDS: int = 30

    # Google OAuth (consumed by the login frontend)
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""

    # Stripe (consumed by the billing service)
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_PREMIUM_MONTHLY_PRICE_ID: str = ""
    STRIPE_PREMIUM_YEARLY_PRICE_ID: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _validate_production_security(self) -> "Settings":
        """Block startup if critical secrets are insecure in production / staging."""
        if self.APP_ENV in ("production", "staging"):
            if self.SECRET_KEY in _INSECURE_KEYS or len(self.SECRET_KEY) < 32:
                raise ValueError(
                    f"SECRET_KEY is insecure ('{self.SECRET_KEY[:8]}…'). "
                    "Set a strong random key (≥ 32 chars) in .env or environment."
                )
            if not self.DATABASE_URL and self.POSTGRES_PASSWORD in ("postgres", ""):
                raise ValueError(
                    "POSTGRES_PASSWORD is set to default 'postgres'. "
                    "Set a strong password in .env or environment."
                )
            missing = [
                name
                for name in (
                    "STRIPE_SECRET_KEY",
                    "STRIPE_WEBHOOK_SECRET",
                    "STRIPE_PREMIUM_MONTHLY_PRICE_ID",
                    "STRIPE_PREMIUM_YEARLY_PRICE_ID",
                )
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"Missing required environment variables: {', '.join(missing)}")
        return self

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_staging(self) -> bool:
        return self.APP_ENV == "staging"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"
        )

    @property
    def root_domain(self) -> str:
        return self.ROOT_DOMAIN.strip().lower()

    @property
    def cname_target(self) -> str:
        return (self.CNAME_TARGET or self.ROOT_DOMAIN).strip().lower().rstrip(".")

    @property
    def dev_hosts(self) -> List[str]:
        return [h.strip().lower() for h in self.DEV_HOSTS.split(",") if h.strip()]

    @property
    def proxy_bypass_prefixes(self) -> List[str]:
        return [p.strip() for p in self.PROXY_BYPASS_PREFIXES.split(",") if p.strip()]

    @property
    def dns_nameservers(self) -> List[str]:
        return [ns.strip() for ns in self.DNS_NAMESERVERS.split(",") if ns.strip()]

    def is_platform_host(self, host: str) -> bool:
        """Root domain or any subdomain of it."""
        root = self.root_domain
        return host == root or host.endswith(f".{root}")


settings = Settings()
