"""
Process-wide collaborators.

One ``AppContainer`` is built when the app is created, stored on
``app.state.container`` and torn down on shutdown. Request handlers reach it
through the dependencies in ``tinypm.api.deps``; tests build their own.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from tinypm.config import Settings
from tinypm.core.timeutils import Clock, utcnow
from tinypm.crud import crud_domain
from tinypm.db.session import Database
from tinypm.services.dns_verifier import DnsVerifier
from tinypm.services.domain_verification import DomainVerificationService

logger = logging.getLogger("tinypm.app")


class AppContainer:
    def __init__(
        self,
        settings: Settings,
        database: Database,
        dns_verifier: DnsVerifier,
        clock: Clock = utcnow,
    ):
        self.settings = settings
        self.database = database
        self.dns_verifier = dns_verifier
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContainer":
        return cls(
            settings=settings,
            database=Database.from_settings(settings),
            dns_verifier=DnsVerifier(
                timeout=settings.DNS_TIMEOUT_SECONDS,
                nameservers=settings.dns_nameservers,
            ),
        )

    def domain_service(self, db: Session) -> DomainVerificationService:
        return DomainVerificationService(db, self.dns_verifier, self.settings, clock=self.clock)

    def lookup_owner_username(self, hostname: str) -> Optional[str]:
        """Owner username for an ACTIVE custom domain; opens its own session."""
        db = self.database.SessionLocal()
        try:
            return crud_domain.find_active_owner_username(db, hostname)
        finally:
            db.close()

    def shutdown(self) -> None:
        logger.info("Disposing database engine")
        self.database.dispose()
