"""
Custom domain lifecycle: claim → CNAME verification → activation.

verify() performs one step of the state machine:

  1. load the record (owner-scoped);   ACTIVE records are returned untouched
  2. cooldown since last attempt       → COOLDOWN (nothing persisted)
  3. attempt cap                       → MAX_ATTEMPTS (nothing persisted)
  4. count the attempt, enter DNS_VERIFICATION (conditional update)
  5. CNAME lookup → ACTIVE, or FAILED + DNS_ERROR / INVALID_CNAME

Every transition is committed before verify() returns or raises.
"""
import logging
import math
from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from tinypm.config import Settings
from tinypm.core.errors import DomainErrorCode, DomainVerificationError
from tinypm.core.timeutils import Clock, ensure_utc, utcnow
from tinypm.crud import crud_domain
from tinypm.middleware.metrics import DOMAIN_VERIFICATIONS
from tinypm.models.custom_domain import CustomDomain, DomainStatus
from tinypm.models.user import User
from tinypm.schemas.custom_domain import DnsRecord, DomainInfo
from tinypm.services.dns_verifier import DnsVerifier, normalize_hostname
from tinypm.services.domain_validator import DomainValidator

logger = logging.getLogger("tinypm.domain")


def dns_record_for(domain: str, cname_target: str) -> DnsRecord:
    """Record name as DNS providers expect it: first label for subdomains, "@" for apex."""
    labels = domain.split(".")
    name = labels[0] if len(labels) > 2 else "@"
    return DnsRecord(type="CNAME", name=name, value=cname_target)


class DomainVerificationService:
    def __init__(
        self,
        db: Session,
        dns_verifier: DnsVerifier,
        settings: Settings,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.dns_verifier = dns_verifier
        self.settings = settings
        self.clock = clock
        self.validator = DomainValidator(settings.root_domain)
        self.max_attempts = settings.DOMAIN_MAX_VERIFICATION_ATTEMPTS
        self.cooldown_seconds = settings.DOMAIN_VERIFICATION_COOLDOWN_SECONDS

    # ── Claim / list / delete ──

    def add_domain(self, user: User, raw_domain: str) -> CustomDomain:
        domain = self.validator.validate(self.db, raw_domain)
        record = crud_domain.create(
            self.db,
            user=user,
            domain=domain,
            cname_target=self.settings.cname_target,
        )
        logger.info("Custom domain added: %s for user %s", domain, user.id)
        return record

    def list_domains(self, owner_id: UUID) -> List[CustomDomain]:
        return crud_domain.list_for_owner(self.db, owner_id)

    def delete_domain(self, domain_id: Union[str, UUID], owner_id: UUID) -> None:
        domain_name = crud_domain.delete(self.db, domain_id=domain_id, owner_id=owner_id)
        if domain_name is None:
            raise DomainVerificationError(DomainErrorCode.NOT_FOUND, "Domain not found")
        logger.info("Custom domain deleted: %s", domain_name)

    # ── Verification ──

    def cooldown_remaining(self, record: CustomDomain, now: Optional[datetime] = None) -> int:
        """Whole seconds until the next attempt is allowed (0 = allowed now)."""
        last_attempt = ensure_utc(record.last_attempt_at)
        if last_attempt is None:
            return 0
        now = now or self.clock()
        remaining = self.cooldown_seconds - (now - last_attempt).total_seconds()
        if remaining <= 0:
            return 0
        return math.ceil(remaining)

    def verify(self, domain_id: Union[str, UUID], owner_id: Optional[UUID] = None) -> CustomDomain:
        record = crud_domain.get(self.db, domain_id, owner_id=owner_id)
        if record is None:
            raise DomainVerificationError(DomainErrorCode.NOT_FOUND, "Domain not found")

        if record.status == DomainStatus.ACTIVE:
            return record

        now = self.clock()
        remaining = self.cooldown_remaining(record, now)
        if remaining > 0:
            raise DomainVerificationError(
                DomainErrorCode.COOLDOWN,
                f"Please wait {remaining} seconds before retrying",
                remaining_seconds=remaining,
            )

        if record.verification_attempts >= self.max_attempts:
            raise DomainVerificationError(
                DomainErrorCode.MAX_ATTEMPTS, "Maximum verification attempts exceeded"
            )

        if not crud_domain.begin_attempt(self.db, record, now):
            # A concurrent request counted this attempt first
            raise DomainVerificationError(
                DomainErrorCode.COOLDOWN,
                f"Please wait {self.cooldown_seconds} seconds before retrying",
                remaining_seconds=self.cooldown_seconds,
            )

        logger.info(
            "Verifying %s (attempt %d/%d)",
            record.domain, record.verification_attempts, self.max_attempts,
        )

        try:
            targets = self.dns_verifier.resolve_cname(record.domain)
        except DomainVerificationError as exc:
            crud_domain.mark_failed(self.db, record, exc.message)
            DOMAIN_VERIFICATIONS.labels(outcome="dns_error").inc()
            exc.record = record
            raise
        except Exception:
            crud_domain.mark_failed(self.db, record, "DNS verification failed")
            DOMAIN_VERIFICATIONS.labels(outcome="error").inc()
            logger.exception("Unexpected error verifying %s", record.domain)
            raise

        expected = normalize_hostname(record.cname_target)
        if expected not in {normalize_hostname(t) for t in targets}:
            message = f"CNAME record should point to {record.cname_target}"
            crud_domain.mark_failed(self.db, record, message)
            DOMAIN_VERIFICATIONS.labels(outcome="invalid_cname").inc()
            logger.info("CNAME mismatch for %s: %s", record.domain, targets)
            raise DomainVerificationError(DomainErrorCode.INVALID_CNAME, message, record=record)

        crud_domain.mark_active(self.db, record, self.clock())
        DOMAIN_VERIFICATIONS.labels(outcome="active").inc()
        logger.info("Domain verified: %s", record.domain)
        return record

    # ── Presentation ──

    def describe(self, record: CustomDomain) -> DomainInfo:
        return DomainInfo(
            id=record.id,
            domain=record.domain,
            status=record.status,
            verification_code=record.verification_code,
            cname_target=record.cname_target,
            verification_attempts=record.verification_attempts,
            last_attempt_at=ensure_utc(record.last_attempt_at),
            verified_at=ensure_utc(record.verified_at),
            error_message=record.error_message,
            created_at=ensure_utc(record.created_at),
            updated_at=ensure_utc(record.updated_at),
            dns_record=dns_record_for(record.domain, record.cname_target),
            remaining_attempts=max(self.max_attempts - record.verification_attempts, 0),
            cooldown_remaining_seconds=self.cooldown_remaining(record),
        )
