"""Syntactic and reserved-name checks for custom domain claims."""
import re

from sqlalchemy.orm import Session

from tinypm.core.errors import DomainErrorCode, DomainVerificationError
from tinypm.crud import crud_domain

_LABEL = r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
DOMAIN_PATTERN = re.compile(rf"^(?:{_LABEL}\.)+[a-z]{{2,63}}$")
MAX_DOMAIN_LENGTH = 253


def normalize_domain(raw: str) -> str:
    domain = (raw or "").strip().lower()
    if domain.endswith("."):
        domain = domain[:-1]
    return domain


class DomainValidator:
    def __init__(self, root_domain: str):
        self.root_domain = root_domain.strip().lower()

    def check_format(self, domain: str) -> None:
        if not domain or len(domain) > MAX_DOMAIN_LENGTH or not DOMAIN_PATTERN.match(domain):
            raise DomainVerificationError(DomainErrorCode.INVALID_FORMAT, "Invalid domain format")

    def check_reserved(self, domain: str) -> None:
        if self.root_domain in domain:
            raise DomainVerificationError(
                DomainErrorCode.RESERVED_DOMAIN,
                f"Domains under {self.root_domain} cannot be used as custom domains",
            )

    def validate(self, db: Session, raw_domain: str) -> str:
        """Return the normalized domain or raise ``DomainVerificationError``."""
        domain = normalize_domain(raw_domain)
        self.check_format(domain)
        self.check_reserved(domain)
        if crud_domain.get_by_domain(db, domain) is not None:
            raise DomainVerificationError(DomainErrorCode.ALREADY_EXISTS, "Domain already registered")
        return domain
