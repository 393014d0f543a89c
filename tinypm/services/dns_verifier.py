"""
CNAME lookups for custom domain verification.

Only resolves; deciding whether the answer matches the expected target is
the verification service's job. Resolver failures are expected while DNS
propagates and are reported as ``DNS_ERROR`` for the single attempt.
"""
import logging
from typing import List, Optional, Sequence

import dns.exception
import dns.resolver

from tinypm.core.errors import DomainErrorCode, DomainVerificationError

logger = logging.getLogger("tinypm.dns")

NO_RECORDS_MESSAGE = "No DNS records found. Please ensure you have added the CNAME record."
NOT_FOUND_MESSAGE = "Domain not found. Please check if the domain exists and try again."
TIMEOUT_MESSAGE = "DNS lookup timed out. Please try again in a few minutes."
SERVER_ERROR_MESSAGE = "DNS server error. Please check your DNS configuration."
GENERIC_MESSAGE = "DNS verification failed. Please check your configuration."


def _message_for(exc: dns.exception.DNSException) -> str:
    if isinstance(exc, dns.resolver.NXDOMAIN):
        return NOT_FOUND_MESSAGE
    if isinstance(exc, dns.resolver.NoAnswer):
        return NO_RECORDS_MESSAGE
    if isinstance(exc, dns.exception.Timeout):
        return TIMEOUT_MESSAGE
    if isinstance(exc, dns.resolver.NoNameservers):
        return SERVER_ERROR_MESSAGE
    return GENERIC_MESSAGE


def normalize_hostname(name: str) -> str:
    return name.strip().lower().rstrip(".")


class DnsVerifier:
    def __init__(
        self,
        timeout: float = 10.0,
        nameservers: Optional[Sequence[str]] = None,
        resolver: Optional[dns.resolver.Resolver] = None,
    ):
        self.timeout = timeout
        self.nameservers = list(nameservers or [])
        self._resolver = resolver

    @property
    def resolver(self) -> dns.resolver.Resolver:
        # Built on first use: reading the system resolver config can fail on hosts without one
        if self._resolver is None:
            resolver = dns.resolver.Resolver()
            if self.nameservers:
                resolver.nameservers = self.nameservers
            self._resolver = resolver
        return self._resolver

    def resolve_cname(self, domain: str) -> List[str]:
        """Return the CNAME targets of ``domain`` (lowercase, no trailing dot)."""
        try:
            answers = self.resolver.resolve(domain, "CNAME", lifetime=self.timeout)
        except dns.exception.DNSException as exc:
            logger.info("CNAME lookup failed for %s: %s", domain, exc.__class__.__name__)
            raise DomainVerificationError(DomainErrorCode.DNS_ERROR, _message_for(exc)) from exc

        targets = [normalize_hostname(rdata.target.to_text()) for rdata in answers]
        logger.debug("CNAME %s -> %s", domain, targets)
        return targets
