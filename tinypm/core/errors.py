"""
Custom domain error taxonomy.

Every failure of the claim → verify lifecycle is a ``DomainVerificationError``
tagged with a ``DomainErrorCode``. ``HTTP_STATUS_BY_CODE`` must cover every
code; the module refuses to import otherwise.
"""
import enum
from typing import Any, Optional


class DomainErrorCode(str, enum.Enum):
    INVALID_FORMAT = "INVALID_FORMAT"
    RESERVED_DOMAIN = "RESERVED_DOMAIN"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"
    NOT_FOUND = "NOT_FOUND"
    COOLDOWN = "COOLDOWN"
    MAX_ATTEMPTS = "MAX_ATTEMPTS"
    DNS_ERROR = "DNS_ERROR"
    INVALID_CNAME = "INVALID_CNAME"


HTTP_STATUS_BY_CODE: dict[DomainErrorCode, int] = {
    DomainErrorCode.INVALID_FORMAT: 400,
    DomainErrorCode.RESERVED_DOMAIN: 400,
    DomainErrorCode.ALREADY_EXISTS: 400,
    DomainErrorCode.SUBSCRIPTION_REQUIRED: 400,
    DomainErrorCode.NOT_FOUND: 404,
    DomainErrorCode.COOLDOWN: 400,
    DomainErrorCode.MAX_ATTEMPTS: 400,
    DomainErrorCode.DNS_ERROR: 400,
    DomainErrorCode.INVALID_CNAME: 400,
}

_unmapped = set(DomainErrorCode) - set(HTTP_STATUS_BY_CODE)
if _unmapped:
    raise RuntimeError(f"DomainErrorCode without HTTP status: {sorted(c.value for c in _unmapped)}")


class DomainVerificationError(Exception):
    """Typed failure of a domain operation.

    ``record`` is set when the failure was persisted on a domain record
    (``DNS_ERROR`` / ``INVALID_CNAME``), so callers can still show it.
    """

    def __init__(
        self,
        code: DomainErrorCode,
        message: str,
        *,
        remaining_seconds: Optional[int] = None,
        record: Any = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.remaining_seconds = remaining_seconds
        self.record = record

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_CODE[self.code]

    def to_payload(self) -> dict:
        payload: dict[str, Any] = {"error": self.message, "code": self.code.value}
        if self.remaining_seconds is not None:
            payload["remainingSeconds"] = self.remaining_seconds
        return payload
