"""
Custom Domain Management API

Allows a subscriber to:
  1. Add a custom domain (PENDING)
  2. Get the CNAME record to configure
  3. Run one verification step (cooldown + attempt cap enforced)
  4. List / delete their domains

``GET /domains/verify`` is the reverse proxy's on-demand TLS check.
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from tinypm.api import deps
from tinypm.core.container import AppContainer
from tinypm.core.errors import DomainVerificationError
from tinypm.crud import crud_domain
from tinypm.middleware.custom_domain import clean_hostname, is_platform_or_dev_host
from tinypm.models.user import User
from tinypm.schemas.custom_domain import DomainCreate, DomainInfo, DomainList
from tinypm.services.domain_verification import DomainVerificationService

router = APIRouter()
logger = logging.getLogger("tinypm.domain")


@router.get("", response_model=DomainList)
def list_domains(
    service: DomainVerificationService = Depends(deps.get_domain_service),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    records = service.list_domains(current_user.id)
    return DomainList(domains=[service.describe(r) for r in records])


@router.post("", response_model=DomainInfo)
def add_domain(
    body: DomainCreate,
    service: DomainVerificationService = Depends(deps.get_domain_service),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    record = service.add_domain(current_user, body.domain)
    return service.describe(record)


@router.get("/verify", response_class=PlainTextResponse)
def check_domain(
    request: Request,
    domain: Optional[str] = Query(None),
    db: Session = Depends(deps.get_db),
    container: AppContainer = Depends(deps.get_container),
) -> Any:
    """Plain-text yes/no: may this hostname be served (and get a certificate)?"""
    host = domain or request.headers.get("host", "")
    if not host:
        return PlainTextResponse("no", status_code=400)

    hostname = clean_hostname(host)
    if is_platform_or_dev_host(hostname, container.settings):
        return PlainTextResponse("yes")

    allowed = crud_domain.is_active(db, hostname)
    if container.settings.is_development:
        logger.debug("Domain check for %s: %s", hostname, "found" if allowed else "not found")
    return PlainTextResponse("yes" if allowed else "no", status_code=200 if allowed else 404)


@router.delete("/{domain_id}")
def delete_domain(
    domain_id: str,
    service: DomainVerificationService = Depends(deps.get_domain_service),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    service.delete_domain(domain_id, current_user.id)
    return {"success": True}


@router.post("/{domain_id}/verify", response_model=DomainInfo)
def verify_domain(
    domain_id: str,
    service: DomainVerificationService = Depends(deps.get_domain_service),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """One verification step; a failed DNS check still answers 200 with the FAILED record."""
    try:
        record = service.verify(domain_id, owner_id=current_user.id)
    except DomainVerificationError as exc:
        if exc.record is None:
            raise
        record = exc.record
    return service.describe(record)
