"""
Custom domain store.

Uniqueness of ``domain`` and the attempt counter are enforced by the database
(unique constraint, conditional UPDATE), never by in-process locks: several
worker processes serve requests concurrently.
"""
import uuid
from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tinypm.core.errors import DomainErrorCode, DomainVerificationError
from tinypm.crud import crud_subscription
from tinypm.crud.ids import parse_id
from tinypm.models.custom_domain import CustomDomain, DomainStatus
from tinypm.models.user import User


def get(
    db: Session,
    domain_id: Union[str, UUID],
    owner_id: Optional[UUID] = None,
) -> Optional[CustomDomain]:
    did = parse_id(domain_id)
    if did is None:
        return None
    query = db.query(CustomDomain).filter(CustomDomain.id == did)
    if owner_id is not None:
        query = query.filter(CustomDomain.user_id == owner_id)
    return query.first()


def get_by_domain(db: Session, domain: str) -> Optional[CustomDomain]:
    return db.query(CustomDomain).filter(CustomDomain.domain == domain).first()


def list_for_owner(db: Session, owner_id: UUID) -> List[CustomDomain]:
    return db.query(CustomDomain).filter(
        CustomDomain.user_id == owner_id
    ).order_by(CustomDomain.created_at.desc()).all()


def find_active_owner_username(db: Session, hostname: str) -> Optional[str]:
    """Username owning an ACTIVE record for exactly ``hostname``, if any."""
    row = db.query(User.username).join(
        CustomDomain, CustomDomain.user_id == User.id
    ).filter(
        CustomDomain.domain == hostname,
        CustomDomain.status == DomainStatus.ACTIVE.value,
    ).first()
    if row is None:
        return None
    return row[0]


def is_active(db: Session, hostname: str) -> bool:
    return db.query(CustomDomain.id).filter(
        CustomDomain.domain == hostname,
        CustomDomain.status == DomainStatus.ACTIVE.value,
    ).first() is not None


def _generate_verification_code(db: Session) -> str:
    while True:
        code = str(uuid.uuid4())
        exists = db.query(CustomDomain.id).filter(
            CustomDomain.verification_code == code
        ).first()
        if exists is None:
            return code


def create(db: Session, *, user: User, domain: str, cname_target: str) -> CustomDomain:
    subscription = crud_subscription.get_active_for_user(db, user.id)
    if subscription is None:
        raise DomainVerificationError(
            DomainErrorCode.SUBSCRIPTION_REQUIRED, "Active subscription required"
        )

    record = CustomDomain(
        user_id=user.id,
        subscription_id=subscription.id,
        domain=domain,
        status=DomainStatus.PENDING.value,
        verification_code=_generate_verification_code(db),
        cname_target=cname_target,
        verification_attempts=0,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent claim of the same domain
        db.rollback()
        raise DomainVerificationError(
            DomainErrorCode.ALREADY_EXISTS, "Domain already registered"
        )
    db.refresh(record)
    return record


def delete(db: Session, *, domain_id: Union[str, UUID], owner_id: UUID) -> Optional[str]:
    """Delete the owner's record; returns the deleted domain name or None."""
    record = get(db, domain_id, owner_id=owner_id)
    if record is None:
        return None
    domain_name = record.domain
    db.delete(record)
    db.commit()
    return domain_name


# ═══════════════════════════════════════════
#  Verification state transitions
# ═══════════════════════════════════════════

def begin_attempt(db: Session, record: CustomDomain, now: datetime) -> bool:
    """Count one attempt and enter DNS_VERIFICATION.

    Guarded on the attempt count this request observed, so of two
    concurrent verify calls only one gets to increment.
    """
    seen_attempts = record.verification_attempts
    result = db.execute(
        update(CustomDomain)
        .where(
            CustomDomain.id == record.id,
            CustomDomain.verification_attempts == seen_attempts,
        )
        .values(
            verification_attempts=CustomDomain.verification_attempts + 1,
            last_attempt_at=now,
            status=DomainStatus.DNS_VERIFICATION.value,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(record)
    return result.rowcount == 1


def mark_failed(db: Session, record: CustomDomain, message: str) -> CustomDomain:
    record.status = DomainStatus.FAILED.value
    record.error_message = message
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def mark_active(db: Session, record: CustomDomain, now: datetime) -> CustomDomain:
    record.status = DomainStatus.ACTIVE.value
    record.verified_at = now
    record.error_message = None
    db.add(record)
    db.commit()
    db.refresh(record)
    return record
