"""
Custom Domain Model

Tracks per-user custom domain claims and their CNAME verification state.

    PENDING ──verify──▶ DNS_VERIFICATION ──▶ ACTIVE
                              │
                              └──────────▶ FAILED ──verify (until cap)──▶ DNS_VERIFICATION
"""
import enum
import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Uuid, func
from sqlalchemy.orm import relationship
from tinypm.db.base_class import Base


class DomainStatus(str, enum.Enum):
    PENDING = "PENDING"
    DNS_VERIFICATION = "DNS_VERIFICATION"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


class CustomDomain(Base):
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Uuid(as_uuid=True), ForeignKey("subscriptions.id"), nullable=True)
    domain = Column(String(255), unique=True, nullable=False, index=True)
    status = Column(String(32), nullable=False, default=DomainStatus.PENDING.value)

    # DNS Verification
    verification_code = Column(String(64), unique=True, nullable=False)
    cname_target = Column(String(255), nullable=False)
    verification_attempts = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="custom_domains")
    subscription = relationship("Subscription")
