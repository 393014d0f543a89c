from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class DomainCreate(BaseModel):
    domain: str


class DnsRecord(CamelModel):
    """The record the owner has to add at their DNS provider."""
    type: str = "CNAME"
    name: str
    value: str


class DomainInfo(CamelModel):
    id: UUID
    domain: str
    status: str
    verification_code: str
    cname_target: str
    verification_attempts: int
    last_attempt_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Dashboard hints
    dns_record: DnsRecord
    remaining_attempts: int
    cooldown_remaining_seconds: int = 0


class DomainList(CamelModel):
    domains: List[DomainInfo]
