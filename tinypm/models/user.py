import uuid
from sqlalchemy import Column, String, DateTime, Text, Uuid, func
from sqlalchemy.orm import relationship
from tinypm.db.base_class import Base


class User(Base):
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    image = Column(String(500), nullable=True)
    username = Column(String(32), unique=True, index=True, nullable=True)

    # Public page
    page_title = Column(String(100), nullable=True)
    page_desc = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    subscription = relationship("Subscription", back_populates="user", uselist=False)
    custom_domains = relationship("CustomDomain", back_populates="user", cascade="all, delete-orphan")
    contents = relationship("Content", back_populates="user", cascade="all, delete-orphan")
