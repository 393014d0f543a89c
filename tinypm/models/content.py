import enum
import uuid
from sqlalchemy import Column, String, Boolean, Integer, DateTime, ForeignKey, Text, Uuid, func
from sqlalchemy.orm import relationship
from tinypm.db.base_class import Base


class ContentType(str, enum.Enum):
    LINK = "LINK"
    TITLE = "TITLE"
    DIVIDER = "DIVIDER"
    TEXT = "TEXT"


class Content(Base):
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(16), nullable=False)
    title = Column(String(255), nullable=True)      # LINK, TITLE
    url = Column(String(2048), nullable=True)       # LINK
    text = Column(Text, nullable=True)              # TEXT
    emoji = Column(String(16), nullable=True)       # LINK, TITLE
    enabled = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="contents")
