import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.core.database import Base


class BucketStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class Bucket(Base):
    __tablename__ = "buckets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    folder_name = Column(String, nullable=False, index=True)
    pin = Column(String(6), nullable=False)
    status = Column(String(16), nullable=False, default=BucketStatus.ACTIVE.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)

    files = relationship(
        "File",
        back_populates="bucket",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="File.created_at",
    )

    __table_args__ = (
        Index("ix_buckets_pin_status", "pin", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == BucketStatus.ACTIVE.value

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def __repr__(self):
        return f"<Bucket(id={self.id}, folder_name={self.folder_name!r}, status={self.status})>"
