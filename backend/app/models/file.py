import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.core.database import Base


class File(Base):
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    bucket_id = Column(
        String(36),
        ForeignKey("buckets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    object_name = Column(String, nullable=False)
    filename = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    content_type = Column(String, nullable=False, default="application/octet-stream")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    bucket = relationship("Bucket", back_populates="files")
