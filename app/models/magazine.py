import uuid
from sqlalchemy import Column, String, Text, DateTime, JSON, func
from sqlalchemy.dialects.postgresql import UUID
from app.db.deps import Base
from app.utils.datetime_utils import get_current_utc_datetime


class Magazine(Base):
    __tablename__ = "magazines"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    category = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    image_url = Column(String, nullable=False, default="")
    tags = Column(JSON, nullable=True)  # list[str] or NULL
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=get_current_utc_datetime,
        server_default=func.now(),
    )
