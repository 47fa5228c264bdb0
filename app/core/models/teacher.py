"""Teacher with the list of subject codes they are authorised to teach."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String, Uuid

from app.db.session import Base


class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True, index=True)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="active")  # active | inactive
    career_code = Column(String(50), nullable=False, index=True)
    subject_codes = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
