"""Section: a cohort of students inside a jornada, with capacity and semester."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Uuid

from app.db.session import Base


class Section(Base):
    __tablename__ = "sections"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(120), nullable=False)
    status = Column(String(20), nullable=False, default="active")  # active | inactive
    jornada_code = Column(String(50), nullable=False, index=True)
    capacity = Column(Integer, nullable=False, default=0)
    semester = Column(Integer, nullable=True, default=1)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
