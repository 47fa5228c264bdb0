"""Time slot (day, start, end) owned by exactly one jornada."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Uuid

from app.db.session import Base


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True, index=True)
    day = Column(String(20), nullable=False)
    start = Column(String(5), nullable=False)  # HH:MM
    end = Column(String(5), nullable=False)  # HH:MM
    jornada_code = Column(String(50), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
