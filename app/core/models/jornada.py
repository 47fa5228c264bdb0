import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Uuid

from app.db.session import Base


class Jornada(Base):
    """
    Academic shift / program track. Owns its sections and time slots.
    manager_id is the user code of the coordinator allowed to schedule it.
    """

    __tablename__ = "jornadas"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(120), nullable=False)
    status = Column(String(20), nullable=False, default="active")  # active | inactive
    career_code = Column(String(50), nullable=True)
    manager_id = Column(String(50), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
