"""
Timetable assignment: one subject taught by a teacher, in a classroom, at a time slot,
for a section, within a period. Rows written together share a matrix_id.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint, Uuid

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Assignment(Base):
    __tablename__ = "assignments"
    __table_args__ = (
        UniqueConstraint("period", "time_slot_code", "teacher_code", name="uq_assignment_period_slot_teacher"),
        UniqueConstraint("period", "time_slot_code", "classroom_code", name="uq_assignment_period_slot_classroom"),
        UniqueConstraint("period", "time_slot_code", "section_code", name="uq_assignment_period_slot_section"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(64), nullable=False, unique=True)
    subject_code = Column(String(50), nullable=False, index=True)
    teacher_code = Column(String(50), nullable=False, index=True)
    classroom_code = Column(String(50), nullable=False, index=True)
    time_slot_code = Column(String(50), nullable=False, index=True)
    jornada_code = Column(String(50), nullable=False, index=True)
    section_code = Column(String(50), nullable=False, index=True)
    period = Column(String(20), nullable=False, index=True)
    # NULL only on rows written before matrices existed (addressed by legacy key)
    matrix_id = Column(String(255), nullable=True, index=True)
    semester = Column(Integer, nullable=True)
    notes = Column(Text, nullable=False, default="")
    created_by = Column(String(50), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
