"""Scheduling collisions between a validated batch and stored assignments."""

from typing import Iterable, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError
from app.core.models import Assignment

from .validation import AssignmentCandidate


async def find_conflict(
    db: AsyncSession,
    candidate: AssignmentCandidate,
    exclude_matrix_id: Optional[str] = None,
) -> Optional[Assignment]:
    """First stored row booking the same teacher, classroom or section in the candidate's period and slot."""
    stmt = select(Assignment).where(
        Assignment.period == candidate.period,
        Assignment.time_slot_code == candidate.time_slot_code,
        or_(
            Assignment.teacher_code == candidate.teacher_code,
            Assignment.classroom_code == candidate.classroom_code,
            Assignment.section_code == candidate.section_code,
        ),
    )
    if exclude_matrix_id is not None:
        # rows without a matrix id never belong to the matrix being replaced
        stmt = stmt.where(or_(Assignment.matrix_id.is_(None), Assignment.matrix_id != exclude_matrix_id))
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none()


def describe_conflict(candidate: AssignmentCandidate, existing: Assignment) -> str:
    slot, period = candidate.time_slot_code, candidate.period
    if existing.teacher_code == candidate.teacher_code:
        return f"Teacher {candidate.teacher_code} already has an assignment in time slot {slot} for period {period}"
    if existing.classroom_code == candidate.classroom_code:
        return f"Classroom {candidate.classroom_code} is already assigned in time slot {slot} for period {period}"
    if existing.section_code == candidate.section_code:
        return f"Section {candidate.section_code} already has an assignment in time slot {slot} for period {period}"
    return "Assignment conflict detected"


async def ensure_no_conflicts(
    db: AsyncSession,
    candidates: Iterable[AssignmentCandidate],
    exclude_matrix_id: Optional[str] = None,
) -> None:
    """Check candidates one by one against stored rows; raises ConflictError on the first collision."""
    for candidate in candidates:
        existing = await find_conflict(db, candidate, exclude_matrix_id)
        if existing is not None:
            raise ConflictError(describe_conflict(candidate, existing))
