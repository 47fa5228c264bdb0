"""
Client shape of stored assignments and their grouping into matrices.

Rows written before matrices existed have no matrix_id; they are exposed under a
synthetic legacy key, legacy|{period}|{jornada}|{section}, computed on read.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from app.core.models import Assignment

from .schemas import AssignmentResponse, MatrixResponse

LEGACY_PREFIX = "legacy"


def legacy_key(period: str, jornada_code: str, section_code: str) -> str:
    return f"{LEGACY_PREFIX}|{period}|{jornada_code}|{section_code}"


def parse_legacy_key(matrix_id: str) -> Optional[Tuple[str, str, str]]:
    """(period, jornada_code, section_code) for a legacy key, None for anything else."""
    if not isinstance(matrix_id, str) or not matrix_id.startswith(f"{LEGACY_PREFIX}|"):
        return None
    parts = matrix_id.split("|")
    if len(parts) != 4 or not all(parts[1:]):
        return None
    return parts[1], parts[2], parts[3]


def to_client(row: Assignment) -> AssignmentResponse:
    return AssignmentResponse(
        id=row.code,
        subjectId=row.subject_code,
        teacherId=row.teacher_code,
        classroomId=row.classroom_code,
        timeSlotId=row.time_slot_code,
        jornadaId=row.jornada_code,
        sectionId=row.section_code,
        period=row.period,
        matrixId=row.matrix_id or legacy_key(row.period, row.jornada_code, row.section_code),
        semester=row.semester,
        notes=row.notes or "",
        createdAt=_as_utc(row.created_at),
        updatedAt=_as_utc(row.updated_at),
    )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # columns are written in UTC; SQLite drops the offset on read
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utc_naive(value: datetime) -> datetime:
    # SQLite hands back naive values while fresh rows carry tzinfo
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _earliest(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    if a is None or b is None:
        return a or b
    return b if _utc_naive(b) < _utc_naive(a) else a


def _latest(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    if a is None or b is None:
        return a or b
    return b if _utc_naive(b) > _utc_naive(a) else a


def _new_matrix(matrix_id: str, base: AssignmentResponse) -> MatrixResponse:
    return MatrixResponse(
        matrixId=matrix_id,
        period=base.period,
        jornadaId=base.jornadaId,
        sectionId=base.sectionId,
        semester=base.semester,
        entries=[],
        createdAt=base.createdAt,
        updatedAt=base.updatedAt,
    )


def _add_entry(matrix: MatrixResponse, entry: AssignmentResponse) -> None:
    matrix.entries.append(entry)
    matrix.createdAt = _earliest(matrix.createdAt, entry.createdAt)
    matrix.updatedAt = _latest(matrix.updatedAt, entry.updatedAt)


def build_matrix(matrix_id: str, rows: Sequence[Assignment]) -> Optional[MatrixResponse]:
    """Aggregate the rows of one matrix; None when there are no rows."""
    entries = sorted((to_client(r) for r in rows), key=lambda e: e.timeSlotId)
    if not entries:
        return None
    matrix = _new_matrix(matrix_id, entries[0])
    for entry in entries:
        _add_entry(matrix, entry)
    return matrix


def group_matrices(items: Sequence[AssignmentResponse]) -> List[MatrixResponse]:
    """Partition a flat list by matrixId; aggregates sorted by (period, jornadaId)."""
    groups: Dict[str, MatrixResponse] = {}
    for item in items:
        matrix = groups.get(item.matrixId)
        if matrix is None:
            matrix = groups[item.matrixId] = _new_matrix(item.matrixId, item)
        _add_entry(matrix, item)
    result = list(groups.values())
    for matrix in result:
        matrix.entries.sort(key=lambda e: e.timeSlotId)
    result.sort(key=lambda m: (m.period, m.jornadaId))
    return result
