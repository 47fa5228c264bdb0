"""
Assignment matrix operations: list, create, fetch, replace and delete.

A matrix is every assignment sharing one matrix_id. Create and replace validate the
whole batch, check it against stored rows and write it inside one transaction, so
a failing batch leaves storage untouched.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Collection, Iterable, List, Optional, Tuple, Union

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, ForbiddenError, InvalidInputError, NotFoundError, ServiceError
from app.core.models import Assignment

from .codes import CodeGenerator, generate_matrix_id, now_millis
from .conflicts import ensure_no_conflicts
from .matrix import build_matrix, group_matrices, parse_legacy_key, to_client
from .reference_store import ReferenceStore
from .schemas import MATRIX_ID_MAX_LENGTH, AssignmentFilters, AssignmentResponse, MatrixResponse
from .validation import AssignmentCandidate, check_references, normalize_batch

log = logging.getLogger("scheduling.assignments")

FORBIDDEN_JORNADA_MESSAGE = "You do not have permission to manage this jornada"
SERIALIZATION_FAILURE = "40001"


def _ensure_jornadas_allowed(jornada_codes: Iterable[str], allowed: Optional[Collection[str]]) -> None:
    if allowed is None:
        return
    for code in jornada_codes:
        if code not in allowed:
            raise ForbiddenError(FORBIDDEN_JORNADA_MESSAGE)


def _is_serialization_failure(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == SERIALIZATION_FAILURE


@asynccontextmanager
async def _matrix_transaction(db: AsyncSession) -> AsyncIterator[None]:
    """Commit on success, roll back on any error. Storage-level aborts become ConflictError."""
    if not db.in_transaction() and settings.matrix_isolation_level:
        await db.connection(execution_options={"isolation_level": settings.matrix_isolation_level})
    try:
        yield
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        log.warning("Matrix write rejected by storage constraint: %s", exc.orig)
        raise ConflictError("Assignment conflicts with an existing assignment (code, teacher, classroom or section)")
    except DBAPIError as exc:
        await db.rollback()
        if _is_serialization_failure(exc):
            raise ConflictError("Assignment matrix was modified concurrently, retry the request")
        raise
    except ServiceError as exc:
        await db.rollback()
        log.info("Matrix write rejected: %s", exc.message)
        raise
    except BaseException:
        await db.rollback()
        raise


def _to_row(candidate: AssignmentCandidate, created_by: str) -> Assignment:
    return Assignment(
        code=candidate.code,
        subject_code=candidate.subject_code,
        teacher_code=candidate.teacher_code,
        classroom_code=candidate.classroom_code,
        time_slot_code=candidate.time_slot_code,
        jornada_code=candidate.jornada_code,
        section_code=candidate.section_code,
        period=candidate.period,
        matrix_id=candidate.matrix_id,
        semester=candidate.semester,
        notes=candidate.notes,
        created_by=created_by or "",
    )


def _legacy_condition(period: str, jornada_code: str, section_code: str):
    return and_(
        or_(Assignment.matrix_id.is_(None), Assignment.matrix_id == ""),
        Assignment.period == period,
        Assignment.jornada_code == jornada_code,
        Assignment.section_code == section_code,
    )


async def _load_matrix_rows(db: AsyncSession, matrix_id: str) -> List[Assignment]:
    result = await db.execute(
        select(Assignment).where(Assignment.matrix_id == matrix_id).order_by(Assignment.time_slot_code)
    )
    return list(result.scalars().all())


async def _stamp_legacy_rows(db: AsyncSession, matrix_id: str, triple: Tuple[str, str, str]) -> int:
    """Write the legacy key onto rows of its (period, jornada, section) that have no matrix id."""
    result = await db.execute(
        update(Assignment)
        .where(_legacy_condition(*triple))
        .values(matrix_id=matrix_id)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount:
        log.info("Backfilled matrix_id=%s on %d legacy assignments", matrix_id, result.rowcount)
    return result.rowcount or 0


async def _assign_codes(db: AsyncSession, candidates: List[AssignmentCandidate], base: int) -> None:
    """
    Give every candidate without a code a fresh one, skipping codes used in the batch or in storage.

    Codes are unique regardless of case, so a client code matching a stored one in any case is a conflict.
    """
    supplied = [c.code for c in candidates if c.code]
    if supplied:
        result = await db.execute(
            select(Assignment.code).where(func.upper(Assignment.code).in_([code.upper() for code in supplied]))
        )
        stored = result.scalars().first()
        if stored is not None:
            raise ConflictError(f"Assignment id/code {stored} already exists")
    generator = CodeGenerator(base, taken=(c.code for c in candidates))
    pending = [c for c in candidates if not c.code]
    while pending:
        proposed = [(generator.next_code(), c) for c in pending]
        result = await db.execute(
            select(Assignment.code).where(func.upper(Assignment.code).in_([code.upper() for code, _ in proposed]))
        )
        stored = {code.upper() for code in result.scalars().all()}
        pending = []
        for code, candidate in proposed:
            if code.upper() in stored:
                pending.append(candidate)
            else:
                candidate.code = code


async def _prepare_batch(
    refs: ReferenceStore,
    payload: Any,
    *,
    now: int,
    forced_matrix_id: Optional[str] = None,
    allowed_jornada_codes: Optional[Collection[str]] = None,
) -> List[AssignmentCandidate]:
    try:
        candidates = normalize_batch(
            payload,
            forced_matrix_id=forced_matrix_id,
            new_matrix_id=lambda: generate_matrix_id(now),
        )
        _ensure_jornadas_allowed((c.jornada_code for c in candidates), allowed_jornada_codes)
        references = await refs.fetch_for_batch(candidates)
        check_references(candidates, references)
    except ServiceError as exc:
        log.info("Batch rejected (%s): %s", exc.kind, exc.message)
        raise
    return candidates


async def list_assignments(
    db: AsyncSession,
    filters: AssignmentFilters,
    grouped: bool = False,
) -> Union[List[AssignmentResponse], List[MatrixResponse]]:
    stmt = select(Assignment)
    if filters.jornada_code:
        stmt = stmt.where(Assignment.jornada_code == filters.jornada_code)
    if filters.period:
        stmt = stmt.where(Assignment.period == filters.period)
    if filters.teacher_code:
        stmt = stmt.where(Assignment.teacher_code == filters.teacher_code)
    if filters.section_code:
        stmt = stmt.where(Assignment.section_code == filters.section_code)
    if filters.jornada_codes is not None:
        stmt = stmt.where(Assignment.jornada_code.in_(filters.jornada_codes))
    stmt = stmt.order_by(Assignment.period, Assignment.jornada_code, Assignment.time_slot_code)
    result = await db.execute(stmt)
    items = [to_client(row) for row in result.scalars().all()]
    if grouped:
        return group_matrices(items)
    return items


async def create_assignments(
    db: AsyncSession,
    refs: ReferenceStore,
    payload: Any,
    *,
    created_by: str = "",
    allowed_jornada_codes: Optional[Collection[str]] = None,
    now: Optional[int] = None,
) -> List[AssignmentResponse]:
    """Validate and insert a new batch as one matrix. Returns the inserted entries."""
    now = now if now is not None else now_millis()
    candidates = await _prepare_batch(refs, payload, now=now, allowed_jornada_codes=allowed_jornada_codes)
    async with _matrix_transaction(db):
        await _assign_codes(db, candidates, now)
        await ensure_no_conflicts(db, candidates)
        rows = [_to_row(c, created_by) for c in candidates]
        db.add_all(rows)
        await db.flush()
    log.info("Created matrix_id=%s with %d assignments", candidates[0].matrix_id, len(rows))
    return [to_client(row) for row in rows]


async def get_matrix(
    db: AsyncSession,
    matrix_id: str,
    allowed_jornada_codes: Optional[Collection[str]] = None,
) -> MatrixResponse:
    rows = await _load_matrix_rows(db, matrix_id)
    triple = parse_legacy_key(matrix_id)
    if not rows and triple is not None:
        _ensure_jornadas_allowed([triple[1]], allowed_jornada_codes)
        async with _matrix_transaction(db):
            if await _stamp_legacy_rows(db, matrix_id, triple):
                rows = await _load_matrix_rows(db, matrix_id)
    if not rows:
        raise NotFoundError("Assignment matrix not found")
    _ensure_jornadas_allowed({r.jornada_code for r in rows}, allowed_jornada_codes)
    return build_matrix(matrix_id, rows)


async def replace_matrix(
    db: AsyncSession,
    refs: ReferenceStore,
    matrix_id: str,
    payload: Any,
    *,
    created_by: str = "",
    allowed_jornada_codes: Optional[Collection[str]] = None,
    now: Optional[int] = None,
) -> MatrixResponse:
    """
    Replace every member of a matrix with a new batch.

    Legacy stamping, conflict reads, the delete and the insert share one transaction;
    on any failure the stored matrix is left exactly as it was.
    """
    matrix_id = (matrix_id or "").strip()
    if not matrix_id:
        raise InvalidInputError("matrixId is required")
    if len(matrix_id) > MATRIX_ID_MAX_LENGTH:
        raise InvalidInputError(f"matrixId must be at most {MATRIX_ID_MAX_LENGTH} characters")
    now = now if now is not None else now_millis()
    candidates = await _prepare_batch(
        refs,
        payload,
        now=now,
        forced_matrix_id=matrix_id,
        allowed_jornada_codes=allowed_jornada_codes,
    )
    triple = parse_legacy_key(matrix_id)
    async with _matrix_transaction(db):
        if triple is not None:
            await _stamp_legacy_rows(db, matrix_id, triple)
        if allowed_jornada_codes is not None:
            current = await _load_matrix_rows(db, matrix_id)
            _ensure_jornadas_allowed({r.jornada_code for r in current}, allowed_jornada_codes)
        await ensure_no_conflicts(db, candidates, exclude_matrix_id=matrix_id)
        await db.execute(
            delete(Assignment)
            .where(Assignment.matrix_id == matrix_id)
            .execution_options(synchronize_session="fetch")
        )
        await _assign_codes(db, candidates, now)
        rows = [_to_row(c, created_by) for c in candidates]
        db.add_all(rows)
        await db.flush()
    log.info("Replaced matrix_id=%s with %d assignments", matrix_id, len(rows))
    return build_matrix(matrix_id, rows)


async def delete_matrix(
    db: AsyncSession,
    matrix_id: str,
    allowed_jornada_codes: Optional[Collection[str]] = None,
) -> int:
    """Delete every member of a matrix (legacy keys included). Returns the number of rows removed."""
    condition = Assignment.matrix_id == matrix_id
    triple = parse_legacy_key(matrix_id)
    if triple is not None:
        condition = or_(condition, _legacy_condition(*triple))
    async with _matrix_transaction(db):
        if allowed_jornada_codes is not None:
            result = await db.execute(select(Assignment.jornada_code).where(condition).distinct())
            _ensure_jornadas_allowed(result.scalars().all(), allowed_jornada_codes)
        result = await db.execute(
            delete(Assignment).where(condition).execution_options(synchronize_session="fetch")
        )
        deleted = result.rowcount or 0
        if not deleted:
            raise NotFoundError("Assignment matrix not found")
    log.info("Deleted matrix_id=%s (%d assignments)", matrix_id, deleted)
    return deleted


async def delete_assignment(
    db: AsyncSession,
    code: str,
    allowed_jornada_codes: Optional[Collection[str]] = None,
) -> None:
    result = await db.execute(select(Assignment).where(Assignment.code == code))
    obj = result.scalar_one_or_none()
    if not obj:
        raise NotFoundError("Assignment not found")
    _ensure_jornadas_allowed([obj.jornada_code], allowed_jornada_codes)
    await db.delete(obj)
    await db.commit()
