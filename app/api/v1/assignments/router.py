from typing import Any, List, Optional, Union

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import require_roles
from app.auth.schemas import CurrentUser
from app.auth.scope import get_jornada_scope
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .reference_store import ReferenceStore, get_reference_store
from .schemas import AssignmentFilters, AssignmentResponse, MatrixResponse
from . import service

router = APIRouter(prefix="/api/assignments", tags=["assignments"])

WRITE_ROLES = ("admin", "coordinator")


@router.get(
    "",
    response_model=Union[List[AssignmentResponse], List[MatrixResponse]],
)
async def list_assignments(
    jornada_id: Optional[str] = Query(None, alias="jornadaId"),
    period: Optional[str] = Query(None),
    teacher_id: Optional[str] = Query(None, alias="teacherId"),
    section_id: Optional[str] = Query(None, alias="sectionId"),
    grouped: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    scope: Optional[List[str]] = Depends(get_jornada_scope),
):
    if scope is not None:
        if jornada_id and jornada_id not in scope:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=service.FORBIDDEN_JORNADA_MESSAGE,
            )
        if not scope:
            return []
    filters = AssignmentFilters(
        jornada_code=jornada_id or None,
        period=period or None,
        teacher_code=teacher_id or None,
        section_code=section_id or None,
        jornada_codes=scope,
    )
    return await service.list_assignments(db, filters, grouped=grouped)


@router.post(
    "",
    response_model=List[AssignmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_assignments(
    payload: Any = Body(None),
    db: AsyncSession = Depends(get_db),
    refs: ReferenceStore = Depends(get_reference_store),
    current_user: CurrentUser = Depends(require_roles(*WRITE_ROLES)),
    scope: Optional[List[str]] = Depends(get_jornada_scope),
):
    try:
        return await service.create_assignments(
            db, refs, payload, created_by=current_user.id, allowed_jornada_codes=scope
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/matrix/{matrix_id}", response_model=MatrixResponse)
async def get_matrix(
    matrix_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
    scope: Optional[List[str]] = Depends(get_jornada_scope),
):
    try:
        return await service.get_matrix(db, matrix_id, allowed_jornada_codes=scope)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/matrix/{matrix_id}", response_model=MatrixResponse)
async def replace_matrix(
    matrix_id: str,
    payload: Any = Body(None),
    db: AsyncSession = Depends(get_db),
    refs: ReferenceStore = Depends(get_reference_store),
    current_user: CurrentUser = Depends(require_roles(*WRITE_ROLES)),
    scope: Optional[List[str]] = Depends(get_jornada_scope),
):
    try:
        return await service.replace_matrix(
            db, refs, matrix_id, payload, created_by=current_user.id, allowed_jornada_codes=scope
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/matrix/{matrix_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(*WRITE_ROLES))],
)
async def delete_matrix(
    matrix_id: str,
    db: AsyncSession = Depends(get_db),
    scope: Optional[List[str]] = Depends(get_jornada_scope),
):
    try:
        await service.delete_matrix(db, matrix_id, allowed_jornada_codes=scope)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(*WRITE_ROLES))],
)
async def delete_assignment(
    assignment_id: str,
    db: AsyncSession = Depends(get_db),
    scope: Optional[List[str]] = Depends(get_jornada_scope),
):
    try:
        await service.delete_assignment(db, assignment_id, allowed_jornada_codes=scope)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
