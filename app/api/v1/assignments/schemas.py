"""Assignment API schemas. Client-facing names are camelCase for the frontend."""

from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, field_validator

SEMESTER_MESSAGE = "semester must be a number between 1 and 12 when provided"

# Column widths of app.core.models.Assignment
CODE_MAX_LENGTH = 64
REFERENCE_CODE_MAX_LENGTH = 50
PERIOD_MAX_LENGTH = 20
MATRIX_ID_MAX_LENGTH = 255


def _clean_text(v: Any) -> str:
    """Trim strings; anything that is not a string becomes empty."""
    return v.strip() if isinstance(v, str) else ""


Text = Annotated[str, BeforeValidator(_clean_text)]


class AssignmentEntryIn(BaseModel):
    """One entry of a submitted batch. Accepts public ids (subjectId) or stored codes (subjectCode)."""

    code: Text = Field(
        "",
        max_length=CODE_MAX_LENGTH,
        validation_alias=AliasChoices("id", "code"),
    )
    subject_code: Text = Field(
        "",
        max_length=REFERENCE_CODE_MAX_LENGTH,
        validation_alias=AliasChoices("subjectId", "subjectCode", "subject_code"),
    )
    teacher_code: Text = Field(
        "",
        max_length=REFERENCE_CODE_MAX_LENGTH,
        validation_alias=AliasChoices("teacherId", "teacherCode", "teacher_code"),
    )
    classroom_code: Text = Field(
        "",
        max_length=REFERENCE_CODE_MAX_LENGTH,
        validation_alias=AliasChoices("classroomId", "classroomCode", "classroom_code"),
    )
    time_slot_code: Text = Field(
        "",
        max_length=REFERENCE_CODE_MAX_LENGTH,
        validation_alias=AliasChoices("timeSlotId", "timeSlotCode", "time_slot_code"),
    )
    jornada_code: Text = Field(
        "",
        max_length=REFERENCE_CODE_MAX_LENGTH,
        validation_alias=AliasChoices("jornadaId", "jornadaCode", "jornada_code"),
    )
    section_code: Text = Field(
        "",
        max_length=REFERENCE_CODE_MAX_LENGTH,
        validation_alias=AliasChoices("sectionId", "sectionCode", "section_code"),
    )
    period: Text = Field("", max_length=PERIOD_MAX_LENGTH)
    matrix_id: Text = Field(
        "",
        max_length=MATRIX_ID_MAX_LENGTH,
        validation_alias=AliasChoices("matrixId", "groupId", "matrix_id"),
    )
    semester: Optional[int] = None
    notes: Text = ""

    @field_validator("semester", mode="before")
    @classmethod
    def coerce_semester(cls, v: Any) -> Optional[int]:
        if not v:
            return None
        try:
            number = float(v)
        except (TypeError, ValueError):
            raise ValueError(SEMESTER_MESSAGE)
        if not number.is_integer() or number < 1 or number > 12:
            raise ValueError(SEMESTER_MESSAGE)
        return int(number)

    class Config:
        extra = "ignore"
        populate_by_name = True


class AssignmentResponse(BaseModel):
    id: str = Field(..., description="Assignment code")
    subjectId: str
    teacherId: str
    classroomId: str
    timeSlotId: str
    jornadaId: str
    sectionId: str
    period: str
    matrixId: str
    semester: Optional[int] = None
    notes: str = ""
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        populate_by_name = True


class MatrixResponse(BaseModel):
    """All assignments sharing one matrixId, entries ordered by time slot code."""

    matrixId: str
    period: str
    jornadaId: str
    sectionId: str
    semester: Optional[int] = None
    entries: List[AssignmentResponse] = Field(default_factory=list)
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        populate_by_name = True


class AssignmentFilters(BaseModel):
    jornada_code: Optional[str] = None
    period: Optional[str] = None
    teacher_code: Optional[str] = None
    section_code: Optional[str] = None
    # None means unrestricted; set by the caller for scoped users
    jornada_codes: Optional[List[str]] = None
