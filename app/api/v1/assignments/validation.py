"""
Batch validation for assignment matrices.

normalize_batch turns the raw payload into typed candidates and rejects anything
that can be decided without storage (missing fields, in-batch double booking).
check_references then applies the business rules against the referenced records.
Every failure aborts the whole batch.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Set, Tuple

from pydantic import ValidationError

from app.core.exceptions import ConflictError, InvalidInputError, ReferentialIntegrityError

from .reference_store import ReferenceSet
from .schemas import AssignmentEntryIn

REQUIRED_FIELDS_MESSAGE = (
    "subjectId, teacherId, classroomId, timeSlotId, jornadaId, sectionId, period and matrixId "
    "are required for each assignment"
)


@dataclass
class AssignmentCandidate:
    """Normalised entry, ready to be checked and stored."""

    code: str
    subject_code: str
    teacher_code: str
    classroom_code: str
    time_slot_code: str
    jornada_code: str
    section_code: str
    period: str
    matrix_id: str
    semester: Optional[int] = None
    notes: str = ""

    @property
    def slot_key(self) -> Tuple[str, str]:
        return (self.period, self.time_slot_code)

    def missing_required(self) -> bool:
        return not all(
            (
                self.subject_code,
                self.teacher_code,
                self.classroom_code,
                self.time_slot_code,
                self.jornada_code,
                self.section_code,
                self.period,
                self.matrix_id,
            )
        )


def extract_entries(payload: Any) -> List[Any]:
    """Accept a bare list or an object carrying an `assignments` list."""
    entries = payload.get("assignments") if isinstance(payload, Mapping) else payload
    if not isinstance(entries, list) or not entries:
        raise InvalidInputError("assignments array is required")
    return entries


def _validation_message(exc: ValidationError) -> str:
    messages = []
    for err in exc.errors():
        if err.get("type") == "string_too_long":
            field = err.get("loc", ("value",))[-1]
            messages.append(f"{field} must be at most {err.get('ctx', {}).get('max_length')} characters")
            continue
        msg = str(err.get("msg", ""))
        messages.append(msg[len("Value error, "):] if msg.startswith("Value error, ") else msg)
    return "; ".join(m for m in messages if m) or "Invalid assignment payload"


def _parse_entry(raw: Any) -> AssignmentEntryIn:
    if isinstance(raw, AssignmentEntryIn):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidInputError("Each assignment must be an object")
    try:
        return AssignmentEntryIn.model_validate(dict(raw))
    except ValidationError as exc:
        raise InvalidInputError(_validation_message(exc))


def _to_candidate(entry: AssignmentEntryIn) -> AssignmentCandidate:
    return AssignmentCandidate(
        code=entry.code,
        subject_code=entry.subject_code,
        teacher_code=entry.teacher_code,
        classroom_code=entry.classroom_code,
        time_slot_code=entry.time_slot_code,
        jornada_code=entry.jornada_code,
        section_code=entry.section_code,
        period=entry.period,
        matrix_id=entry.matrix_id,
        semester=entry.semester,
        notes=entry.notes,
    )


def normalize_batch(
    payload: Any,
    *,
    forced_matrix_id: Optional[str] = None,
    new_matrix_id: Optional[Callable[[], str]] = None,
) -> List[AssignmentCandidate]:
    """
    Normalise a submitted batch into candidates sharing one matrix id.

    forced_matrix_id (replace) overrides every entry. Otherwise entries without a
    matrix id inherit the first entry's, or a fresh one from new_matrix_id (create).
    Raises InvalidInputError / ConflictError; nothing has touched storage yet.
    """
    candidates = [_to_candidate(_parse_entry(raw)) for raw in extract_entries(payload)]

    if forced_matrix_id is not None:
        base_matrix_id = forced_matrix_id
    else:
        base_matrix_id = candidates[0].matrix_id or (new_matrix_id() if new_matrix_id else "")

    codes: Set[str] = set()
    teacher_keys: Set[Tuple[str, str, str]] = set()
    classroom_keys: Set[Tuple[str, str, str]] = set()
    section_keys: Set[Tuple[str, str, str]] = set()
    subject_section_keys: Set[Tuple[str, str, str, str]] = set()

    for candidate in candidates:
        if forced_matrix_id is not None or not candidate.matrix_id:
            candidate.matrix_id = base_matrix_id
        if candidate.missing_required():
            raise InvalidInputError(REQUIRED_FIELDS_MESSAGE)

        period, slot = candidate.slot_key

        teacher_key = (period, slot, candidate.teacher_code)
        if teacher_key in teacher_keys:
            raise ConflictError(
                f"Duplicate teacher {candidate.teacher_code} in time slot {slot} for period {period} "
                "within the request payload"
            )
        teacher_keys.add(teacher_key)

        classroom_key = (period, slot, candidate.classroom_code)
        if classroom_key in classroom_keys:
            raise ConflictError(
                f"Duplicate classroom {candidate.classroom_code} in time slot {slot} for period {period} "
                "within the request payload"
            )
        classroom_keys.add(classroom_key)

        section_key = (period, slot, candidate.section_code)
        if section_key in section_keys:
            raise ConflictError(
                f"Duplicate section {candidate.section_code} in time slot {slot} for period {period} "
                "within the request payload"
            )
        section_keys.add(section_key)

        subject_section_key = (period, slot, candidate.subject_code, candidate.section_code)
        if subject_section_key in subject_section_keys:
            raise ConflictError("Duplicate subject for the same section and time slot within the request payload")
        subject_section_keys.add(subject_section_key)

        if candidate.code:
            code_key = candidate.code.upper()
            if code_key in codes:
                raise ConflictError(f"Duplicate assignment id/code {candidate.code} within the request payload")
            codes.add(code_key)

    return candidates


def _is_inactive(record: Any) -> bool:
    return getattr(record, "status", None) == "inactive"


def check_references(candidates: List[AssignmentCandidate], refs: ReferenceSet) -> None:
    """Apply the cross-reference rules to every candidate; fills semester from the section when unset."""
    for c in candidates:
        subject = refs.subjects.get(c.subject_code)
        if subject is None:
            raise ReferentialIntegrityError(f"Subject {c.subject_code} does not exist")

        teacher = refs.teachers.get(c.teacher_code)
        if teacher is None:
            raise ReferentialIntegrityError(f"Teacher {c.teacher_code} does not exist")
        if _is_inactive(teacher):
            raise ReferentialIntegrityError(f"Teacher {c.teacher_code} is inactive")
        if c.subject_code not in (teacher.subject_codes or []):
            raise ReferentialIntegrityError(
                f"Teacher {c.teacher_code} is not associated with subject {c.subject_code}"
            )
        if teacher.career_code != subject.career_code:
            raise ReferentialIntegrityError(
                f"Teacher {c.teacher_code} and subject {c.subject_code} belong to different careers"
            )

        classroom = refs.classrooms.get(c.classroom_code)
        if classroom is None:
            raise ReferentialIntegrityError(f"Classroom {c.classroom_code} does not exist")
        if classroom.is_enabled is False:
            raise ReferentialIntegrityError(f"Classroom {c.classroom_code} is disabled")

        time_slot = refs.time_slots.get(c.time_slot_code)
        if time_slot is None:
            raise ReferentialIntegrityError(f"Time slot {c.time_slot_code} does not exist")

        section = refs.sections.get(c.section_code)
        if section is None:
            raise ReferentialIntegrityError(f"Section {c.section_code} does not exist")
        if _is_inactive(section):
            raise ReferentialIntegrityError(f"Section {c.section_code} is inactive")

        if refs.jornadas.get(c.jornada_code) is None:
            raise ReferentialIntegrityError(f"Jornada {c.jornada_code} does not exist")
        if time_slot.jornada_code != c.jornada_code:
            raise ReferentialIntegrityError(
                f"Time slot {c.time_slot_code} does not belong to jornada {c.jornada_code}"
            )
        if section.jornada_code != c.jornada_code:
            raise ReferentialIntegrityError(
                f"Section {c.section_code} does not belong to jornada {c.jornada_code}"
            )

        if c.semester is None:
            c.semester = getattr(section, "semester", None)
