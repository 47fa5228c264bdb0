"""Unit tests for batch normalisation, reference rules, code generation and matrix grouping."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.api.v1.assignments.codes import CodeGenerator, generate_matrix_id
from app.api.v1.assignments.matrix import group_matrices, legacy_key, parse_legacy_key
from app.api.v1.assignments.reference_store import ReferenceSet
from app.api.v1.assignments.schemas import AssignmentResponse
from app.api.v1.assignments.validation import check_references, normalize_batch
from app.core.exceptions import ConflictError, InvalidInputError, ReferentialIntegrityError


def _raw(slot: str = "TS1", **overrides) -> dict:
    data = {
        "subjectId": "MAT101",
        "teacherId": "T1",
        "classroomId": "A1",
        "timeSlotId": slot,
        "jornadaId": "J1",
        "sectionId": "SEC1",
        "period": "2024-1",
    }
    data.update(overrides)
    return data


def _refs() -> ReferenceSet:
    return ReferenceSet(
        subjects={"MAT101": SimpleNamespace(code="MAT101", career_code="ING")},
        teachers={
            "T1": SimpleNamespace(code="T1", status="active", career_code="ING", subject_codes=["MAT101"]),
        },
        classrooms={"A1": SimpleNamespace(code="A1", is_enabled=True)},
        time_slots={"TS1": SimpleNamespace(code="TS1", jornada_code="J1")},
        sections={"SEC1": SimpleNamespace(code="SEC1", status="active", jornada_code="J1", semester=5)},
        jornadas={"J1": SimpleNamespace(code="J1")},
    )


def test_first_entry_matrix_id_is_shared() -> None:
    candidates = normalize_batch([_raw("TS1", matrixId="M-9"), _raw("TS2", teacherId="T2", classroomId="A2")])
    assert [c.matrix_id for c in candidates] == ["M-9", "M-9"]


def test_generated_matrix_id_when_first_entry_has_none() -> None:
    candidates = normalize_batch({"assignments": [_raw()]}, new_matrix_id=lambda: generate_matrix_id(1700))
    assert candidates[0].matrix_id == "ASGM-1700"


def test_forced_matrix_id_overrides_entries() -> None:
    candidates = normalize_batch([_raw(matrixId="OTHER")], forced_matrix_id="M-1")
    assert candidates[0].matrix_id == "M-1"


def test_group_id_and_code_aliases_are_accepted() -> None:
    candidates = normalize_batch(
        [{"code": " C-1 ", "subjectCode": "MAT101", "teacherCode": "T1", "classroomCode": "A1",
          "timeSlotCode": "TS1", "jornadaCode": "J1", "sectionCode": "SEC1", "period": "2024-1",
          "groupId": "G-1"}]
    )
    assert candidates[0].code == "C-1"
    assert candidates[0].matrix_id == "G-1"


def test_non_string_fields_count_as_missing() -> None:
    with pytest.raises(InvalidInputError):
        normalize_batch([_raw(teacherId=42)], forced_matrix_id="M-1")


def test_non_object_entry_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        normalize_batch(["nope"], forced_matrix_id="M-1")


@pytest.mark.parametrize(
    "second, fragment",
    [
        (_raw("TS1", teacherId="T2", sectionId="SEC2"), "Duplicate classroom A1"),
        (_raw("TS1", teacherId="T2", classroomId="A2"), "Duplicate section SEC1"),
    ],
)
def test_in_batch_double_booking(second, fragment) -> None:
    with pytest.raises(ConflictError) as exc:
        normalize_batch([_raw("TS1"), second], forced_matrix_id="M-1")
    assert fragment in exc.value.message


def test_same_resources_in_other_period_are_fine() -> None:
    candidates = normalize_batch([_raw("TS1"), _raw("TS1", period="2024-2")], forced_matrix_id="M-1")
    assert len(candidates) == 2


def test_semester_is_coerced_and_validated() -> None:
    candidates = normalize_batch([_raw(semester=3.0), _raw("TS2", teacherId="T2", classroomId="A2", semester="")],
                                 forced_matrix_id="M-1")
    assert [c.semester for c in candidates] == [3, None]
    with pytest.raises(InvalidInputError) as exc:
        normalize_batch([_raw(semester=-1)], forced_matrix_id="M-1")
    assert exc.value.message == "semester must be a number between 1 and 12 when provided"


def test_check_references_fills_semester_from_section() -> None:
    candidates = normalize_batch([_raw()], forced_matrix_id="M-1")
    check_references(candidates, _refs())
    assert candidates[0].semester == 5


def test_check_references_keeps_explicit_semester() -> None:
    candidates = normalize_batch([_raw(semester=2)], forced_matrix_id="M-1")
    check_references(candidates, _refs())
    assert candidates[0].semester == 2


def test_teacher_outside_subject_list_is_rejected() -> None:
    refs = _refs()
    refs.teachers["T1"].subject_codes = []
    candidates = normalize_batch([_raw()], forced_matrix_id="M-1")
    with pytest.raises(ReferentialIntegrityError) as exc:
        check_references(candidates, refs)
    assert exc.value.message == "Teacher T1 is not associated with subject MAT101"
    assert exc.value.status_code == 422


def test_missing_time_slot_is_rejected() -> None:
    refs = _refs()
    refs.time_slots.clear()
    candidates = normalize_batch([_raw()], forced_matrix_id="M-1")
    with pytest.raises(ReferentialIntegrityError) as exc:
        check_references(candidates, refs)
    assert exc.value.message == "Time slot TS1 does not exist"


def test_code_generator_counts_up_and_skips_taken() -> None:
    generator = CodeGenerator(100, taken=["asg-101", "", None])
    assert [generator.next_code() for _ in range(3)] == ["ASG-100", "ASG-102", "ASG-103"]


def test_legacy_key_parsing() -> None:
    key = legacy_key("2024-1", "J1", "SEC1")
    assert key == "legacy|2024-1|J1|SEC1"
    assert parse_legacy_key(key) == ("2024-1", "J1", "SEC1")
    assert parse_legacy_key("legacy|2024-1|J1") is None
    assert parse_legacy_key("legacy|2024-1||SEC1") is None
    assert parse_legacy_key("legacy|a|b|c|d") is None
    assert parse_legacy_key("ASGM-1") is None


def _item(matrix_id, slot, period="2024-1", jornada="J1", created=None, updated=None) -> AssignmentResponse:
    return AssignmentResponse(
        id=f"{matrix_id}-{slot}",
        subjectId="MAT101",
        teacherId="T1",
        classroomId="A1",
        timeSlotId=slot,
        jornadaId=jornada,
        sectionId="SEC1",
        period=period,
        matrixId=matrix_id,
        createdAt=created,
        updatedAt=updated,
    )


def test_group_matrices_partitions_and_orders() -> None:
    early = datetime(2024, 1, 1, tzinfo=timezone.utc)
    late = early + timedelta(days=3)
    items = [
        _item("M-2", "TS2", period="2024-2"),
        _item("M-1", "TS3", jornada="J2", created=late, updated=late),
        _item("M-1", "TS1", jornada="J2", created=early, updated=early),
        _item("M-3", "TS1", jornada="J1"),
    ]
    grouped = group_matrices(items)
    assert [g.matrixId for g in grouped] == ["M-3", "M-1", "M-2"]
    m1 = grouped[1]
    assert [e.timeSlotId for e in m1.entries] == ["TS1", "TS3"]
    assert m1.createdAt == early
    assert m1.updatedAt == late


def test_group_matrices_mixes_naive_and_aware_timestamps() -> None:
    aware = datetime(2024, 1, 2, tzinfo=timezone.utc)
    naive = datetime(2024, 1, 1)
    grouped = group_matrices([_item("M-1", "TS1", created=aware, updated=aware),
                              _item("M-1", "TS2", created=naive, updated=naive)])
    assert grouped[0].createdAt == naive
    assert grouped[0].updatedAt == aware
