"""
Read-only lookup of the entities an assignment references, by code.

Each kind is fetched on its own short-lived session so the six lookups of a batch
can run concurrently (an AsyncSession does not allow concurrent statements).
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.models import Classroom, Jornada, Section, Subject, Teacher, TimeSlot
from app.db.session import get_session_factory

KIND_MODELS = {
    "subject": Subject,
    "teacher": Teacher,
    "classroom": Classroom,
    "time_slot": TimeSlot,
    "section": Section,
    "jornada": Jornada,
}


@dataclass
class ReferenceSet:
    """Records referenced by one batch, keyed by code."""

    subjects: Dict[str, Any] = field(default_factory=dict)
    teachers: Dict[str, Any] = field(default_factory=dict)
    classrooms: Dict[str, Any] = field(default_factory=dict)
    time_slots: Dict[str, Any] = field(default_factory=dict)
    sections: Dict[str, Any] = field(default_factory=dict)
    jornadas: Dict[str, Any] = field(default_factory=dict)


def _unique(codes: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(c for c in codes if c))


class ReferenceStore:
    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def find_by_code(self, kind: str, code: str) -> Optional[Any]:
        model = KIND_MODELS[kind]
        async with self._session_factory() as session:
            result = await session.execute(select(model).where(model.code == code))
            return result.scalar_one_or_none()

    async def find_many_by_codes(self, kind: str, codes: Iterable[str]) -> List[Any]:
        model = KIND_MODELS[kind]
        wanted = _unique(codes)
        if not wanted:
            return []
        async with self._session_factory() as session:
            result = await session.execute(select(model).where(model.code.in_(wanted)))
            return list(result.scalars().all())

    async def fetch_for_batch(self, candidates) -> ReferenceSet:
        """Bulk-fetch every entity referenced by the candidates (fan-out / fan-in)."""
        subjects, teachers, classrooms, time_slots, sections, jornadas = await asyncio.gather(
            self.find_many_by_codes("subject", (c.subject_code for c in candidates)),
            self.find_many_by_codes("teacher", (c.teacher_code for c in candidates)),
            self.find_many_by_codes("classroom", (c.classroom_code for c in candidates)),
            self.find_many_by_codes("time_slot", (c.time_slot_code for c in candidates)),
            self.find_many_by_codes("section", (c.section_code for c in candidates)),
            self.find_many_by_codes("jornada", (c.jornada_code for c in candidates)),
        )
        return ReferenceSet(
            subjects={r.code: r for r in subjects},
            teachers={r.code: r for r in teachers},
            classrooms={r.code: r for r in classrooms},
            time_slots={r.code: r for r in time_slots},
            sections={r.code: r for r in sections},
            jornadas={r.code: r for r in jornadas},
        )


def get_reference_store(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> ReferenceStore:
    return ReferenceStore(session_factory)
