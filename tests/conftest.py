from typing import AsyncGenerator, Callable, Dict

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.auth.security import create_access_token
from app.core.models import Classroom, Jornada, Section, Subject, Teacher, TimeSlot
from app.db.session import Base, get_db, get_session_factory
from app.main import app


@pytest.fixture()
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """File-backed SQLite per test; reference lookups open several connections at once."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


@pytest.fixture()
async def seed(session_factory: async_sessionmaker) -> None:
    """Two jornadas with their sections and slots, teachers of two careers."""
    async with session_factory() as session:
        session.add_all(
            [
                Jornada(code="J1", name="Morning", career_code="ING", manager_id="coord-1"),
                Jornada(code="J2", name="Evening", career_code="ING", manager_id="coord-2"),
                Subject(code="MAT101", name="Calculus", career_code="ING", semester=1),
                Subject(code="FIS101", name="Physics", career_code="ING", semester=1),
                Subject(code="HIS101", name="History", career_code="HUM", semester=1),
                Teacher(code="T1", first_name="Ana", last_name="Rojas", career_code="ING",
                        subject_codes=["MAT101", "FIS101"]),
                Teacher(code="T2", first_name="Luis", last_name="Pardo", career_code="ING",
                        subject_codes=["MAT101"]),
                Teacher(code="T3", first_name="Eva", last_name="Soto", career_code="ING",
                        subject_codes=["FIS101"], status="inactive"),
                Teacher(code="T4", first_name="Raul", last_name="Vera", career_code="HUM",
                        subject_codes=["MAT101", "HIS101"]),
                Classroom(code="A1", name="Room 1", capacity=40),
                Classroom(code="A2", name="Room 2", capacity=30),
                Classroom(code="A3", name="Room 3", capacity=30, is_enabled=False),
                TimeSlot(code="TS1", day="monday", start="07:00", end="08:00", jornada_code="J1"),
                TimeSlot(code="TS2", day="monday", start="08:00", end="09:00", jornada_code="J1"),
                TimeSlot(code="TS3", day="tuesday", start="07:00", end="08:00", jornada_code="J1"),
                TimeSlot(code="TS9", day="monday", start="18:00", end="19:00", jornada_code="J2"),
                Section(code="SEC1", name="1A", jornada_code="J1", capacity=35, semester=2),
                Section(code="SEC2", name="1B", jornada_code="J1", capacity=35, semester=3),
                Section(code="SEC9", name="9A", jornada_code="J2", capacity=35, semester=1),
                Section(code="SEC0", name="Closed", jornada_code="J1", capacity=35, status="inactive"),
            ]
        )
        await session.commit()


@pytest.fixture()
async def client(session_factory: async_sessionmaker, seed) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app, on the per-test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def make_token(user_id: str, role: str, status: str = "active") -> str:
    return create_access_token(
        subject={"id": user_id, "username": user_id, "role": role, "status": status}
    )


def auth_headers(user_id: str = "admin-1", role: str = "admin", status: str = "active") -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role, status)}"}


@pytest.fixture()
def admin_headers() -> Dict[str, str]:
    return auth_headers()


@pytest.fixture()
def entry() -> Callable[..., Dict]:
    """Build one submitted assignment; defaults form a valid J1 / SEC1 entry."""

    def _entry(time_slot: str = "TS1", **overrides) -> Dict:
        data = {
            "subjectId": "MAT101",
            "teacherId": "T1",
            "classroomId": "A1",
            "timeSlotId": time_slot,
            "jornadaId": "J1",
            "sectionId": "SEC1",
            "period": "2024-1",
        }
        data.update(overrides)
        return data

    return _entry


@pytest.fixture()
def headers_for() -> Callable[..., Dict[str, str]]:
    return auth_headers
