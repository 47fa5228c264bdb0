from app.core.models.assignment import Assignment
from app.core.models.classroom import Classroom
from app.core.models.jornada import Jornada
from app.core.models.section_model import Section
from app.core.models.subject import Subject
from app.core.models.teacher import Teacher
from app.core.models.time_slot import TimeSlot

__all__ = [
    "Assignment",
    "Classroom",
    "Jornada",
    "Section",
    "Subject",
    "Teacher",
    "TimeSlot",
]
