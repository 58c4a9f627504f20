"""Appointment model definitions."""

from datetime import date, datetime, time
from typing import Literal

from pydantic import BaseModel

# 'completed' is a valid stored value but no transition produces it.
AppointmentStatus = Literal['pending', 'approved', 'rejected', 'completed']

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    'pending': frozenset({'approved', 'rejected'}),
}


class Appointment(BaseModel):
    """A student's request for one of a teacher's weekly slots."""

    id: str
    teacher_id: str
    student_id: str
    teacher_name: str | None = None
    student_name: str | None = None
    day: str
    date: date
    start_time: str
    end_time: str
    status: AppointmentStatus = 'pending'
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def scheduled_at(self) -> datetime:
        return datetime.combine(self.date, time.fromisoformat(self.start_time))


def can_transition(current: str, new_status: str) -> bool:
    return new_status in ALLOWED_TRANSITIONS.get(current, frozenset())
