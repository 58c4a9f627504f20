"""
Appointment requests and their status lifecycle.

A request is stored as ``pending`` against a teacher's weekly slot. Nothing
checks that the slot is still published and nothing stops two students from
requesting the same slot; booking never touches the teacher's availability.
Only the owning teacher may move a request from ``pending`` to ``approved``
or ``rejected``.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable

from edubook.core import config
from edubook.core.clock import now_timestamp
from edubook.core.errors import FormValidationError, InvalidTransitionError, NotFoundError, PermissionDeniedError
from edubook.models.account import Actor
from edubook.models.appointment import Appointment, can_transition
from edubook.models.availability import WEEKDAYS, TimeSlot, normalize_weekday
from edubook.store.collections import APPOINTMENTS, USERS
from edubook.store.documents import DocumentStore

logger = logging.getLogger(__name__)


def resolve_appointment_date(day: str, requested: date | None, today: date) -> date:
    """Pick the calendar date for a weekly slot.

    An explicit date must fall on ``day``; otherwise the next date on or after
    ``today`` with that weekday is used.
    """
    if requested is not None:
        if WEEKDAYS[requested.weekday()] != day:
            raise FormValidationError(
                f'{requested.isoformat()} is not a {day}.',
                details={'day': day, 'date': requested.isoformat()},
            )
        return requested

    offset = (WEEKDAYS.index(day) - today.weekday()) % 7
    return today + timedelta(days=offset)


def sort_appointments(appointments: Iterable[Appointment]) -> list[Appointment]:
    return sorted(appointments, key=lambda appointment: appointment.scheduled_at)


def upcoming_appointments(appointments: Iterable[Appointment], now: datetime) -> list[Appointment]:
    return [
        appointment for appointment in sort_appointments(appointments)
        if appointment.status == 'approved' and appointment.scheduled_at > now
    ]


def recent_appointments(
    appointments: Iterable[Appointment],
    now: datetime,
    limit: int | None = None,
) -> list[Appointment]:
    # Ascending order is kept; the view shows the earliest past entries.
    limit = config.RECENT_APPOINTMENTS_LIMIT if limit is None else limit
    past = [appointment for appointment in sort_appointments(appointments) if appointment.scheduled_at <= now]
    return past[:limit]


def pending_appointments(appointments: Iterable[Appointment]) -> list[Appointment]:
    return [appointment for appointment in sort_appointments(appointments) if appointment.status == 'pending']


class BookingService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def get(self, appointment_id: str) -> Appointment:
        document = self.store.get(APPOINTMENTS, appointment_id)
        if document is None:
            raise NotFoundError('Appointment not found.', details={'appointment_id': appointment_id})
        return Appointment.model_validate(document)

    def request_appointment(
        self,
        actor: Actor,
        teacher_id: str,
        day: str,
        slot: TimeSlot,
        requested_date: date | None = None,
        today: date | None = None,
    ) -> Appointment:
        if actor.role != 'student':
            raise PermissionDeniedError('Only students can request appointments.')

        try:
            day = normalize_weekday(day)
        except ValueError as exc:
            raise FormValidationError(str(exc), details={'day': day}) from exc

        if slot.day != day:
            raise FormValidationError('The selected slot is not on the selected day.', details={'day': day})

        teacher = self.store.get(USERS, teacher_id)
        if teacher is None or teacher.get('role') != 'teacher':
            raise NotFoundError('Teacher profile not found', details={'teacher_id': teacher_id})

        appointment_date = resolve_appointment_date(day, requested_date, today or date.today())
        created_at = now_timestamp()
        document = {
            'teacher_id': teacher_id,
            'student_id': actor.id,
            'teacher_name': teacher.get('name'),
            'student_name': actor.name or actor.email,
            'day': day,
            'date': appointment_date.isoformat(),
            'start_time': slot.start_time,
            'end_time': slot.end_time,
            'status': 'pending',
            'created_at': created_at,
        }

        appointment_id = self.store.add(APPOINTMENTS, document)
        logger.info(
            'Student %s requested %s %s %s-%s with teacher %s',
            actor.id, day, appointment_date, slot.start_time, slot.end_time, teacher_id,
        )
        return Appointment.model_validate({**document, 'id': appointment_id})

    def set_status(self, appointment_id: str, actor: Actor, new_status: str) -> Appointment:
        appointment = self.get(appointment_id)

        if actor.id != appointment.teacher_id:
            raise PermissionDeniedError('Only the teacher for this appointment can change its status.')

        if not can_transition(appointment.status, new_status):
            raise InvalidTransitionError(
                f'Cannot change an appointment from {appointment.status} to {new_status}.',
                details={'from': appointment.status, 'to': new_status},
            )

        document = self.store.update(
            APPOINTMENTS,
            appointment_id,
            {'status': new_status, 'updated_at': now_timestamp()},
        )
        logger.info('Teacher %s set appointment %s to %s', actor.id, appointment_id, new_status)
        return Appointment.model_validate(document)

    def list_for(self, actor: Actor) -> list[Appointment]:
        if actor.role == 'teacher':
            filters = {'teacher_id': actor.id}
        elif actor.role == 'student':
            filters = {'student_id': actor.id}
        else:
            raise PermissionDeniedError('Only teachers and students have appointments.')

        documents = self.store.query(APPOINTMENTS, filters)
        return sort_appointments(Appointment.model_validate(document) for document in documents)
