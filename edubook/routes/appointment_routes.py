import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError

from edubook.auth.dependencies import get_current_actor, get_store
from edubook.core.errors import DATABASE_UNAVAILABLE, StoreUnavailableError
from edubook.models.account import Actor
from edubook.models.appointment import Appointment, AppointmentStatus
from edubook.models.availability import TimeSlot, normalize_weekday
from edubook.services.booking import (
    BookingService,
    pending_appointments,
    recent_appointments,
    upcoming_appointments,
)
from edubook.store.documents import DocumentStore

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)


class CreateAppointmentRequest(BaseModel):
    teacher_id: str
    day: str
    slot: TimeSlot
    requested_date: date | None = Field(default=None, alias='date')

    @field_validator('teacher_id')
    @classmethod
    def validate_teacher_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Teacher is required.')
        return normalized

    @field_validator('day')
    @classmethod
    def validate_day(cls, value: str) -> str:
        return normalize_weekday(value)


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus


class AppointmentListResponse(BaseModel):
    appointments: list[Appointment]
    upcoming: list[Appointment]
    recent: list[Appointment]
    pending: list[Appointment]


@router.post('', response_model=Appointment, status_code=status.HTTP_201_CREATED)
def request_appointment(
    data: CreateAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        return BookingService(store).request_appointment(
            actor,
            teacher_id=data.teacher_id,
            day=data.day,
            slot=data.slot,
            requested_date=data.requested_date,
        )
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Failed to create an appointment request.')
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.patch('/{appointment_id}/status', response_model=Appointment)
def update_appointment_status(
    appointment_id: str,
    data: UpdateAppointmentStatusRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        return BookingService(store).set_status(appointment_id, actor, data.status)
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Failed to update appointment %s.', appointment_id)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.get('/mine', response_model=AppointmentListResponse)
def list_my_appointments(
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        appointments = BookingService(store).list_for(actor)
    except SQLAlchemyError as exc:
        logger.exception('Failed to load appointments for %s.', actor.id)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc

    now = datetime.now()
    return AppointmentListResponse(
        appointments=appointments,
        upcoming=upcoming_appointments(appointments, now),
        recent=recent_appointments(appointments, now),
        pending=pending_appointments(appointments),
    )
