import logging

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from edubook.auth.dependencies import get_current_actor, get_store
from edubook.core.errors import DATABASE_UNAVAILABLE, StoreUnavailableError
from edubook.models.account import Actor
from edubook.models.availability import TimeSlot
from edubook.services.accounts import AccountService
from edubook.services.availability import AvailabilityService
from edubook.store.documents import DocumentStore

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)


class AvailabilityResponse(BaseModel):
    teacher_id: str
    availability: dict[str, list[TimeSlot]]


class BookableTeacherResponse(BaseModel):
    id: str
    name: str
    email: str
    department: str
    subjects: list[str]
    availability: dict[str, list[TimeSlot]]

    class Config:
        from_attributes = True


@router.get('/teachers', response_model=list[BookableTeacherResponse])
def list_bookable_teachers(
    query: str = Query(default=''),
    day: str | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    del actor
    try:
        return AccountService(store).list_bookable_teachers(query=query, day=day)
    except SQLAlchemyError as exc:
        logger.exception('Failed to list bookable teachers.')
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.get('/teachers/{teacher_id}', response_model=AvailabilityResponse)
def get_teacher_availability(
    teacher_id: str,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    del actor
    try:
        availability = AvailabilityService(store).get(teacher_id)
        return AvailabilityResponse(teacher_id=teacher_id, availability=availability)
    except SQLAlchemyError as exc:
        logger.exception('Failed to load availability for %s.', teacher_id)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.post('/teachers/{teacher_id}/slots', response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
def add_availability_slot(
    teacher_id: str,
    data: TimeSlot,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        availability = AvailabilityService(store).add(actor, teacher_id, data)
        return AvailabilityResponse(teacher_id=teacher_id, availability=availability)
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Failed to add a slot for %s.', teacher_id)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.delete('/teachers/{teacher_id}/slots/{day}/{index}', response_model=AvailabilityResponse)
def remove_availability_slot(
    teacher_id: str,
    day: str,
    index: int,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        availability = AvailabilityService(store).remove(actor, teacher_id, day, index)
        return AvailabilityResponse(teacher_id=teacher_id, availability=availability)
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Failed to remove a slot for %s.', teacher_id)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc
