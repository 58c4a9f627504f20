import logging

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError

from edubook.auth.dependencies import get_current_actor, get_store
from edubook.core.errors import DATABASE_UNAVAILABLE, StoreUnavailableError
from edubook.models.account import Actor
from edubook.routes.auth_routes import AccountResponse
from edubook.services.accounts import AccountService
from edubook.store.documents import DocumentStore

router = APIRouter(tags=['admin'])

logger = logging.getLogger(__name__)


class CreateTeacherRequest(BaseModel):
    name: str
    email: str
    password: str
    department: str
    subjects: list[str] = []

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class CreateStudentRequest(BaseModel):
    name: str
    email: str
    password: str
    department: str | None = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class OverviewResponse(BaseModel):
    teachers: int
    students: int
    pending: int


@router.post('/teachers', response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def add_teacher(
    data: CreateTeacherRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        return AccountService(store).provision(
            actor,
            data.email,
            data.password,
            data.name,
            'teacher',
            department=data.department,
            subjects=data.subjects,
        )
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Failed to add teacher %s.', data.email)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.post('/students', response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def add_student(
    data: CreateStudentRequest,
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        return AccountService(store).provision(
            actor,
            data.email,
            data.password,
            data.name,
            'student',
            department=data.department,
        )
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Failed to add student %s.', data.email)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.get('/teachers', response_model=list[AccountResponse])
def list_teachers(
    query: str = Query(default=''),
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        return AccountService(store).search(actor, 'teacher', query)
    except SQLAlchemyError as exc:
        logger.exception('Failed to list teachers.')
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.get('/students', response_model=list[AccountResponse])
def list_students(
    query: str = Query(default=''),
    actor: Actor = Depends(get_current_actor),
    store: DocumentStore = Depends(get_store),
):
    try:
        return AccountService(store).search(actor, 'student', query)
    except SQLAlchemyError as exc:
        logger.exception('Failed to list students.')
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.get('/overview', response_model=OverviewResponse)
def overview(actor: Actor = Depends(get_current_actor), store: DocumentStore = Depends(get_store)):
    try:
        return OverviewResponse(**AccountService(store).overview(actor))
    except SQLAlchemyError as exc:
        logger.exception('Failed to build the admin overview.')
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc
