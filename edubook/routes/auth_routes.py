import logging
from typing import Literal

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError

from edubook.auth.dependencies import get_current_actor, get_store, security
from edubook.auth.identity import IdentityProvider
from edubook.core.errors import DATABASE_UNAVAILABLE, NotFoundError, StoreUnavailableError
from edubook.models.account import Actor, Role
from edubook.models.availability import TimeSlot
from edubook.services.accounts import AccountService, get_role_based_redirect
from edubook.store.collections import USERS
from edubook.store.documents import DocumentStore

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str
    role: Literal['teacher', 'student']
    department: str | None = None
    subjects: list[str] = []

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginRequest(BaseModel):
    email: str
    password: str


class AccountResponse(BaseModel):
    id: str
    email: str
    name: str
    role: Role
    status: str
    department: str | None = None
    subjects: list[str] = []
    availability: dict[str, list[TimeSlot]] = {}
    permissions: list[str] = []

    class Config:
        from_attributes = True


class RegisterResponse(BaseModel):
    account: AccountResponse
    redirect: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    role: Role
    redirect: str


@router.post('/register', response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, store: DocumentStore = Depends(get_store)):
    try:
        account = AccountService(store).register(
            data.email,
            data.password,
            data.name,
            data.role,
            department=data.department,
            subjects=data.subjects,
        )
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Registration failed for %s.', data.email)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc

    return RegisterResponse(
        account=AccountResponse.model_validate(account),
        redirect=get_role_based_redirect(account.role),
    )


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, store: DocumentStore = Depends(get_store)):
    try:
        identity, token = IdentityProvider(store).authenticate(data.email, data.password)
        account = store.get(USERS, identity.uid)
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Sign-in failed for %s.', data.email)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc

    if account is None:
        raise NotFoundError('User profile not found')

    return TokenResponse(access_token=token, role=account['role'], redirect=get_role_based_redirect(account['role']))


@router.post('/logout', status_code=status.HTTP_204_NO_CONTENT)
def logout(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DocumentStore = Depends(get_store),
):
    try:
        IdentityProvider(store).sign_out(credentials.credentials)
    except SQLAlchemyError as exc:
        store.db.rollback()
        logger.exception('Sign-out failed.')
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc


@router.get('/me', response_model=AccountResponse)
def me(actor: Actor = Depends(get_current_actor), store: DocumentStore = Depends(get_store)):
    try:
        return AccountService(store).get(actor.id)
    except SQLAlchemyError as exc:
        logger.exception('Failed to load the profile for %s.', actor.id)
        raise StoreUnavailableError(DATABASE_UNAVAILABLE) from exc
