"""Account model definitions."""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from edubook.models.availability import Availability

Role = Literal['admin', 'teacher', 'student']
AccountStatus = Literal['pending', 'approved', 'rejected']

ROLES = ('admin', 'teacher', 'student')
DEFAULT_ADMIN_PERMISSIONS = ['manage_teachers', 'manage_students', 'manage_appointments']


class AccountBase(BaseModel):
    id: str
    email: str
    name: str
    status: AccountStatus = 'approved'
    created_at: datetime | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized


class TeacherProfile(AccountBase):
    role: Literal['teacher'] = 'teacher'
    department: str
    subjects: list[str] = Field(default_factory=list)
    availability: Availability = Field(default_factory=dict)

    @field_validator('department')
    @classmethod
    def validate_department(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Department is required.')
        return normalized

    @field_validator('subjects')
    @classmethod
    def dedupe_subjects(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for subject in value:
            subject = subject.strip()
            if subject and subject not in seen:
                seen.append(subject)
        return seen


class StudentProfile(AccountBase):
    role: Literal['student'] = 'student'
    department: str | None = None
    enrolled_classes: list[str] = Field(default_factory=list)
    appointments: list[str] = Field(default_factory=list)


class AdminProfile(AccountBase):
    role: Literal['admin'] = 'admin'
    permissions: list[str] = Field(default_factory=lambda: list(DEFAULT_ADMIN_PERMISSIONS))


Account = Annotated[Union[TeacherProfile, StudentProfile, AdminProfile], Field(discriminator='role')]

_account_adapter = TypeAdapter(Account)


def parse_account(document: dict) -> TeacherProfile | StudentProfile | AdminProfile:
    return _account_adapter.validate_python(document)


class Actor(BaseModel):
    """The authenticated account performing an operation."""

    id: str
    role: Role
    email: str | None = None
    name: str | None = None

    @classmethod
    def from_account(cls, account: AccountBase) -> 'Actor':
        return cls(id=account.id, role=account.role, email=account.email, name=account.name)
