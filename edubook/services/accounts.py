"""Account registration, admin provisioning and directory listings."""

import logging

from pydantic import ValidationError

from edubook.auth.identity import IdentityProvider
from edubook.core.clock import now_timestamp
from edubook.core.errors import FormValidationError, NotFoundError, PermissionDeniedError
from edubook.models.account import (
    Actor,
    AdminProfile,
    Role,
    StudentProfile,
    TeacherProfile,
    parse_account,
)
from edubook.models.availability import normalize_weekday
from edubook.services.directory import bookable_teachers, filter_profiles, with_visible_slots
from edubook.store.collections import USERS
from edubook.store.documents import DocumentStore

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = ('teacher', 'student')

ROLE_REDIRECTS = {
    'admin': '/admin/dashboard',
    'teacher': '/teacher/dashboard',
    'student': '/student/dashboard',
}


def get_role_based_redirect(role: str | None) -> str:
    return ROLE_REDIRECTS.get(role or '', '/login')


def build_profile(
    uid: str,
    role: Role,
    email: str,
    name: str,
    department: str | None = None,
    subjects: list[str] | None = None,
) -> TeacherProfile | StudentProfile | AdminProfile:
    try:
        if role == 'teacher':
            return TeacherProfile(
                id=uid, email=email, name=name, department=department or '', subjects=subjects or [],
            )
        if role == 'student':
            return StudentProfile(id=uid, email=email, name=name, department=department)
        if role == 'admin':
            return AdminProfile(id=uid, email=email, name=name)
    except ValidationError as exc:
        messages = [error['msg'].removeprefix('Value error, ') for error in exc.errors()]
        raise FormValidationError(' '.join(messages), details={'errors': messages}) from exc

    raise FormValidationError(f'Unknown role: {role}.', details={'role': role})


class AccountService:
    def __init__(self, store: DocumentStore, identity: IdentityProvider | None = None) -> None:
        self.store = store
        self.identity = identity or IdentityProvider(store)

    def _create(
        self,
        email: str,
        password: str,
        name: str,
        role: Role,
        department: str | None = None,
        subjects: list[str] | None = None,
    ) -> TeacherProfile | StudentProfile | AdminProfile:
        # Validate the profile before anything is written.
        build_profile('', role, email, name, department, subjects)

        identity = self.identity.create_account(email, password)
        profile = build_profile(identity.uid, role, identity.email, name, department, subjects)

        document = profile.model_dump(mode='json', exclude={'id'})
        document['created_at'] = now_timestamp()
        self.store.put(USERS, identity.uid, document)
        logger.info('Created %s account %s for %s', role, identity.uid, identity.email)
        return parse_account({**document, 'id': identity.uid})

    def register(self, email: str, password: str, name: str, role: Role, **profile) -> TeacherProfile | StudentProfile:
        if role not in SELF_SERVICE_ROLES:
            raise PermissionDeniedError('Only teacher and student accounts can be registered.')
        return self._create(email, password, name, role, **profile)

    def provision(self, actor: Actor, email: str, password: str, name: str, role: Role, **profile):
        if actor.role != 'admin':
            raise PermissionDeniedError('Only admins can add accounts.')
        if role not in SELF_SERVICE_ROLES:
            raise PermissionDeniedError('Admins can only add teacher and student accounts.')
        return self._create(email, password, name, role, **profile)

    def create_admin(self, email: str, password: str, name: str) -> AdminProfile:
        return self._create(email, password, name, 'admin')

    def get(self, account_id: str) -> TeacherProfile | StudentProfile | AdminProfile:
        document = self.store.get(USERS, account_id)
        if document is None:
            raise NotFoundError('User profile not found', details={'account_id': account_id})
        return parse_account(document)

    def list_accounts(self, role: Role) -> list:
        return [parse_account(document) for document in self.store.query(USERS, {'role': role})]

    def search(self, actor: Actor, role: Role, query: str = '') -> list:
        if actor.role != 'admin':
            raise PermissionDeniedError('Only admins can browse the account directory.')
        return filter_profiles(self.list_accounts(role), query)

    def list_bookable_teachers(self, query: str = '', day: str | None = None) -> list[TeacherProfile]:
        if day:
            try:
                day = normalize_weekday(day)
            except ValueError as exc:
                raise FormValidationError(str(exc), details={'day': day}) from exc

        teachers = self.store.query(USERS, {'role': 'teacher', 'status': 'approved'})
        available = bookable_teachers(parse_account(document) for document in teachers)
        return [with_visible_slots(teacher, day) for teacher in filter_profiles(available, query)]

    def overview(self, actor: Actor) -> dict[str, int]:
        if actor.role != 'admin':
            raise PermissionDeniedError('Only admins can view the dashboard overview.')

        teachers = self.list_accounts('teacher')
        students = self.list_accounts('student')
        return {
            'teachers': len(teachers),
            'students': len(students),
            'pending': sum(1 for account in [*teachers, *students] if account.status == 'pending'),
        }
