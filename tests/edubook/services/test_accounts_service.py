import pytest

from edubook.core.errors import AuthError, FormValidationError, PermissionDeniedError
from edubook.models.account import AdminProfile, StudentProfile, TeacherProfile
from edubook.models.availability import TimeSlot
from edubook.services.accounts import AccountService, build_profile, get_role_based_redirect
from edubook.services.availability import AvailabilityService
from edubook.store.collections import IDENTITIES, USERS


@pytest.mark.parametrize(
    ('role', 'path'),
    [
        ('admin', '/admin/dashboard'),
        ('teacher', '/teacher/dashboard'),
        ('student', '/student/dashboard'),
        (None, '/login'),
        ('guest', '/login'),
    ],
)
def test_get_role_based_redirect(role, path: str) -> None:
    assert get_role_based_redirect(role) == path


def test_build_profile_picks_role_variant() -> None:
    assert isinstance(build_profile('1', 'teacher', 'a@b.co', 'A', department='Math'), TeacherProfile)
    assert isinstance(build_profile('2', 'student', 'a@b.co', 'A'), StudentProfile)

    admin = build_profile('3', 'admin', 'a@b.co', 'A')
    assert isinstance(admin, AdminProfile)
    assert admin.permissions == ['manage_teachers', 'manage_students', 'manage_appointments']


def test_build_profile_requires_teacher_department() -> None:
    with pytest.raises(FormValidationError) as exception_info:
        build_profile('1', 'teacher', 'a@b.co', 'A')

    assert exception_info.value.message == 'Department is required.'


def test_register_teacher_stores_approved_profile(store) -> None:
    account = AccountService(store).register(
        ' Ada@School.edu ',
        'secret123',
        'Ada Lovelace',
        'teacher',
        department='Mathematics',
        subjects=['Algebra', 'Algebra', ' Calculus '],
    )

    stored = store.get(USERS, account.id)
    assert stored['email'] == 'ada@school.edu'
    assert stored['role'] == 'teacher'
    assert stored['status'] == 'approved'
    assert stored['subjects'] == ['Algebra', 'Calculus']
    assert stored['availability'] == {}


def test_register_invalid_profile_writes_nothing(store) -> None:
    with pytest.raises(FormValidationError):
        AccountService(store).register('ada@school.edu', 'secret123', '   ', 'student')

    assert store.query(IDENTITIES) == []
    assert store.query(USERS) == []


def test_register_duplicate_email_is_rejected(store) -> None:
    service = AccountService(store)
    service.register('sam@school.edu', 'secret123', 'Sam', 'student')

    with pytest.raises(AuthError) as exception_info:
        service.register('SAM@school.edu', 'secret123', 'Sam Again', 'student')

    assert exception_info.value.code == 'auth/email-already-in-use'


def test_register_cannot_create_admin(store) -> None:
    with pytest.raises(PermissionDeniedError):
        AccountService(store).register('root@school.edu', 'secret123', 'Root', 'admin')


def test_admin_can_provision_teacher_and_student(store, admin) -> None:
    service = AccountService(store)

    teacher = service.provision(admin, 'tina@school.edu', 'secret123', 'Tina', 'teacher', department='History')
    student = service.provision(admin, 'stan@school.edu', 'secret123', 'Stan', 'student')

    assert teacher.role == 'teacher'
    assert student.role == 'student'
    assert [account.id for account in service.list_accounts('teacher')] == [teacher.id]


def test_non_admin_cannot_provision(store, register) -> None:
    teacher = register('teacher')

    with pytest.raises(PermissionDeniedError):
        AccountService(store).provision(teacher, 'x@school.edu', 'secret123', 'X', 'student')


def test_search_filters_directory_for_admin_only(store, admin, register) -> None:
    register('teacher', name='Ada Lovelace', subjects=['Mathematics'])
    register('teacher', name='Frida Kahlo', department='Arts')
    student = register('student')
    service = AccountService(store)

    assert [account.name for account in service.search(admin, 'teacher', 'math')] == ['Ada Lovelace']

    with pytest.raises(PermissionDeniedError):
        service.search(student, 'teacher', 'math')


def test_list_bookable_teachers_only_returns_teachers_with_slots(store, register) -> None:
    with_slots = register('teacher', name='Ada Lovelace', subjects=['Mathematics'])
    register('teacher', name='Idle Teacher', subjects=['Mathematics'])
    AvailabilityService(store).add(
        with_slots, with_slots.id, TimeSlot(day='Monday', start_time='09:00', end_time='10:00'),
    )
    AvailabilityService(store).add(
        with_slots, with_slots.id, TimeSlot(day='Friday', start_time='09:00', end_time='10:00'),
    )
    service = AccountService(store)

    teachers = service.list_bookable_teachers(query='math')
    assert [teacher.id for teacher in teachers] == [with_slots.id]
    assert set(teachers[0].availability) == {'Monday', 'Friday'}

    fridays = service.list_bookable_teachers(day='Friday')
    assert set(fridays[0].availability) == {'Friday'}


def test_list_bookable_teachers_rejects_unknown_day(store) -> None:
    with pytest.raises(FormValidationError):
        AccountService(store).list_bookable_teachers(day='Someday')


def test_overview_counts_accounts(store, admin, register) -> None:
    register('teacher')
    register('student')
    register('student')
    pending = register('student')
    store.update(USERS, pending.id, {'status': 'pending'})

    assert AccountService(store).overview(admin) == {'teachers': 1, 'students': 3, 'pending': 1}
