import pytest

from edubook.models.account import StudentProfile, TeacherProfile
from edubook.models.availability import TimeSlot
from edubook.services.directory import bookable_teachers, filter_profiles, slots_for_day


def _teacher(uid: str, name: str, **fields) -> TeacherProfile:
    fields.setdefault('department', 'Science')
    return TeacherProfile(id=uid, email=f'{uid}@school.edu', name=name, **fields)


def test_filter_matches_subject_case_insensitively() -> None:
    math_teacher = _teacher('t1', 'Ada Lovelace', subjects=['Mathematics', 'Physics'])
    art_teacher = _teacher('t2', 'Frida Kahlo', department='Arts', subjects=['Painting'])

    assert filter_profiles([math_teacher, art_teacher], 'math') == [math_teacher]
    assert filter_profiles([math_teacher, art_teacher], 'MATH') == [math_teacher]


@pytest.mark.parametrize('query', ['ada', 't1@school', 'scien', 'physics'])
def test_filter_matches_each_searchable_field(query: str) -> None:
    teacher = _teacher('t1', 'Ada Lovelace', subjects=['Physics'])

    assert filter_profiles([teacher], query) == [teacher]


def test_filter_preserves_input_order_without_ranking() -> None:
    profiles = [
        _teacher('t1', 'Zed Mathers'),
        _teacher('t2', 'Amy', subjects=['Math']),
        _teacher('t3', 'Bob', department='Mathematics'),
    ]

    assert [profile.id for profile in filter_profiles(profiles, 'math')] == ['t1', 't2', 't3']


def test_filter_empty_query_returns_everything() -> None:
    profiles = [_teacher('t1', 'Ada'), _teacher('t2', 'Bob')]

    assert filter_profiles(profiles, '') == profiles


def test_filter_skips_missing_fields_on_students_and_dicts() -> None:
    student = StudentProfile(id='s1', email='sam@school.edu', name='Sam')
    raw = {'id': 'x', 'name': 'Raw Record', 'email': None}

    assert filter_profiles([student, raw], 'sam') == [student]
    assert filter_profiles([student, raw], 'raw') == [raw]
    assert filter_profiles([student, raw], 'biology') == []


def test_bookable_teachers_require_approval_and_open_slots() -> None:
    slot = TimeSlot(day='Monday', start_time='09:00', end_time='10:00')
    open_teacher = _teacher('t1', 'Open', availability={'Monday': [slot]})
    empty_day_teacher = _teacher('t2', 'Empty', availability={'Monday': []})
    no_calendar_teacher = _teacher('t3', 'None')
    pending_teacher = _teacher('t4', 'Pending', status='pending', availability={'Monday': [slot]})

    teachers = [open_teacher, empty_day_teacher, no_calendar_teacher, pending_teacher]

    assert bookable_teachers(teachers) == [open_teacher]


def test_slots_for_day_filters_view_to_selected_day() -> None:
    monday = TimeSlot(day='Monday', start_time='09:00', end_time='10:00')
    friday = TimeSlot(day='Friday', start_time='09:00', end_time='10:00')
    availability = {'Monday': [monday], 'Friday': [friday], 'Sunday': []}

    assert slots_for_day(availability, None) == {'Monday': [monday], 'Friday': [friday]}
    assert slots_for_day(availability, 'friday') == {'Friday': [friday]}
    assert slots_for_day(availability, 'Tuesday') == {}
