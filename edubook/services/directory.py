"""Directory search over fetched account lists."""

from typing import Any, Iterable, Mapping

from edubook.models.account import TeacherProfile
from edubook.models.availability import Availability, has_open_slots, normalize_weekday

_TEXT_FIELDS = ('name', 'email', 'department')


def _field(profile: Any, name: str) -> Any:
    if isinstance(profile, Mapping):
        return profile.get(name)
    return getattr(profile, name, None)


def matches_query(profile: Any, query: str) -> bool:
    needle = (query or '').lower()
    if not needle:
        return True

    for name in _TEXT_FIELDS:
        value = _field(profile, name)
        if isinstance(value, str) and needle in value.lower():
            return True

    return any(needle in subject.lower() for subject in _field(profile, 'subjects') or [])


def filter_profiles(profiles: Iterable[Any], query: str) -> list[Any]:
    """Case-insensitive substring match on name, email, department or any subject.

    Input order is preserved; an empty query keeps everything.
    """
    return [profile for profile in profiles if matches_query(profile, query)]


def bookable_teachers(teachers: Iterable[TeacherProfile]) -> list[TeacherProfile]:
    return [
        teacher for teacher in teachers
        if teacher.status == 'approved' and has_open_slots(teacher.availability)
    ]


def slots_for_day(availability: Availability, day: str | None) -> Availability:
    if not day:
        return {key: slots for key, slots in availability.items() if slots}
    day = normalize_weekday(day)
    return {day: list(availability[day])} if availability.get(day) else {}


def with_visible_slots(teacher: TeacherProfile, day: str | None) -> TeacherProfile:
    return teacher.model_copy(update={'availability': slots_for_day(teacher.availability, day)})
