"""
Teacher availability calendar.

``add_slot`` and ``remove_slot`` are pure: they return an updated copy of the
mapping and leave the input untouched. ``AvailabilityService`` persists the
result by writing the whole mapping back onto the teacher document, so two
concurrent edits of the same calendar resolve as last writer wins.
"""

import logging

from edubook.core.errors import NotFoundError, OverlapError, PermissionDeniedError, SlotIndexError
from edubook.models.account import Actor, TeacherProfile, parse_account
from edubook.models.availability import Availability, TimeSlot, dump_availability, normalize_weekday
from edubook.store.collections import USERS
from edubook.store.documents import DocumentStore

logger = logging.getLogger(__name__)


def _copy(availability: Availability) -> Availability:
    return {day: list(slots) for day, slots in availability.items()}


def add_slot(current: Availability, new_slot: TimeSlot) -> Availability:
    day_slots = current.get(new_slot.day) or []

    for existing in day_slots:
        if existing.overlaps(new_slot):
            raise OverlapError(
                'Time slot overlaps with existing slot',
                details={
                    'day': new_slot.day,
                    'existing': {'start_time': existing.start_time, 'end_time': existing.end_time},
                },
            )

    updated = _copy(current)
    updated[new_slot.day] = sorted([*day_slots, new_slot], key=lambda slot: slot.start_time)
    return updated


def remove_slot(current: Availability, day: str, index: int) -> Availability:
    day_slots = current.get(day) or []
    if index < 0 or index >= len(day_slots):
        raise SlotIndexError(
            f'No time slot at position {index} on {day}.',
            details={'day': day, 'index': index},
        )

    updated = _copy(current)
    del updated[day][index]
    if not updated[day]:
        del updated[day]
    return updated


class AvailabilityService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def get_teacher(self, teacher_id: str) -> TeacherProfile:
        document = self.store.get(USERS, teacher_id)
        if document is None or document.get('role') != 'teacher':
            raise NotFoundError('Teacher profile not found', details={'teacher_id': teacher_id})
        return parse_account(document)

    def get(self, teacher_id: str) -> Availability:
        return self.get_teacher(teacher_id).availability

    def _ensure_owner(self, actor: Actor, teacher_id: str) -> None:
        if actor.role != 'teacher' or actor.id != teacher_id:
            raise PermissionDeniedError('Only the teacher who owns this calendar can change it.')

    def add(self, actor: Actor, teacher_id: str, slot: TimeSlot) -> Availability:
        self._ensure_owner(actor, teacher_id)
        updated = add_slot(self.get(teacher_id), slot)

        self.store.update(USERS, teacher_id, {'availability': dump_availability(updated)})
        logger.info('Teacher %s added %s %s-%s', teacher_id, slot.day, slot.start_time, slot.end_time)
        return updated

    def remove(self, actor: Actor, teacher_id: str, day: str, index: int) -> Availability:
        self._ensure_owner(actor, teacher_id)
        try:
            day = normalize_weekday(day)
        except ValueError as exc:
            raise SlotIndexError(str(exc), details={'day': day, 'index': index}) from exc
        updated = remove_slot(self.get(teacher_id), day, index)

        self.store.update(USERS, teacher_id, {'availability': dump_availability(updated)})
        logger.info('Teacher %s removed slot %d on %s', teacher_id, index, day)
        return updated
