"""Availability model definitions."""

import re

from pydantic import BaseModel, field_validator, model_validator

WEEKDAYS = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')

_CLOCK_PATTERN = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')


def normalize_weekday(value: str) -> str:
    normalized = (value or '').strip().capitalize()
    if normalized not in WEEKDAYS:
        raise ValueError(f'Day must be one of {", ".join(WEEKDAYS)}.')
    return normalized


class TimeSlot(BaseModel):
    """A recurring weekly interval a teacher publishes as bookable.

    Times are zero-padded 24h ``HH:MM`` strings, so plain string comparison
    orders them correctly.
    """

    day: str
    start_time: str
    end_time: str

    @field_validator('day')
    @classmethod
    def validate_day(cls, value: str) -> str:
        return normalize_weekday(value)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_clock(cls, value: str) -> str:
        normalized = value.strip()
        if not _CLOCK_PATTERN.match(normalized):
            raise ValueError('Times must use the 24-hour HH:MM format.')
        return normalized

    @model_validator(mode='after')
    def validate_order(self) -> 'TimeSlot':
        if self.start_time >= self.end_time:
            raise ValueError('Start time must be before end time.')
        return self

    def overlaps(self, other: 'TimeSlot') -> bool:
        return self.start_time < other.end_time and other.start_time < self.end_time


Availability = dict[str, list[TimeSlot]]


def dump_availability(availability: Availability) -> dict[str, list[dict]]:
    return {day: [slot.model_dump() for slot in slots] for day, slots in availability.items()}


def has_open_slots(availability: Availability) -> bool:
    return any(len(slots) > 0 for slots in availability.values())
