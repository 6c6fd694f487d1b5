from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from app.core.errors import InvalidEnumError
from app.core.time_provider import APP_ZONEINFO, ensure_aware
from app.models import Period, Weekday


@dataclass(frozen=True)
class TimeSlot:
    key: str
    start: str
    end: str
    is_recess: bool = False
    label: str = ''

    @property
    def display(self) -> str:
        return f'{self.start} - {self.end}'

    def as_dict(self) -> dict:
        return {
            'key': self.key,
            'start': self.start,
            'end': self.end,
            'display': self.display,
            'is_recess': self.is_recess,
            'label': self.label,
        }


# Day order of the school week; recesses sit between period3/4 and period6/7.
TIME_SLOTS: tuple[TimeSlot, ...] = (
    TimeSlot('period1', '07:55', '08:30'),
    TimeSlot('period2', '08:30', '09:05'),
    TimeSlot('period3', '09:05', '09:40'),
    TimeSlot('recess1', '09:40', '10:10', is_recess=True, label='Recess I'),
    TimeSlot('period4', '10:10', '10:45'),
    TimeSlot('period5', '10:45', '11:20'),
    TimeSlot('period6', '11:20', '11:55'),
    TimeSlot('recess2', '11:55', '12:25', is_recess=True, label='Recess II'),
    TimeSlot('period7', '12:25', '13:00'),
    TimeSlot('period8', '13:00', '13:35'),
    TimeSlot('period9', '13:35', '14:10'),
)

WEEKDAYS: tuple[str, ...] = tuple(day.value for day in Weekday)
PERIODS: tuple[str, ...] = tuple(period.value for period in Period)

_SLOTS_BY_KEY = {slot.key: slot for slot in TIME_SLOTS}
_WEEKDAY_INDEX = {day: index for index, day in enumerate(WEEKDAYS)}
_PERIOD_INDEX = {period: index for index, period in enumerate(PERIODS)}


def parse_weekday(value: str | None) -> str:
    normalized = str(value or '').strip().lower()
    if normalized not in _WEEKDAY_INDEX:
        raise InvalidEnumError(f'Invalid day: {value!r}. Expected one of {", ".join(WEEKDAYS)}')
    return normalized


def parse_period(value: str | None) -> str:
    normalized = str(value or '').strip().lower()
    if normalized not in _PERIOD_INDEX:
        raise InvalidEnumError(f'Invalid period: {value!r}. Expected one of {", ".join(PERIODS)}')
    return normalized


def weekday_index(day: str) -> int:
    return _WEEKDAY_INDEX[day]


def period_index(period: str) -> int:
    return _PERIOD_INDEX[period]


def time_slot(key: str) -> TimeSlot | None:
    return _SLOTS_BY_KEY.get(key)


def period_display_map() -> dict[str, str]:
    return {slot.key: slot.display for slot in TIME_SLOTS}


def _local_hhmm(now: datetime) -> str:
    return ensure_aware(now).astimezone(APP_ZONEINFO).strftime('%H:%M')


def current_period(now: datetime) -> TimeSlot | None:
    current = _local_hhmm(now)
    for slot in TIME_SLOTS:
        if slot.start <= current <= slot.end:
            return slot
    return None


def next_period(now: datetime) -> TimeSlot | None:
    current = _local_hhmm(now)
    for slot in TIME_SLOTS:
        if current < slot.start:
            return slot
    return None
