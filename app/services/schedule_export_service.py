from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Iterable

from app.core.time_grid import TIME_SLOTS, WEEKDAYS, TimeSlot, period_index, weekday_index


DAY_COLUMNS: tuple[str, ...] = tuple(day.capitalize() for day in WEEKDAYS)
EXPORT_COLUMNS: tuple[str, ...] = ('Period', 'Time', *DAY_COLUMNS)


@dataclass(frozen=True)
class ScheduleTable:
    columns: tuple[str, ...] = EXPORT_COLUMNS
    rows: list[dict[str, str]] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {'columns': list(self.columns), 'rows': [dict(row) for row in self.rows]}


def _cell_text(entry) -> str:
    return f'{entry.subject} ({entry.class_name})'


def project(entries: Iterable, time_slots: Iterable[TimeSlot] = TIME_SLOTS) -> ScheduleTable:
    """Lay entries out as one row per time slot and one column per weekday.

    Recess rows carry their label in the Monday column only. When two entries
    land in the same cell the one sorting last by (day, period, id) wins.
    """
    cells: dict[tuple[str, str], str] = {}
    ordered = sorted(
        entries,
        key=lambda entry: (weekday_index(entry.day), period_index(entry.period), int(entry.id or 0)),
    )
    for entry in ordered:
        cells[(entry.period, entry.day)] = _cell_text(entry)

    rows: list[dict[str, str]] = []
    for slot in time_slots:
        row = {column: '' for column in EXPORT_COLUMNS}
        row['Time'] = slot.display
        if slot.is_recess:
            row[DAY_COLUMNS[0]] = slot.label
        else:
            row['Period'] = slot.key.replace('period', '')
            for day, column in zip(WEEKDAYS, DAY_COLUMNS):
                row[column] = cells.get((slot.key, day), '')
        rows.append(row)
    return ScheduleTable(rows=rows)


def to_csv(table: ScheduleTable) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(table.columns), quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writeheader()
    writer.writerows(table.rows)
    return buffer.getvalue()
