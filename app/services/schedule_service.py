from __future__ import annotations

import logging

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.cache import cache
from app.core.errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from app.core.key_lock import schedule_slot_locks
from app.core.time_grid import WEEKDAYS, parse_period, parse_weekday, period_index, time_slot, weekday_index
from app.core.time_provider import TimeProvider, default_time_provider
from app.models import AuthUser, Role, ScheduleEntry


logger = logging.getLogger(__name__)

SCHEDULE_CACHE_PREFIX = 'schedule_list'
CONFLICT_MESSAGE = 'Schedule conflict: Teacher already has a class at this time'


def invalidate_schedule_cache() -> None:
    cache.invalidate_prefix(SCHEDULE_CACHE_PREFIX)


def schedule_sort_key(entry) -> tuple[int, int, int]:
    return weekday_index(entry.day), period_index(entry.period), int(entry.id or 0)


def _required_text(value: str | None, field_name: str, max_length: int) -> str:
    clean = (value or '').strip()
    if not clean:
        raise ValidationError(f'{field_name} is required')
    if len(clean) > max_length:
        raise ValidationError(f'{field_name} must be at most {max_length} characters')
    return clean


def serialize_entry(entry: ScheduleEntry) -> dict:
    slot = time_slot(entry.period)
    return {
        'id': entry.id,
        'teacher_id': entry.teacher_id,
        'teacher_name': entry.teacher_name,
        'teacher_nip': entry.teacher.nip if entry.teacher else '',
        'day': entry.day,
        'period': entry.period,
        'time': entry.time_display or (slot.display if slot else ''),
        'subject': entry.subject,
        'class': entry.class_name,
        'is_published': bool(entry.is_published),
        'created_by': entry.created_by,
        'created_at': entry.created_at.isoformat() if entry.created_at else None,
        'updated_at': entry.updated_at.isoformat() if entry.updated_at else None,
    }


def group_by_day(entries: list[ScheduleEntry]) -> dict[str, list[dict]]:
    grouped: dict[str, list[dict]] = {day: [] for day in WEEKDAYS}
    for entry in sorted(entries, key=schedule_sort_key):
        slot = time_slot(entry.period)
        grouped[entry.day].append({**serialize_entry(entry), 'time_slot': slot.display if slot else ''})
    return grouped


class ScheduleStore:
    """Timetable entries: one class per teacher per slot, drafted then published."""

    def __init__(self, db: Session, *, time_provider: TimeProvider = default_time_provider) -> None:
        self.db = db
        self.time_provider = time_provider

    def _get_teacher(self, teacher_id: int) -> AuthUser:
        teacher = self.db.query(AuthUser).filter(AuthUser.id == int(teacher_id or 0)).first()
        if not teacher or teacher.role != Role.TEACHER.value:
            raise NotFoundError('Teacher not found')
        return teacher

    def _slot_taken(self, teacher_id: int, day: str, period: str, *, exclude_id: int | None = None) -> bool:
        query = self.db.query(ScheduleEntry.id).filter(
            ScheduleEntry.teacher_id == teacher_id,
            ScheduleEntry.day == day,
            ScheduleEntry.period == period,
        )
        if exclude_id is not None:
            query = query.filter(ScheduleEntry.id != exclude_id)
        return query.first() is not None

    def _commit_or_conflict(self, *, teacher_id: int, day: str, period: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(
                'schedule_conflict_on_commit',
                extra={'teacher_id': teacher_id, 'day': day, 'period': period},
            )
            raise ConflictError(CONFLICT_MESSAGE) from exc

    def get_entry(self, entry_id: int) -> ScheduleEntry:
        entry = (
            self.db.query(ScheduleEntry)
            .options(joinedload(ScheduleEntry.teacher))
            .filter(ScheduleEntry.id == int(entry_id or 0))
            .first()
        )
        if not entry:
            raise NotFoundError('Schedule not found')
        return entry

    def create_entry(
        self,
        *,
        teacher_id: int,
        day: str,
        period: str,
        subject: str,
        class_name: str,
        created_by: int,
    ) -> ScheduleEntry:
        clean_day = parse_weekday(day)
        clean_period = parse_period(period)
        clean_subject = _required_text(subject, 'Subject', 120)
        clean_class = _required_text(class_name, 'Class', 60)
        teacher = self._get_teacher(teacher_id)
        now = self.time_provider.utcnow()

        with schedule_slot_locks.hold(f'{teacher.id}:{clean_day}:{clean_period}'):
            if self._slot_taken(teacher.id, clean_day, clean_period):
                logger.info(
                    'schedule_conflict',
                    extra={'teacher_id': teacher.id, 'day': clean_day, 'period': clean_period},
                )
                raise ConflictError(CONFLICT_MESSAGE)
            entry = ScheduleEntry(
                teacher_id=teacher.id,
                teacher_name=teacher.name,
                day=clean_day,
                period=clean_period,
                time_display=time_slot(clean_period).display,
                subject=clean_subject,
                class_name=clean_class,
                is_published=False,
                created_by=int(created_by),
                created_at=now,
                updated_at=now,
            )
            self.db.add(entry)
            self._commit_or_conflict(teacher_id=teacher.id, day=clean_day, period=clean_period)

        self.db.refresh(entry)
        invalidate_schedule_cache()
        logger.info('schedule_created', extra={'schedule_id': entry.id, 'teacher_id': teacher.id})
        return entry

    def update_entry(
        self,
        entry_id: int,
        *,
        day: str,
        period: str,
        subject: str,
        class_name: str,
    ) -> ScheduleEntry:
        clean_day = parse_weekday(day)
        clean_period = parse_period(period)
        clean_subject = _required_text(subject, 'Subject', 120)
        clean_class = _required_text(class_name, 'Class', 60)
        entry = self.get_entry(entry_id)
        teacher_id = entry.teacher_id

        with schedule_slot_locks.hold(f'{teacher_id}:{clean_day}:{clean_period}'):
            if self._slot_taken(teacher_id, clean_day, clean_period, exclude_id=entry.id):
                logger.info(
                    'schedule_conflict',
                    extra={'schedule_id': entry.id, 'teacher_id': teacher_id, 'day': clean_day, 'period': clean_period},
                )
                raise ConflictError(CONFLICT_MESSAGE)
            entry.day = clean_day
            entry.period = clean_period
            entry.time_display = time_slot(clean_period).display
            entry.subject = clean_subject
            entry.class_name = clean_class
            entry.updated_at = self.time_provider.utcnow()
            self._commit_or_conflict(teacher_id=teacher_id, day=clean_day, period=clean_period)

        self.db.refresh(entry)
        invalidate_schedule_cache()
        return entry

    def delete_entry(self, entry_id: int) -> None:
        entry = self.get_entry(entry_id)
        self.db.delete(entry)
        self.db.commit()
        invalidate_schedule_cache()
        logger.info('schedule_deleted', extra={'schedule_id': int(entry_id)})

    def publish_all(self) -> int:
        # Publishes every pending entry system-wide; there is no per-teacher publish.
        count = (
            self.db.query(ScheduleEntry)
            .filter(ScheduleEntry.is_published.is_(False))
            .update(
                {ScheduleEntry.is_published: True, ScheduleEntry.updated_at: self.time_provider.utcnow()},
                synchronize_session=False,
            )
        )
        self.db.commit()
        self.db.expire_all()
        invalidate_schedule_cache()
        logger.info('schedules_published', extra={'count': int(count or 0)})
        return int(count or 0)

    def list_for_viewer(
        self,
        *,
        viewer_role: str,
        viewer_id: int,
        teacher_id: int | None = None,
        include_unpublished: bool = False,
    ) -> list[ScheduleEntry]:
        role = str(viewer_role or '').strip().lower()
        query = self.db.query(ScheduleEntry).options(joinedload(ScheduleEntry.teacher))
        if role == Role.TEACHER.value:
            query = query.filter(
                ScheduleEntry.teacher_id == int(viewer_id),
                ScheduleEntry.is_published.is_(True),
            )
        elif role == Role.PRINCIPAL.value:
            if teacher_id:
                query = query.filter(ScheduleEntry.teacher_id == int(teacher_id))
            if not include_unpublished:
                query = query.filter(ScheduleEntry.is_published.is_(True))
        else:
            raise AccessDeniedError(f'Role {viewer_role!r} cannot view schedules')
        return sorted(query.all(), key=schedule_sort_key)

    def listing_version(self) -> str:
        """Token that changes on every schedule insert, edit, publish or delete.

        Listing cache keys include it, so a payload cached before a write made
        by any worker is never served after that write.
        """
        total, published, last_id, last_update = self.db.query(
            func.count(ScheduleEntry.id),
            func.sum(case((ScheduleEntry.is_published.is_(True), 1), else_=0)),
            func.max(ScheduleEntry.id),
            func.max(ScheduleEntry.updated_at),
        ).one()
        stamp = last_update.isoformat() if last_update else '-'
        return f'{int(total or 0)}.{int(published or 0)}.{int(last_id or 0)}.{stamp}'

    def list_teachers(self) -> list[AuthUser]:
        return (
            self.db.query(AuthUser)
            .filter(AuthUser.role == Role.TEACHER.value, AuthUser.is_active.is_(True))
            .order_by(AuthUser.name.asc(), AuthUser.id.asc())
            .all()
        )
