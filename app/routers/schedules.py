from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.cache import cache, cache_key
from app.core.errors import AccessDeniedError, NotFoundError, ValidationError
from app.core.router_guard import require_auth_user, require_principal, to_http_exception
from app.core.time_grid import TIME_SLOTS, current_period, next_period, period_display_map
from app.core.time_provider import default_time_provider
from app.db import get_db
from app.route_logging import EndpointNameRoute
from app.schemas import ScheduleCreateRequest, ScheduleUpdateRequest
from app.services.schedule_export_service import project, to_csv
from app.services.schedule_service import (
    SCHEDULE_CACHE_PREFIX,
    ScheduleStore,
    group_by_day,
    serialize_entry,
)


router = APIRouter(prefix='/api/schedules', tags=['Schedules'], route_class=EndpointNameRoute)


def _visible_entries(db: Session, user: dict, teacher_id: int | None, include_unpublished: bool):
    try:
        return ScheduleStore(db).list_for_viewer(
            viewer_role=user['role'],
            viewer_id=user['user_id'],
            teacher_id=teacher_id,
            include_unpublished=include_unpublished,
        )
    except AccessDeniedError as exc:
        raise to_http_exception(exc) from exc


@router.get('')
def list_schedules(
    teacher_id: int | None = Query(default=None),
    include_unpublished: bool = Query(default=False),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    store = ScheduleStore(db)
    identity = f"{store.listing_version()}:{user['role']}:{user['user_id']}:{int(teacher_id or 0)}:{int(include_unpublished)}"
    key = cache_key(SCHEDULE_CACHE_PREFIX, identity)
    cached = cache.get_cached(key)
    if cached is not None:
        return cached

    entries = _visible_entries(db, user, teacher_id, include_unpublished)
    payload = {
        'schedules': group_by_day(entries),
        'time_periods': period_display_map(),
    }
    cache.set_cached(key, payload)
    return payload


@router.get('/teachers')
def list_schedule_teachers(
    _: dict = Depends(require_principal),
    db: Session = Depends(get_db),
):
    teachers = ScheduleStore(db).list_teachers()
    return {
        'teachers': [
            {'id': row.id, 'name': row.name, 'nip': row.nip, 'email': row.email}
            for row in teachers
        ]
    }


@router.get('/time-periods')
def list_time_periods(_: dict = Depends(require_auth_user)):
    now = default_time_provider.now()
    current = current_period(now)
    upcoming = next_period(now)
    return {
        'time_periods': [slot.as_dict() for slot in TIME_SLOTS],
        'current_period': current.as_dict() if current else None,
        'next_period': upcoming.as_dict() if upcoming else None,
    }


@router.post('', status_code=201)
def create_schedule(
    payload: ScheduleCreateRequest,
    user: dict = Depends(require_principal),
    db: Session = Depends(get_db),
):
    try:
        entry = ScheduleStore(db).create_entry(
            teacher_id=payload.teacher_id,
            day=payload.day,
            period=payload.period,
            subject=payload.subject,
            class_name=payload.class_name,
            created_by=user['user_id'],
        )
    except (NotFoundError, ValidationError) as exc:
        raise to_http_exception(exc) from exc
    return {'ok': True, 'schedule': serialize_entry(entry)}


@router.post('/publish')
def publish_schedules(
    _: dict = Depends(require_principal),
    db: Session = Depends(get_db),
):
    count = ScheduleStore(db).publish_all()
    return {'ok': True, 'published': count, 'message': f'{count} schedules published successfully'}


@router.get('/table')
def schedule_table(
    teacher_id: int | None = Query(default=None),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    entries = _visible_entries(db, user, teacher_id, False)
    return {
        **project(entries).as_dict(),
        'time_periods': period_display_map(),
    }


@router.get('/download')
def download_schedules(
    teacher_id: int | None = Query(default=None),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    entries = _visible_entries(db, user, teacher_id, False)
    return Response(
        content=to_csv(project(entries)),
        media_type='text/csv',
        headers={'Content-Disposition': 'attachment; filename=schedules.csv'},
    )


@router.put('/{entry_id}')
def update_schedule(
    entry_id: int,
    payload: ScheduleUpdateRequest,
    _: dict = Depends(require_principal),
    db: Session = Depends(get_db),
):
    try:
        entry = ScheduleStore(db).update_entry(
            entry_id,
            day=payload.day,
            period=payload.period,
            subject=payload.subject,
            class_name=payload.class_name,
        )
    except (NotFoundError, ValidationError) as exc:
        raise to_http_exception(exc) from exc
    return {'ok': True, 'schedule': serialize_entry(entry)}


@router.delete('/{entry_id}')
def delete_schedule(
    entry_id: int,
    _: dict = Depends(require_principal),
    db: Session = Depends(get_db),
):
    try:
        ScheduleStore(db).delete_entry(entry_id)
    except NotFoundError as exc:
        raise to_http_exception(exc) from exc
    return {'ok': True, 'message': 'Schedule deleted successfully'}
