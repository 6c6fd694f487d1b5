from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, ValidationError
from app.core.router_guard import require_auth_user, require_principal, to_http_exception
from app.db import get_db
from app.models import CalendarImage
from app.route_logging import EndpointNameRoute
from app.services.academic_calendar_service import AcademicCalendar, serialize_calendar
from app.services.file_storage_service import FileStorage, FileStorageError, get_file_storage


router = APIRouter(prefix='/api/academic-calendar', tags=['Academic Calendar'], route_class=EndpointNameRoute)
logger = logging.getLogger(__name__)


def _image_url(request: Request, storage: FileStorage, row: CalendarImage) -> str | None:
    try:
        return str(request.base_url).rstrip('/') + storage.public_url_path(row.file_path)
    except FileStorageError:
        return None


@router.get('')
def get_academic_calendar(
    request: Request,
    _: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    row = AcademicCalendar(db, storage).get_active()
    if row is None:
        return {'data': None, 'message': 'No academic calendar found'}
    return {'data': serialize_calendar(row, image_url=_image_url(request, storage, row))}


@router.post('/upload', status_code=201)
async def upload_academic_calendar(
    request: Request,
    calendar: UploadFile = File(...),
    user: dict = Depends(require_principal),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    service = AcademicCalendar(db, storage)
    content = await calendar.read()
    try:
        stored = service.store_upload(
            content,
            original_name=calendar.filename or '',
            mime_type=calendar.content_type or '',
        )
        result = service.replace(stored, user['user_id'])
    except (ConflictError, ValidationError) as exc:
        raise to_http_exception(exc) from exc
    except FileStorageError as exc:
        logger.exception('calendar_upload_store_failed')
        raise HTTPException(status_code=500, detail='Failed to store calendar image') from exc

    return {
        'ok': True,
        'message': 'Academic calendar uploaded successfully',
        'data': serialize_calendar(result.record, image_url=_image_url(request, storage, result.record)),
        'replaced_ids': result.deactivated_ids,
        'warnings': [str(warning) for warning in result.reclaim_warnings],
    }
