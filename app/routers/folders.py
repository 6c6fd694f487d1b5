from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.core.router_guard import is_principal, require_auth_user, to_http_exception
from app.db import get_db
from app.models import AuthUser, Role
from app.route_logging import EndpointNameRoute
from app.services.file_storage_service import (
    FOLDER_UPLOAD_SUBDIR,
    FileStorage,
    FileStorageError,
    allowed_folder_mime_types,
    get_file_storage,
)
from app.services.folder_service import FolderStore, parse_category, serialize_file, serialize_folder
from app.services.recent_access_service import RecencyTracker


router = APIRouter(prefix='/api/folders', tags=['Folders'], route_class=EndpointNameRoute)
logger = logging.getLogger(__name__)


def _target_teacher_id(user: dict, teacher_id: int | None) -> int:
    if not is_principal(user):
        return user['user_id']
    if not teacher_id:
        raise HTTPException(status_code=400, detail='teacher_id is required')
    return int(teacher_id)


def _category_or_400(category: str) -> str:
    try:
        return parse_category(category)
    except ValidationError as exc:
        raise to_http_exception(exc) from exc


@router.get('')
def list_folders(
    teacher_id: int | None = Query(default=None),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    target_id = _target_teacher_id(user, teacher_id)
    if is_principal(user):
        teacher = db.query(AuthUser).filter(AuthUser.id == target_id, AuthUser.role == Role.TEACHER.value).first()
        if not teacher:
            raise HTTPException(status_code=404, detail='Teacher not found')
        RecencyTracker(db).record_folder_access(user['user_id'], teacher)

    grouped = FolderStore(db, storage).list_grouped_by_category(target_id)
    return {
        'teacher_id': target_id,
        'folders': {category: serialize_folder(folder) for category, folder in grouped.items()},
    }


@router.get('/{category}')
def get_folder(
    category: str,
    teacher_id: int | None = Query(default=None),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    clean_category = _category_or_400(category)
    folder = FolderStore(db, storage).get(_target_teacher_id(user, teacher_id), clean_category)
    if folder is None:
        raise HTTPException(status_code=404, detail='Folder not found')
    return {
        'category': clean_category,
        'folder': serialize_folder(folder),
        'files': [serialize_file(row) for row in folder.files],
    }


@router.post('/{category}/upload', status_code=201)
async def upload_folder_file(
    category: str,
    file: UploadFile = File(...),
    teacher_id: int | None = Form(default=None),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    clean_category = _category_or_400(category)
    target_id = _target_teacher_id(user, teacher_id)
    content = await file.read()
    try:
        stored = storage.save(
            content,
            original_name=file.filename or '',
            mime_type=file.content_type or '',
            subdir=FOLDER_UPLOAD_SUBDIR,
            allowed_mime_types=allowed_folder_mime_types(),
        )
    except ValidationError as exc:
        raise to_http_exception(exc) from exc
    except FileStorageError as exc:
        logger.exception('folder_upload_store_failed', extra={'teacher_id': target_id})
        raise HTTPException(status_code=500, detail='Failed to store file') from exc

    try:
        record = FolderStore(db, storage).upload(target_id, clean_category, stored)
    except (NotFoundError, ValidationError) as exc:
        try:
            storage.delete(stored.path)
        except FileStorageError:
            logger.warning('orphan_upload_not_removed', extra={'path': stored.path})
        raise to_http_exception(exc) from exc

    return {
        'ok': True,
        'message': 'File uploaded successfully',
        'folder': clean_category,
        'file': serialize_file(record),
    }


@router.delete('/{category}/files/{file_id}')
def delete_folder_file(
    category: str,
    file_id: int,
    teacher_id: int | None = Query(default=None),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    clean_category = _category_or_400(category)
    try:
        removal = FolderStore(db, storage).remove(_target_teacher_id(user, teacher_id), clean_category, file_id)
    except NotFoundError as exc:
        raise to_http_exception(exc) from exc
    return {
        'ok': True,
        'message': 'File deleted successfully',
        'file_id': removal.file['id'],
        'file_name': removal.file['original_name'],
        'storage_reclaimed': removal.storage_reclaimed,
        'warnings': [str(warning) for warning in removal.reclaim_warnings],
    }


@router.get('/{category}/files/{file_id}/download')
def download_folder_file(
    category: str,
    file_id: int,
    request: Request,
    teacher_id: int | None = Query(default=None),
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
):
    clean_category = _category_or_400(category)
    try:
        record = FolderStore(db, storage).get_file(_target_teacher_id(user, teacher_id), clean_category, file_id)
    except NotFoundError as exc:
        raise to_http_exception(exc) from exc
    if not storage.exists(record.file_path):
        raise HTTPException(status_code=404, detail='File not found on server')

    file_path = record.file_path
    original_name = record.original_name
    mime_type = record.mime_type
    RecencyTracker(db).record_file_access(user['user_id'], record)
    logger.info('folder_file_downloaded', extra={'file_id': file_id, 'path': request.url.path})
    return FileResponse(file_path, filename=original_name, media_type=mime_type)
