from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.core.errors import InvalidCategoryError, NotFoundError, StorageReclaimWarning
from app.core.key_lock import folder_locks
from app.core.time_provider import TimeProvider, default_time_provider
from app.models import AuthUser, Folder, FolderCategory, FolderFile, Role
from app.services.file_storage_service import FileStorage, FileStorageError, StoredFile


logger = logging.getLogger(__name__)

FOLDER_CATEGORIES: tuple[str, ...] = tuple(category.value for category in FolderCategory)


def parse_category(value: str | None) -> str:
    normalized = str(value or '').strip().lower()
    if normalized not in FOLDER_CATEGORIES:
        raise InvalidCategoryError('Invalid folder type')
    return normalized


def serialize_file(row: FolderFile) -> dict:
    return {
        'id': row.id,
        'folder_id': row.folder_id,
        'file_name': row.file_name,
        'original_name': row.original_name,
        'file_path': row.file_path,
        'file_size': row.file_size,
        'mime_type': row.mime_type,
        'uploaded_at': row.uploaded_at.isoformat() if row.uploaded_at else None,
        'created_at': row.created_at.isoformat() if row.created_at else None,
        'updated_at': (row.updated_at or row.created_at).isoformat() if (row.updated_at or row.created_at) else None,
    }


def serialize_folder(folder: Folder | None) -> dict | None:
    if folder is None:
        return None
    return {
        'id': folder.id,
        'teacher_id': folder.teacher_id,
        'teacher_name': folder.teacher_name,
        'category': folder.category,
        'created_at': folder.created_at.isoformat() if folder.created_at else None,
        'updated_at': folder.updated_at.isoformat() if folder.updated_at else None,
        'files': [serialize_file(row) for row in folder.files],
    }


@dataclass
class FileRemoval:
    file: dict
    reclaim_warnings: list[StorageReclaimWarning] = field(default_factory=list)

    @property
    def storage_reclaimed(self) -> bool:
        return not self.reclaim_warnings


class FolderStore:
    """The single folder per (teacher, category) and the files it accumulates."""

    def __init__(
        self,
        db: Session,
        storage: FileStorage,
        *,
        time_provider: TimeProvider = default_time_provider,
    ) -> None:
        self.db = db
        self.storage = storage
        self.time_provider = time_provider

    def _get_teacher(self, teacher_id: int) -> AuthUser:
        teacher = self.db.query(AuthUser).filter(AuthUser.id == int(teacher_id or 0)).first()
        if not teacher or teacher.role != Role.TEACHER.value:
            raise NotFoundError('Teacher not found')
        return teacher

    def _find_folder(self, teacher_id: int, category: str) -> Folder | None:
        return (
            self.db.query(Folder)
            .options(selectinload(Folder.files))
            .filter(Folder.teacher_id == int(teacher_id), Folder.category == category)
            .first()
        )

    def _get_or_create_folder(self, teacher: AuthUser, category: str) -> Folder:
        folder = self._find_folder(teacher.id, category)
        if folder is not None:
            return folder

        now = self.time_provider.utcnow()
        self.db.add(
            Folder(
                teacher_id=teacher.id,
                teacher_name=teacher.name,
                category=category,
                created_at=now,
                updated_at=now,
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            # Another process created it first; the unique constraint keeps one row.
            self.db.rollback()
            logger.info('folder_create_race', extra={'teacher_id': teacher.id, 'category': category})
        else:
            logger.info('folder_created', extra={'teacher_id': teacher.id, 'category': category})

        folder = self._find_folder(teacher.id, category)
        if folder is None:
            raise NotFoundError('Folder not found')
        return folder

    def upload(self, teacher_id: int, category: str, stored_file: StoredFile) -> FolderFile:
        clean_category = parse_category(category)
        teacher = self._get_teacher(teacher_id)
        now = self.time_provider.utcnow()

        with folder_locks.hold(f'{teacher.id}:{clean_category}'):
            folder = self._get_or_create_folder(teacher, clean_category)
            record = FolderFile(
                file_name=stored_file.stored_name,
                original_name=stored_file.original_name,
                file_path=stored_file.path,
                file_size=int(stored_file.size),
                mime_type=stored_file.mime_type,
                uploaded_at=now,
                created_at=now,
                updated_at=now,
            )
            folder.files.append(record)
            folder.updated_at = now
            self.db.commit()

        self.db.refresh(record)
        logger.info(
            'folder_file_uploaded',
            extra={'teacher_id': teacher.id, 'category': clean_category, 'file_id': record.id},
        )
        return record

    def remove(self, teacher_id: int, category: str, file_id: int) -> FileRemoval:
        clean_category = parse_category(category)

        with folder_locks.hold(f'{int(teacher_id)}:{clean_category}'):
            folder = self._find_folder(teacher_id, clean_category)
            if folder is None:
                raise NotFoundError('Folder not found')
            record = next((row for row in folder.files if row.id == int(file_id)), None)
            if record is None:
                raise NotFoundError('File not found')
            snapshot = serialize_file(record)
            folder.files.remove(record)
            folder.updated_at = self.time_provider.utcnow()
            self.db.commit()

        removal = FileRemoval(file=snapshot)
        try:
            self.storage.delete(snapshot['file_path'])
        except FileStorageError as exc:
            logger.warning(
                'storage_reclaim_failed',
                extra={'file_id': snapshot['id'], 'path': snapshot['file_path'], 'error': str(exc)},
            )
            removal.reclaim_warnings.append(StorageReclaimWarning(snapshot['file_path'], str(exc)))
        return removal

    def get(self, teacher_id: int, category: str) -> Folder | None:
        return self._find_folder(teacher_id, parse_category(category))

    def get_file(self, teacher_id: int, category: str, file_id: int) -> FolderFile:
        folder = self.get(teacher_id, category)
        if folder is None:
            raise NotFoundError('Folder not found')
        record = next((row for row in folder.files if row.id == int(file_id)), None)
        if record is None:
            raise NotFoundError('File not found')
        return record

    def list_grouped_by_category(self, teacher_id: int) -> dict[str, Folder | None]:
        grouped: dict[str, Folder | None] = {category: None for category in FOLDER_CATEGORIES}
        folders = (
            self.db.query(Folder)
            .options(selectinload(Folder.files))
            .filter(Folder.teacher_id == int(teacher_id))
            .all()
        )
        for folder in folders:
            grouped[folder.category] = folder
        return grouped
