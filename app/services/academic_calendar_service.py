from __future__ import annotations

from sqlalchemy.orm import Session

from app.core.time_provider import TimeProvider, default_time_provider
from app.models import CalendarImage
from app.services.active_record_service import ReplaceResult, SingleActiveRecord
from app.services.file_storage_service import CALENDAR_UPLOAD_SUBDIR, FileStorage, StoredFile, UploadRejectedError


CALENDAR_KIND = 'academic_calendar'
CALENDAR_MIME_PREFIX = 'image/'


def serialize_calendar(row: CalendarImage | None, *, image_url: str | None = None) -> dict | None:
    if row is None:
        return None
    return {
        'id': row.id,
        'image': {
            'file_name': row.file_name,
            'file_path': row.file_path,
            'file_size': row.file_size,
            'mime_type': row.mime_type,
        },
        'image_url': image_url,
        'uploaded_by': {
            'id': row.uploaded_by,
            'name': row.uploader.name if row.uploader else '',
            'role': row.uploader.role if row.uploader else '',
        },
        'is_active': bool(row.is_active),
        'created_at': row.created_at.isoformat() if row.created_at else None,
        'updated_at': row.updated_at.isoformat() if row.updated_at else None,
    }


class AcademicCalendar:
    """The one current academic-calendar image."""

    def __init__(
        self,
        db: Session,
        storage: FileStorage,
        *,
        time_provider: TimeProvider = default_time_provider,
    ) -> None:
        self.storage = storage
        self.records = SingleActiveRecord(
            db,
            CalendarImage,
            kind=CALENDAR_KIND,
            storage=storage,
            time_provider=time_provider,
        )

    def store_upload(self, content: bytes, *, original_name: str, mime_type: str) -> StoredFile:
        return self.storage.save(
            content,
            original_name=original_name,
            mime_type=mime_type,
            subdir=CALENDAR_UPLOAD_SUBDIR,
            mime_prefix=CALENDAR_MIME_PREFIX,
        )

    def replace(self, stored_file: StoredFile, uploader_id: int) -> ReplaceResult:
        if not (stored_file.mime_type or '').lower().startswith(CALENDAR_MIME_PREFIX):
            self.storage.delete(stored_file.path)
            raise UploadRejectedError('Only image files are allowed')
        return self.records.replace(stored_file, uploader_id)

    def get_active(self) -> CalendarImage | None:
        return self.records.get_active()
