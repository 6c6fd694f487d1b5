from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from app.config import settings
from app.core.errors import ValidationError


logger = logging.getLogger(__name__)

FOLDER_UPLOAD_SUBDIR = 'folders'
CALENDAR_UPLOAD_SUBDIR = 'academic-calendar'
UPLOAD_SUBDIRS = (FOLDER_UPLOAD_SUBDIR, CALENDAR_UPLOAD_SUBDIR)


class FileStorageError(RuntimeError):
    pass


class UploadRejectedError(ValidationError):
    pass


@dataclass(frozen=True)
class StoredFile:
    stored_name: str
    original_name: str
    path: str
    size: int
    mime_type: str


def allowed_folder_mime_types() -> set[str]:
    return {item.strip().lower() for item in settings.folder_allowed_mime_types.split(',') if item.strip()}


class FileStorage:
    """Local upload directory. Saves raw uploads and deletes them again."""

    def __init__(self, root: str | Path | None = None, *, max_bytes: int | None = None) -> None:
        self.root = Path(root or settings.upload_root).resolve()
        self.max_bytes = int(max_bytes if max_bytes is not None else settings.max_upload_bytes)

    def ensure_directories(self) -> None:
        for subdir in UPLOAD_SUBDIRS:
            (self.root / subdir).mkdir(parents=True, exist_ok=True)

    def _generate_name(self, original_name: str) -> str:
        suffix = Path(original_name or '').suffix.lower()[:16]
        return f'{int(time.time() * 1000)}-{secrets.token_hex(8)}{suffix}'

    def _check_upload(
        self,
        content: bytes,
        mime_type: str,
        *,
        allowed_mime_types: Iterable[str] | None,
        mime_prefix: str | None,
    ) -> None:
        if not content:
            raise UploadRejectedError('No file uploaded')
        if len(content) > self.max_bytes:
            raise UploadRejectedError(f'File exceeds the {self.max_bytes} byte upload limit')
        normalized = (mime_type or '').strip().lower()
        if mime_prefix and not normalized.startswith(mime_prefix):
            raise UploadRejectedError(f'Only {mime_prefix}* files are allowed')
        if allowed_mime_types is not None and normalized not in {value.lower() for value in allowed_mime_types}:
            raise UploadRejectedError(f'File type {mime_type or "unknown"} is not allowed')

    def save(
        self,
        content: bytes,
        *,
        original_name: str,
        mime_type: str,
        subdir: str,
        allowed_mime_types: Iterable[str] | None = None,
        mime_prefix: str | None = None,
    ) -> StoredFile:
        self._check_upload(content, mime_type, allowed_mime_types=allowed_mime_types, mime_prefix=mime_prefix)
        target_dir = self.root / subdir
        target_dir.mkdir(parents=True, exist_ok=True)
        stored_name = self._generate_name(original_name)
        target = target_dir / stored_name
        try:
            target.write_bytes(content)
        except OSError as exc:
            raise FileStorageError(f'Failed to store upload: {exc}') from exc
        logger.info('upload_stored', extra={'path': str(target), 'size': len(content)})
        return StoredFile(
            stored_name=stored_name,
            original_name=(original_name or stored_name)[:255],
            path=str(target),
            size=len(content),
            mime_type=(mime_type or 'application/octet-stream').strip().lower(),
        )

    def _resolve_inside_root(self, path: str) -> Path:
        resolved = Path(path).resolve()
        if not resolved.is_relative_to(self.root):
            raise FileStorageError(f'Refusing to touch {path}: outside upload root')
        return resolved

    def exists(self, path: str) -> bool:
        try:
            return self._resolve_inside_root(path).is_file()
        except FileStorageError:
            return False

    def delete(self, path: str) -> None:
        if not path:
            return
        target = self._resolve_inside_root(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise FileStorageError(f'Failed to delete {path}: {exc}') from exc

    def public_url_path(self, path: str) -> str:
        relative = self._resolve_inside_root(path).relative_to(self.root)
        return f'/uploads/{relative.as_posix()}'


_default_storage: FileStorage | None = None


def get_file_storage() -> FileStorage:
    global _default_storage
    if _default_storage is None:
        _default_storage = FileStorage()
    return _default_storage
