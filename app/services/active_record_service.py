from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, StorageReclaimWarning
from app.core.key_lock import active_record_locks
from app.core.time_provider import TimeProvider, default_time_provider
from app.services.file_storage_service import FileStorage, FileStorageError, StoredFile


logger = logging.getLogger(__name__)

DEFAULT_SCOPE_KEY = 'global'
REPLACE_ATTEMPTS = 3


@dataclass
class ReplaceResult:
    record: Any
    deactivated_ids: list[int] = field(default_factory=list)
    reclaim_warnings: list[StorageReclaimWarning] = field(default_factory=list)


class SingleActiveRecord:
    """Keeps exactly zero or one active row per (kind, scope key).

    ``model`` must carry the ``ActiveRecordMixin`` columns. A replace
    deactivates the current row and inserts the new one in a single
    transaction, then deletes the stored files of inactive rows. Storage that
    cannot be deleted stays marked unreclaimed and is retried on the next
    replace.
    """

    def __init__(
        self,
        db: Session,
        model: type,
        *,
        kind: str,
        storage: FileStorage,
        scope_key: str = DEFAULT_SCOPE_KEY,
        uploader_field: str = 'uploaded_by',
        time_provider: TimeProvider = default_time_provider,
    ) -> None:
        self.db = db
        self.model = model
        self.kind = kind
        self.scope_key = scope_key or DEFAULT_SCOPE_KEY
        self.storage = storage
        self.uploader_field = uploader_field
        self.time_provider = time_provider

    @property
    def lock_key(self) -> str:
        return f'{self.model.__tablename__}:{self.kind}:{self.scope_key}'

    def _scoped(self):
        return self.db.query(self.model).filter(
            self.model.kind == self.kind,
            self.model.scope_key == self.scope_key,
        )

    def get_active(self):
        return (
            self._scoped()
            .filter(self.model.is_active.is_(True))
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .first()
        )

    def list_all(self) -> list:
        return self._scoped().order_by(self.model.id.asc()).all()

    def _swap_in(self, stored_file: StoredFile, uploader_id: int, now):
        previous = self._scoped().filter(self.model.is_active.is_(True)).with_for_update().all()
        deactivated_ids = [row.id for row in previous]
        for row in previous:
            row.is_active = False
            row.updated_at = now
        # The partial unique index rejects a second active row, so the
        # deactivation has to reach the database before the insert.
        self.db.flush()

        record = self.model(
            kind=self.kind,
            scope_key=self.scope_key,
            file_name=stored_file.stored_name,
            file_path=stored_file.path,
            file_size=int(stored_file.size),
            mime_type=stored_file.mime_type,
            is_active=True,
            created_at=now,
            updated_at=now,
            **{self.uploader_field: int(uploader_id)},
        )
        self.db.add(record)
        self.db.commit()
        return record, deactivated_ids

    def _discard_upload(self, stored_file: StoredFile) -> None:
        try:
            self.storage.delete(stored_file.path)
        except FileStorageError as exc:
            logger.warning(
                'storage_reclaim_failed',
                extra={'kind': self.kind, 'path': stored_file.path, 'error': str(exc)},
            )

    def replace(self, stored_file: StoredFile, uploader_id: int) -> ReplaceResult:
        """Make ``stored_file`` the active record.

        The in-process lock serializes replaces within one worker. A replace
        committed by another process in between shows up as an IntegrityError
        on the partial unique index; the swap is then redone against the new
        active row, up to ``REPLACE_ATTEMPTS`` times. If every attempt loses,
        the upload is deleted and ConflictError is raised.
        """
        now = self.time_provider.utcnow()

        with active_record_locks.hold(self.lock_key):
            for attempt in range(1, REPLACE_ATTEMPTS + 1):
                try:
                    record, deactivated_ids = self._swap_in(stored_file, uploader_id, now)
                    break
                except IntegrityError as exc:
                    self.db.rollback()
                    logger.warning(
                        'active_record_replace_conflict',
                        extra={'kind': self.kind, 'scope_key': self.scope_key, 'attempt': attempt},
                    )
                    if attempt == REPLACE_ATTEMPTS:
                        self._discard_upload(stored_file)
                        raise ConflictError(f'Another active {self.kind} was created concurrently') from exc

        self.db.refresh(record)
        logger.info(
            'active_record_replaced',
            extra={'kind': self.kind, 'scope_key': self.scope_key, 'record_id': record.id, 'deactivated': deactivated_ids},
        )
        return ReplaceResult(
            record=record,
            deactivated_ids=deactivated_ids,
            reclaim_warnings=self.reclaim_inactive(),
        )

    def reclaim_inactive(self) -> list[StorageReclaimWarning]:
        """Delete stored files of inactive rows that still hold storage."""
        warnings: list[StorageReclaimWarning] = []
        pending = (
            self._scoped()
            .filter(self.model.is_active.is_(False), self.model.storage_reclaimed_at.is_(None))
            .order_by(self.model.id.asc())
            .all()
        )
        if not pending:
            return warnings

        now = self.time_provider.utcnow()
        for row in pending:
            try:
                self.storage.delete(row.file_path)
            except FileStorageError as exc:
                logger.warning(
                    'storage_reclaim_failed',
                    extra={'kind': self.kind, 'record_id': row.id, 'path': row.file_path, 'error': str(exc)},
                )
                warnings.append(StorageReclaimWarning(row.file_path, str(exc)))
                continue
            row.storage_reclaimed_at = now

        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            # Files are already gone; the next replace re-marks them.
            self.db.rollback()
            logger.exception('storage_reclaim_mark_failed', extra={'kind': self.kind})
            warnings.append(StorageReclaimWarning('', f'could not record reclamation: {exc}'))
        return warnings
