from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.config import settings
from app.core.key_lock import recent_access_locks
from app.core.time_provider import TimeProvider, default_time_provider
from app.models import AuthUser, FolderFile, RecentAccessEntry, RecentAccessKind


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecentAccess:
    kind: str
    teacher_id: int
    teacher_name: str = ''
    folder_id: int | None = None
    file_id: int | None = None
    category: str = ''
    display_name: str = ''
    file_path: str = ''


def serialize_recent(row: RecentAccessEntry) -> dict:
    return {
        'id': row.id,
        'kind': row.kind,
        'teacher_id': row.teacher_id,
        'teacher_name': row.teacher_name,
        'folder_id': row.folder_id,
        'file_id': row.file_id,
        'category': row.category,
        'display_name': row.display_name,
        'file_path': row.file_path,
        'accessed_at': row.accessed_at.isoformat() if row.accessed_at else None,
    }


class RecencyTracker:
    """Per-viewer history of folder and file accesses, newest first.

    Folder and file accesses are bounded separately, each to ``limit``
    entries.

    Best-effort: a failed write is logged and dropped so the read or download
    that triggered it still succeeds. Repeated accesses are kept as separate
    entries.
    """

    def __init__(
        self,
        db: Session,
        *,
        limit: int | None = None,
        time_provider: TimeProvider = default_time_provider,
    ) -> None:
        self.db = db
        self.limit = max(1, int(limit if limit is not None else settings.recent_access_limit))
        self.time_provider = time_provider

    def _viewer_query(self, viewer_id: int):
        return self.db.query(RecentAccessEntry).filter(RecentAccessEntry.viewer_id == int(viewer_id))

    def record(self, viewer_id: int, access: RecentAccess) -> bool:
        try:
            with recent_access_locks.hold(str(int(viewer_id))):
                self.db.add(
                    RecentAccessEntry(
                        viewer_id=int(viewer_id),
                        kind=access.kind,
                        teacher_id=int(access.teacher_id),
                        teacher_name=access.teacher_name or '',
                        folder_id=access.folder_id,
                        file_id=access.file_id,
                        category=access.category or '',
                        display_name=(access.display_name or '')[:255],
                        file_path=access.file_path or '',
                        accessed_at=self.time_provider.utcnow(),
                    )
                )
                self.db.flush()
                stale_ids = [
                    row.id
                    for row in self._viewer_query(viewer_id)
                    .filter(RecentAccessEntry.kind == access.kind)
                    .with_entities(RecentAccessEntry.id)
                    .order_by(RecentAccessEntry.accessed_at.desc(), RecentAccessEntry.id.desc())
                    .offset(self.limit)
                    .all()
                ]
                if stale_ids:
                    self.db.query(RecentAccessEntry).filter(RecentAccessEntry.id.in_(stale_ids)).delete(
                        synchronize_session=False
                    )
                self.db.commit()
            return True
        except Exception:
            self.db.rollback()
            logger.exception('recent_access_failed', extra={'viewer_id': viewer_id, 'kind': access.kind})
            return False

    def record_folder_access(self, viewer_id: int, teacher: AuthUser) -> bool:
        return self.record(
            viewer_id,
            RecentAccess(
                kind=RecentAccessKind.FOLDER.value,
                teacher_id=teacher.id,
                teacher_name=teacher.name,
                display_name=teacher.name,
            ),
        )

    def record_file_access(self, viewer_id: int, file: FolderFile) -> bool:
        folder = file.folder
        return self.record(
            viewer_id,
            RecentAccess(
                kind=RecentAccessKind.FILE.value,
                teacher_id=folder.teacher_id,
                teacher_name=folder.teacher_name,
                folder_id=folder.id,
                file_id=file.id,
                category=folder.category,
                display_name=file.original_name,
                file_path=file.file_path,
            ),
        )

    def list_recent(self, viewer_id: int, *, kind: str | None = None) -> list[RecentAccessEntry]:
        query = self._viewer_query(viewer_id)
        if kind:
            query = query.filter(RecentAccessEntry.kind == kind)
        return query.order_by(RecentAccessEntry.accessed_at.desc(), RecentAccessEntry.id.desc()).all()
