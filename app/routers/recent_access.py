from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.router_guard import require_auth_user
from app.db import get_db
from app.models import RecentAccessKind
from app.route_logging import EndpointNameRoute
from app.services.recent_access_service import RecencyTracker, serialize_recent


router = APIRouter(prefix='/api/recent', tags=['Recent Access'], route_class=EndpointNameRoute)


@router.get('')
def list_recent_access(
    user: dict = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    rows = [serialize_recent(row) for row in RecencyTracker(db).list_recent(user['user_id'])]
    return {
        'items': rows,
        'recent_folders': [row for row in rows if row['kind'] == RecentAccessKind.FOLDER.value],
        'recent_files': [row for row in rows if row['kind'] == RecentAccessKind.FILE.value],
    }
