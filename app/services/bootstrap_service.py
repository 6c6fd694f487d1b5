import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.models import AuthUser, Role
from app.services.file_storage_service import get_file_storage


logger = logging.getLogger(__name__)


def _seed_principal_if_needed(db: Session) -> dict:
    existing = db.query(AuthUser).filter(AuthUser.role == Role.PRINCIPAL.value).first()
    if existing:
        return {'seeded': False, 'reason': 'principal_exists', 'user_id': existing.id}

    email = (settings.principal_seed_email or '').strip().lower()
    if not email:
        logger.warning('principal_seed_skipped missing_email')
        return {'seeded': False, 'reason': 'no_email'}

    row = AuthUser(
        name=settings.principal_seed_name or 'Principal',
        email=email,
        role=Role.PRINCIPAL.value,
        is_active=True,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.warning('Default principal seeded - change its email after setup (user_id=%s)', row.id)
    return {'seeded': True, 'user_id': row.id, 'email': email}


def run_bootstrap(db: Session) -> dict:
    storage = get_file_storage()
    storage.ensure_directories()
    principal = _seed_principal_if_needed(db)
    return {'ran': bool(principal.get('seeded')), 'principal': principal, 'upload_root': str(storage.root)}
