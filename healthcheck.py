import sys
from datetime import timedelta

import httpx
from alembic.config import Config
from alembic.script import ScriptDirectory
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect, text

from app.config import settings
from app.core.time_grid import TIME_SLOTS, current_period, next_period
from app.core.time_provider import TimeProvider, default_time_provider
from app.db import engine
from app.models import AuthUser, Role
from app.services.auth_service import create_session_token, validate_session_token
from app.services.file_storage_service import FOLDER_UPLOAD_SUBDIR, FileStorage


EXPECTED_TABLES = {
    'auth_users',
    'schedule_entries',
    'folders',
    'folder_files',
    'calendar_images',
    'recent_access_entries',
}

GREEN = '\033[32m'
RED = '\033[31m'
RESET = '\033[0m'


class _ShiftedTimeProvider(TimeProvider):
    def __init__(self, shift: timedelta):
        self._shift = shift

    def now(self):
        return default_time_provider.now() + self._shift


def run_check(name, fn):
    try:
        message = fn() or ''
        suffix = f' - {message}' if message else ''
        print(f'{GREEN}PASS{RESET} {name}{suffix}')
        return True
    except Exception as exc:
        print(f'{RED}FAIL{RESET} {name} - {exc}')
        return False


def check_db_connectivity_and_write():
    with engine.begin() as conn:
        conn.execute(text('SELECT 1'))
        conn.execute(text('CREATE TABLE IF NOT EXISTS _healthcheck_probe (id INTEGER PRIMARY KEY, note TEXT)'))
        conn.execute(text("INSERT INTO _healthcheck_probe (note) VALUES ('probe')"))
        conn.execute(text("DELETE FROM _healthcheck_probe WHERE note='probe'"))
        conn.execute(text('DROP TABLE IF EXISTS _healthcheck_probe'))
    return 'connect + write ok'


def check_alembic_head():
    cfg = Config('alembic.ini')
    script = ScriptDirectory.from_config(cfg)
    heads = set(script.get_heads())
    if not heads:
        raise RuntimeError('No alembic heads found in repository')

    with engine.connect() as conn:
        current = MigrationContext.configure(conn).get_current_revision()

    if current is None:
        raise RuntimeError('No migration version in DB (run alembic upgrade head)')
    if current not in heads:
        raise RuntimeError(f'DB revision {current} is not at head {sorted(heads)}')
    return f'current={current}'


def check_tables_present():
    existing = set(inspect(engine).get_table_names())
    missing = sorted(EXPECTED_TABLES - existing)
    if missing:
        raise RuntimeError(f'Missing tables: {missing}')
    return f'{len(EXPECTED_TABLES)} tables'


def check_required_env():
    required = {
        'DATABASE_URL': settings.database_url,
        'AUTH_SECRET': settings.auth_secret,
        'UPLOAD_ROOT': settings.upload_root,
    }
    missing = [key for key, value in required.items() if not str(value).strip()]
    if missing:
        raise RuntimeError(f'Missing env vars: {", ".join(missing)}')
    if settings.auth_secret == 'change-me' and settings.app_env != 'local':
        raise RuntimeError('AUTH_SECRET still has the default value')
    return 'all required vars present'


def check_upload_storage_writable():
    storage = FileStorage()
    storage.ensure_directories()
    stored = storage.save(
        b'probe',
        original_name='healthcheck.txt',
        mime_type='text/plain',
        subdir=FOLDER_UPLOAD_SUBDIR,
    )
    storage.delete(stored.path)
    if storage.exists(stored.path):
        raise RuntimeError(f'Probe file {stored.path} was not removed')
    return f'root={storage.root}'


def check_session_token_roundtrip_and_expiry():
    probe = AuthUser(id=1, name='healthcheck', email='healthcheck@local', role=Role.TEACHER.value)
    token = create_session_token(probe)
    session = validate_session_token(token)
    if not session or session.get('user_id') != 1:
        raise RuntimeError('Fresh session token did not validate')

    later = _ShiftedTimeProvider(timedelta(hours=settings.auth_session_expiry_hours + 1))
    if validate_session_token(token, time_provider=later) is not None:
        raise RuntimeError('Expired session token unexpectedly validated')
    return 'sign/validate/expiry checks ok'


def check_time_grid():
    now = default_time_provider.now()
    current = current_period(now)
    upcoming = next_period(now)
    return (
        f'slots={len(TIME_SLOTS)} '
        f'current={current.key if current else "-"} '
        f'next={upcoming.key if upcoming else "-"}'
    )


def check_api_health():
    res = httpx.get(f'{settings.app_base_url.rstrip("/")}/health', timeout=8)
    if res.status_code != 200:
        raise RuntimeError(f'HTTP {res.status_code} from /health')
    payload = res.json()
    if payload.get('status') != 'ok':
        raise RuntimeError(f'API responded not ok: {payload}')
    return 'GET /health ok'


def main():
    checks = [
        ('Database connectivity and write access', check_db_connectivity_and_write),
        ('Alembic migration status at head', check_alembic_head),
        ('Schema tables present', check_tables_present),
        ('Required environment variables present', check_required_env),
        ('Upload storage writable', check_upload_storage_writable),
        ('Session token signing and expiry working', check_session_token_roundtrip_and_expiry),
        ('Time grid resolves current period', check_time_grid),
        ('API reachable', check_api_health),
    ]

    all_ok = True
    for name, fn in checks:
        all_ok = run_check(name, fn) and all_ok

    if not all_ok:
        sys.exit(1)
    sys.exit(0)


if __name__ == '__main__':
    main()
