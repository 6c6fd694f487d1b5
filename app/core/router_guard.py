from __future__ import annotations

from fastapi import HTTPException, Request

from app.core.errors import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from app.models import Role
from app.services import auth_service


def _resolve_token(request: Request) -> str | None:
    token = request.cookies.get('auth_session')
    if token:
        return token
    authorization = request.headers.get('authorization', '')
    if authorization.lower().startswith('bearer '):
        return authorization[7:].strip()
    return None


def require_auth_user(request: Request) -> dict:
    session = auth_service.validate_session_token(_resolve_token(request))
    if not session:
        raise HTTPException(status_code=401, detail='Unauthorized')
    user_id = int(session.get('user_id') or 0)
    if user_id <= 0:
        raise HTTPException(status_code=401, detail='Unauthorized')
    return {
        'user_id': user_id,
        'role': str(session.get('role') or '').strip().lower(),
        'name': str(session.get('name') or ''),
    }


def require_principal(request: Request) -> dict:
    user = require_auth_user(request)
    if user['role'] != Role.PRINCIPAL.value:
        raise HTTPException(status_code=403, detail='Principal access required')
    return user


def is_principal(user: dict) -> bool:
    return user.get('role') == Role.PRINCIPAL.value


def to_http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc) or 'Not found')
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, AccessDeniedError):
        return HTTPException(status_code=403, detail=str(exc) or 'Forbidden')
    return HTTPException(status_code=500, detail='Server error')
