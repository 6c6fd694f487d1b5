from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from datetime import timedelta

from app.config import settings
from app.core.time_provider import TimeProvider, default_time_provider
from app.models import AuthUser, Role


logger = logging.getLogger(__name__)

_KNOWN_ROLES = {role.value for role in Role}


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b'=').decode('ascii')


def _b64url_decode(value: str) -> bytes:
    padding = '=' * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _sign(signing_input: bytes) -> bytes:
    return hmac.new(settings.auth_secret.encode('utf-8'), signing_input, hashlib.sha256).digest()


def _encode_jwt(payload: dict) -> str:
    header = {'alg': 'HS256', 'typ': 'JWT'}
    header_part = _b64url_encode(json.dumps(header, separators=(',', ':')).encode('utf-8'))
    payload_part = _b64url_encode(json.dumps(payload, separators=(',', ':')).encode('utf-8'))
    signature_part = _b64url_encode(_sign(f'{header_part}.{payload_part}'.encode('ascii')))
    return f'{header_part}.{payload_part}.{signature_part}'


def _decode_jwt(token: str) -> dict | None:
    try:
        header_part, payload_part, signature_part = token.split('.')
        provided_signature = _b64url_decode(signature_part)
    except ValueError:
        return None

    expected_signature = _sign(f'{header_part}.{payload_part}'.encode('ascii'))
    if not hmac.compare_digest(provided_signature, expected_signature):
        return None

    try:
        payload = json.loads(_b64url_decode(payload_part).decode('utf-8'))
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def create_session_token(user: AuthUser, *, time_provider: TimeProvider = default_time_provider) -> str:
    """Signed identity for an already-authenticated user (tooling and tests)."""
    expires_at = time_provider.now() + timedelta(hours=settings.auth_session_expiry_hours)
    return _encode_jwt(
        {
            'sub': user.id,
            'role': user.role,
            'name': user.name,
            'exp': int(expires_at.timestamp()),
        }
    )


def validate_session_token(
    token: str | None,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict | None:
    if not token:
        return None
    payload = _decode_jwt(token)
    if not payload:
        return None

    role = str(payload.get('role') or '').strip().lower()
    user_id = payload.get('sub')
    if role not in _KNOWN_ROLES or user_id is None:
        return None
    expires_at = int(payload.get('exp') or 0)
    if expires_at and expires_at <= int(time_provider.now().timestamp()):
        logger.info('session_token_expired', extra={'user_id': user_id})
        return None

    return {
        'user_id': int(user_id),
        'role': role,
        'name': str(payload.get('name') or ''),
    }
