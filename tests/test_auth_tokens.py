import unittest
from datetime import datetime, timedelta

from app.core.time_provider import APP_ZONEINFO, TimeProvider
from app.models import AuthUser, Role
from app.services.auth_service import create_session_token, validate_session_token


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


class SessionTokenTests(unittest.TestCase):
    def setUp(self):
        self.issued_at = datetime(2026, 10, 19, 7, 0, tzinfo=APP_ZONEINFO)
        self.clock = FixedTimeProvider(self.issued_at)
        self.user = AuthUser(id=7, name='Ani', email='ani@school.test', role=Role.TEACHER.value)

    def test_roundtrip_identity(self):
        token = create_session_token(self.user, time_provider=self.clock)
        session = validate_session_token(token, time_provider=self.clock)
        self.assertEqual(session, {'user_id': 7, 'role': 'teacher', 'name': 'Ani'})

    def test_expired_token_rejected(self):
        token = create_session_token(self.user, time_provider=self.clock)
        later = FixedTimeProvider(self.issued_at + timedelta(hours=13))
        self.assertIsNone(validate_session_token(token, time_provider=later))

    def test_tampered_token_rejected(self):
        token = create_session_token(self.user, time_provider=self.clock)
        header, payload, signature = token.split('.')
        forged = create_session_token(
            AuthUser(id=7, name='Ani', email='ani@school.test', role=Role.PRINCIPAL.value),
            time_provider=self.clock,
        ).split('.')[1]
        self.assertIsNone(validate_session_token(f'{header}.{forged}.{signature}', time_provider=self.clock))

    def test_garbage_and_unknown_role_rejected(self):
        self.assertIsNone(validate_session_token(None))
        self.assertIsNone(validate_session_token('not-a-token'))
        self.assertIsNone(validate_session_token('a.b'))
        stranger = AuthUser(id=8, name='Parent', email='parent@school.test', role='parent')
        self.assertIsNone(validate_session_token(create_session_token(stranger, time_provider=self.clock), time_provider=self.clock))


if __name__ == '__main__':
    unittest.main()
