import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest import mock

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.cache import CacheManager, MemoryCacheBackend, cache
from app.core.time_provider import APP_ZONEINFO, TimeProvider
from app.db import Base, get_db
from app.models import AuthUser, Role, ScheduleEntry
from app.routers import schedules as schedules_router
from app.services.auth_service import create_session_token
from app.services import schedule_service
from app.services.schedule_service import SCHEDULE_CACHE_PREFIX, ScheduleStore


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


class SchedulesApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_schedules_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        app.include_router(schedules_router.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        cache.invalidate_prefix(SCHEDULE_CACHE_PREFIX)
        db = self._session_factory()
        try:
            db.query(ScheduleEntry).delete()
            db.query(AuthUser).delete()
            principal = AuthUser(name='Principal', email='principal@school.test', role=Role.PRINCIPAL.value)
            teacher_a = AuthUser(name='Ani', nip='1001', email='ani@school.test', role=Role.TEACHER.value)
            teacher_b = AuthUser(name='Budi', nip='1002', email='budi@school.test', role=Role.TEACHER.value)
            db.add_all([principal, teacher_a, teacher_b])
            db.commit()
            self.teacher_a_id = teacher_a.id
            self.teacher_b_id = teacher_b.id
            self.principal_headers = {'Authorization': f'Bearer {create_session_token(principal)}'}
            self.teacher_a_headers = {'Authorization': f'Bearer {create_session_token(teacher_a)}'}
        finally:
            db.close()

    def _create(self, teacher_id, day='monday', period='period1', subject='Math', class_name='7A'):
        return self.client.post(
            '/api/schedules',
            json={'teacher_id': teacher_id, 'day': day, 'period': period, 'subject': subject, 'class': class_name},
            headers=self.principal_headers,
        )

    def test_requires_authentication(self):
        self.assertEqual(self.client.get('/api/schedules').status_code, 401)
        response = self.client.get('/api/schedules', headers={'Authorization': 'Bearer forged.token.value'})
        self.assertEqual(response.status_code, 401)

    def test_cookie_session_is_accepted(self):
        token = self.principal_headers['Authorization'].split(' ', 1)[1]
        self.client.cookies.set('auth_session', token)
        try:
            self.assertEqual(self.client.get('/api/schedules').status_code, 200)
        finally:
            self.client.cookies.clear()

    def test_teacher_cannot_create(self):
        response = self.client.post(
            '/api/schedules',
            json={'teacher_id': self.teacher_a_id, 'day': 'monday', 'period': 'period1', 'subject': 'Math', 'class': '7A'},
            headers=self.teacher_a_headers,
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['detail'], 'Principal access required')

    def test_create_conflict_and_validation(self):
        created = self._create(self.teacher_a_id)
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()['schedule']['class'], '7A')
        self.assertFalse(created.json()['schedule']['is_published'])

        conflict = self._create(self.teacher_a_id, subject='Physics')
        self.assertEqual(conflict.status_code, 409)
        self.assertIn('Schedule conflict', conflict.json()['detail'])

        self.assertEqual(self._create(self.teacher_a_id, day='sunday').status_code, 400)
        self.assertEqual(self._create(9999).status_code, 404)

    def test_publish_controls_teacher_visibility(self):
        self._create(self.teacher_a_id, period='period9')
        self._create(self.teacher_a_id, period='period2')
        self._create(self.teacher_b_id, period='period1')

        before = self.client.get('/api/schedules', headers=self.teacher_a_headers).json()
        self.assertEqual(before['schedules']['monday'], [])

        published = self.client.post('/api/schedules/publish', headers=self.principal_headers)
        self.assertEqual(published.json()['published'], 3)
        again = self.client.post('/api/schedules/publish', headers=self.principal_headers)
        self.assertEqual(again.json()['published'], 0)

        after = self.client.get('/api/schedules', headers=self.teacher_a_headers).json()
        self.assertEqual([item['period'] for item in after['schedules']['monday']], ['period2', 'period9'])
        self.assertEqual(after['time_periods']['recess1'], '09:40 - 10:10')

    def test_principal_sees_drafts_on_request(self):
        self._create(self.teacher_a_id)
        published_only = self.client.get('/api/schedules', headers=self.principal_headers).json()
        self.assertEqual(published_only['schedules']['monday'], [])
        drafts = self.client.get(
            '/api/schedules',
            params={'include_unpublished': 'true', 'teacher_id': self.teacher_a_id},
            headers=self.principal_headers,
        ).json()
        self.assertEqual(len(drafts['schedules']['monday']), 1)

    def test_update_and_delete(self):
        entry_id = self._create(self.teacher_a_id, period='period1').json()['schedule']['id']
        self._create(self.teacher_a_id, period='period2')

        conflict = self.client.put(
            f'/api/schedules/{entry_id}',
            json={'day': 'monday', 'period': 'period2', 'subject': 'Math', 'class': '7A'},
            headers=self.principal_headers,
        )
        self.assertEqual(conflict.status_code, 409)

        moved = self.client.put(
            f'/api/schedules/{entry_id}',
            json={'day': 'thursday', 'period': 'period4', 'subject': 'Math', 'class': '7B'},
            headers=self.principal_headers,
        )
        self.assertEqual(moved.status_code, 200)
        self.assertEqual(moved.json()['schedule']['time'], '10:10 - 10:45')

        self.assertEqual(self.client.delete(f'/api/schedules/{entry_id}', headers=self.principal_headers).status_code, 200)
        self.assertEqual(self.client.delete(f'/api/schedules/{entry_id}', headers=self.principal_headers).status_code, 404)

    def test_listing_cache_is_invalidated_by_writes(self):
        self._create(self.teacher_a_id)
        self.client.post('/api/schedules/publish', headers=self.principal_headers)
        first = self.client.get('/api/schedules', headers=self.teacher_a_headers).json()
        self.assertEqual(len(first['schedules']['monday']), 1)

        self._create(self.teacher_a_id, period='period3')
        self.client.post('/api/schedules/publish', headers=self.principal_headers)
        second = self.client.get('/api/schedules', headers=self.teacher_a_headers).json()
        self.assertEqual(len(second['schedules']['monday']), 2)

    def test_listing_reflects_writes_made_by_another_worker(self):
        entry_id = self._create(self.teacher_a_id).json()['schedule']['id']
        before = self.client.get('/api/schedules', headers=self.teacher_a_headers).json()
        self.assertEqual(before['schedules']['monday'], [])

        other_worker_cache = CacheManager(backend=MemoryCacheBackend())
        db = self._session_factory()
        try:
            with mock.patch.object(schedule_service, 'cache', other_worker_cache):
                self.assertEqual(ScheduleStore(db).publish_all(), 1)
        finally:
            db.close()

        after_publish = self.client.get('/api/schedules', headers=self.teacher_a_headers).json()
        self.assertEqual([item['id'] for item in after_publish['schedules']['monday']], [entry_id])

        db = self._session_factory()
        try:
            with mock.patch.object(schedule_service, 'cache', other_worker_cache):
                ScheduleStore(db).delete_entry(entry_id)
        finally:
            db.close()

        after_delete = self.client.get('/api/schedules', headers=self.teacher_a_headers).json()
        self.assertEqual(after_delete['schedules']['monday'], [])

    def test_teachers_listing(self):
        response = self.client.get('/api/schedules/teachers', headers=self.principal_headers)
        self.assertEqual([row['name'] for row in response.json()['teachers']], ['Ani', 'Budi'])
        self.assertEqual(self.client.get('/api/schedules/teachers', headers=self.teacher_a_headers).status_code, 403)

    def test_table_and_csv_download(self):
        self._create(self.teacher_a_id, day='tuesday', period='period2', subject='Biology', class_name='8A')
        self.client.post('/api/schedules/publish', headers=self.principal_headers)

        table = self.client.get('/api/schedules/table', headers=self.teacher_a_headers).json()
        self.assertEqual(table['rows'][1]['Tuesday'], 'Biology (8A)')
        self.assertEqual(table['rows'][3]['Monday'], 'Recess I')

        download = self.client.get('/api/schedules/download', headers=self.teacher_a_headers)
        self.assertEqual(download.status_code, 200)
        self.assertTrue(download.headers['content-type'].startswith('text/csv'))
        self.assertIn('schedules.csv', download.headers['content-disposition'])
        self.assertIn('"Biology (8A)"', download.text)

    def test_time_periods_reports_current_and_next(self):
        clock = FixedTimeProvider(datetime(2026, 10, 19, 10, 20, tzinfo=APP_ZONEINFO))
        with mock.patch.object(schedules_router, 'default_time_provider', clock):
            response = self.client.get('/api/schedules/time-periods', headers=self.teacher_a_headers)
        payload = response.json()
        self.assertEqual(len(payload['time_periods']), 11)
        self.assertEqual(payload['current_period']['key'], 'period4')
        self.assertEqual(payload['next_period']['key'], 'period5')


if __name__ == '__main__':
    unittest.main()
