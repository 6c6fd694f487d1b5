from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.db import Base, SessionLocal, engine
from app.models import AuthUser, Role
from app.services.bootstrap_service import run_bootstrap
from app.services.schedule_service import ScheduleStore


Base.metadata.create_all(bind=engine)

db = SessionLocal()
try:
    run_bootstrap(db)
    principal = db.query(AuthUser).filter(AuthUser.role == Role.PRINCIPAL.value).first()

    if principal and not db.query(AuthUser).filter(AuthUser.role == Role.TEACHER.value).first():
        teachers = [
            AuthUser(name='Ani Lestari', nip='198701012010012001', email='ani@school.local', role=Role.TEACHER.value),
            AuthUser(name='Budi Santoso', nip='198502022011011002', email='budi@school.local', role=Role.TEACHER.value),
            AuthUser(name='Citra Dewi', nip='199003032015032003', email='citra@school.local', role=Role.TEACHER.value),
        ]
        db.add_all(teachers)
        db.commit()

        store = ScheduleStore(db)
        sample = [
            (teachers[0], 'monday', 'period1', 'Mathematics', '7A'),
            (teachers[0], 'wednesday', 'period4', 'Mathematics', '8B'),
            (teachers[1], 'monday', 'period2', 'Biology', '9A'),
            (teachers[2], 'friday', 'period9', 'Art', '7C'),
        ]
        for teacher, day, period, subject, class_name in sample:
            store.create_entry(
                teacher_id=teacher.id,
                day=day,
                period=period,
                subject=subject,
                class_name=class_name,
                created_by=principal.id,
            )
        store.publish_all()
finally:
    db.close()

print('DB initialized with sample data.')
