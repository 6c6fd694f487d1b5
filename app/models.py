from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class Role(str, Enum):
    PRINCIPAL = 'principal'
    TEACHER = 'teacher'


class Weekday(str, Enum):
    MONDAY = 'monday'
    TUESDAY = 'tuesday'
    WEDNESDAY = 'wednesday'
    THURSDAY = 'thursday'
    FRIDAY = 'friday'


class Period(str, Enum):
    PERIOD1 = 'period1'
    PERIOD2 = 'period2'
    PERIOD3 = 'period3'
    PERIOD4 = 'period4'
    PERIOD5 = 'period5'
    PERIOD6 = 'period6'
    PERIOD7 = 'period7'
    PERIOD8 = 'period8'
    PERIOD9 = 'period9'


class FolderCategory(str, Enum):
    MATERIAL = 'material'
    ADMINISTRATION = 'administration'
    EVENT = 'event'
    OTHER = 'other'


class RecentAccessKind(str, Enum):
    FOLDER = 'folder'
    FILE = 'file'


class AuthUser(Base):
    __tablename__ = 'auth_users'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120))
    nip: Mapped[str] = mapped_column(String(40), default='', index=True)
    email: Mapped[str] = mapped_column(String(180), unique=True, index=True)
    role: Mapped[str] = mapped_column(String(20), default=Role.TEACHER.value, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ScheduleEntry(Base):
    __tablename__ = 'schedule_entries'
    __table_args__ = (
        UniqueConstraint('teacher_id', 'day', 'period', name='uq_schedule_entries_teacher_slot'),
        Index('ix_schedule_entries_published_teacher', 'is_published', 'teacher_id'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey('auth_users.id'), index=True)
    teacher_name: Mapped[str] = mapped_column(String(120), default='')
    day: Mapped[str] = mapped_column(String(12), index=True)
    period: Mapped[str] = mapped_column(String(12), index=True)
    time_display: Mapped[str] = mapped_column(String(20), default='')
    subject: Mapped[str] = mapped_column(String(120))
    class_name: Mapped[str] = mapped_column(String(60))
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_by: Mapped[int] = mapped_column(ForeignKey('auth_users.id'), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    teacher: Mapped['AuthUser'] = relationship('AuthUser', foreign_keys=[teacher_id])


class Folder(Base):
    __tablename__ = 'folders'
    __table_args__ = (
        UniqueConstraint('teacher_id', 'category', name='uq_folders_teacher_category'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    teacher_id: Mapped[int] = mapped_column(ForeignKey('auth_users.id'), index=True)
    teacher_name: Mapped[str] = mapped_column(String(120), default='')
    category: Mapped[str] = mapped_column(String(20), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, index=True)

    files: Mapped[list['FolderFile']] = relationship(
        'FolderFile',
        back_populates='folder',
        order_by='FolderFile.id',
        cascade='all, delete-orphan',
    )


class FolderFile(Base):
    __tablename__ = 'folder_files'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    folder_id: Mapped[int] = mapped_column(ForeignKey('folders.id'), index=True)
    file_name: Mapped[str] = mapped_column(String(255))
    original_name: Mapped[str] = mapped_column(String(255))
    file_path: Mapped[str] = mapped_column(String(500))
    file_size: Mapped[int] = mapped_column(Integer, default=0)
    mime_type: Mapped[str] = mapped_column(String(120), default='application/octet-stream')
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    folder: Mapped['Folder'] = relationship('Folder', back_populates='files')


class ActiveRecordMixin:
    """Columns the single-active-record policy operates on."""

    kind: Mapped[str] = mapped_column(String(40), index=True)
    scope_key: Mapped[str] = mapped_column(String(80), default='global', index=True)
    file_name: Mapped[str] = mapped_column(String(255))
    file_path: Mapped[str] = mapped_column(String(500))
    file_size: Mapped[int] = mapped_column(Integer, default=0)
    mime_type: Mapped[str] = mapped_column(String(120), default='application/octet-stream')
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    storage_reclaimed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CalendarImage(ActiveRecordMixin, Base):
    __tablename__ = 'calendar_images'
    __table_args__ = (
        Index(
            'uq_calendar_images_active_scope',
            'kind',
            'scope_key',
            unique=True,
            sqlite_where=text('is_active = 1'),
            postgresql_where=text('is_active'),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    uploaded_by: Mapped[int] = mapped_column(ForeignKey('auth_users.id'), index=True)

    uploader: Mapped['AuthUser'] = relationship('AuthUser')


class RecentAccessEntry(Base):
    __tablename__ = 'recent_access_entries'
    __table_args__ = (
        Index('ix_recent_access_viewer_accessed', 'viewer_id', 'accessed_at'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    viewer_id: Mapped[int] = mapped_column(ForeignKey('auth_users.id'), index=True)
    kind: Mapped[str] = mapped_column(String(20), default=RecentAccessKind.FOLDER.value, index=True)
    teacher_id: Mapped[int] = mapped_column(Integer, index=True)
    teacher_name: Mapped[str] = mapped_column(String(120), default='')
    folder_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    category: Mapped[str] = mapped_column(String(20), default='')
    display_name: Mapped[str] = mapped_column(String(255), default='')
    file_path: Mapped[str] = mapped_column(String(500), default='')
    accessed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
