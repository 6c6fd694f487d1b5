"""initial school administration schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = '20261018_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'auth_users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('nip', sa.String(length=40), nullable=False, server_default=''),
        sa.Column('email', sa.String(length=180), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='teacher'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_auth_users_id', 'auth_users', ['id'])
    op.create_index('ix_auth_users_nip', 'auth_users', ['nip'])
    op.create_index('ix_auth_users_email', 'auth_users', ['email'], unique=True)
    op.create_index('ix_auth_users_role', 'auth_users', ['role'])
    op.create_index('ix_auth_users_is_active', 'auth_users', ['is_active'])
    op.create_index('ix_auth_users_created_at', 'auth_users', ['created_at'])

    op.create_table(
        'schedule_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('teacher_id', sa.Integer(), nullable=False),
        sa.Column('teacher_name', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('day', sa.String(length=12), nullable=False),
        sa.Column('period', sa.String(length=12), nullable=False),
        sa.Column('time_display', sa.String(length=20), nullable=False, server_default=''),
        sa.Column('subject', sa.String(length=120), nullable=False),
        sa.Column('class_name', sa.String(length=60), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['teacher_id'], ['auth_users.id']),
        sa.ForeignKeyConstraint(['created_by'], ['auth_users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('teacher_id', 'day', 'period', name='uq_schedule_entries_teacher_slot'),
    )
    op.create_index('ix_schedule_entries_id', 'schedule_entries', ['id'])
    op.create_index('ix_schedule_entries_teacher_id', 'schedule_entries', ['teacher_id'])
    op.create_index('ix_schedule_entries_day', 'schedule_entries', ['day'])
    op.create_index('ix_schedule_entries_period', 'schedule_entries', ['period'])
    op.create_index('ix_schedule_entries_is_published', 'schedule_entries', ['is_published'])
    op.create_index('ix_schedule_entries_created_by', 'schedule_entries', ['created_by'])
    op.create_index('ix_schedule_entries_created_at', 'schedule_entries', ['created_at'])
    op.create_index('ix_schedule_entries_published_teacher', 'schedule_entries', ['is_published', 'teacher_id'])

    op.create_table(
        'folders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('teacher_id', sa.Integer(), nullable=False),
        sa.Column('teacher_name', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['teacher_id'], ['auth_users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('teacher_id', 'category', name='uq_folders_teacher_category'),
    )
    op.create_index('ix_folders_id', 'folders', ['id'])
    op.create_index('ix_folders_teacher_id', 'folders', ['teacher_id'])
    op.create_index('ix_folders_category', 'folders', ['category'])
    op.create_index('ix_folders_created_at', 'folders', ['created_at'])
    op.create_index('ix_folders_updated_at', 'folders', ['updated_at'])

    op.create_table(
        'folder_files',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('folder_id', sa.Integer(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('original_name', sa.String(length=255), nullable=False),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mime_type', sa.String(length=120), nullable=False, server_default='application/octet-stream'),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['folder_id'], ['folders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_folder_files_id', 'folder_files', ['id'])
    op.create_index('ix_folder_files_folder_id', 'folder_files', ['folder_id'])
    op.create_index('ix_folder_files_uploaded_at', 'folder_files', ['uploaded_at'])

    op.create_table(
        'calendar_images',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=40), nullable=False),
        sa.Column('scope_key', sa.String(length=80), nullable=False, server_default='global'),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mime_type', sa.String(length=120), nullable=False, server_default='application/octet-stream'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('storage_reclaimed_at', sa.DateTime(), nullable=True),
        sa.Column('uploaded_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['uploaded_by'], ['auth_users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_calendar_images_id', 'calendar_images', ['id'])
    op.create_index('ix_calendar_images_kind', 'calendar_images', ['kind'])
    op.create_index('ix_calendar_images_scope_key', 'calendar_images', ['scope_key'])
    op.create_index('ix_calendar_images_is_active', 'calendar_images', ['is_active'])
    op.create_index('ix_calendar_images_uploaded_by', 'calendar_images', ['uploaded_by'])
    op.create_index('ix_calendar_images_created_at', 'calendar_images', ['created_at'])
    op.create_index(
        'uq_calendar_images_active_scope',
        'calendar_images',
        ['kind', 'scope_key'],
        unique=True,
        sqlite_where=sa.text('is_active = 1'),
        postgresql_where=sa.text('is_active'),
    )

    op.create_table(
        'recent_access_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('viewer_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False, server_default='folder'),
        sa.Column('teacher_id', sa.Integer(), nullable=False),
        sa.Column('teacher_name', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('folder_id', sa.Integer(), nullable=True),
        sa.Column('file_id', sa.Integer(), nullable=True),
        sa.Column('category', sa.String(length=20), nullable=False, server_default=''),
        sa.Column('display_name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('file_path', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('accessed_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['viewer_id'], ['auth_users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_recent_access_entries_id', 'recent_access_entries', ['id'])
    op.create_index('ix_recent_access_entries_viewer_id', 'recent_access_entries', ['viewer_id'])
    op.create_index('ix_recent_access_entries_kind', 'recent_access_entries', ['kind'])
    op.create_index('ix_recent_access_entries_teacher_id', 'recent_access_entries', ['teacher_id'])
    op.create_index('ix_recent_access_entries_accessed_at', 'recent_access_entries', ['accessed_at'])
    op.create_index('ix_recent_access_viewer_accessed', 'recent_access_entries', ['viewer_id', 'accessed_at'])


def downgrade() -> None:
    op.drop_index('ix_recent_access_viewer_accessed', table_name='recent_access_entries')
    op.drop_table('recent_access_entries')

    op.drop_index('uq_calendar_images_active_scope', table_name='calendar_images')
    op.drop_table('calendar_images')

    op.drop_table('folder_files')
    op.drop_table('folders')

    op.drop_index('ix_schedule_entries_published_teacher', table_name='schedule_entries')
    op.drop_table('schedule_entries')

    op.drop_table('auth_users')
