"""recordbook initial schema

Revision ID: 20261016_0001
Revises: 
Create Date: 2026-10-16 00:01:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261016_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'collections',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=80), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('admin_key_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_collections_id', 'collections', ['id'])
    op.create_index('ix_collections_code', 'collections', ['code'], unique=True)

    op.create_table(
        'collection_subjects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('collection_id', sa.Integer(), sa.ForeignKey('collections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('collection_id', 'name', name='uq_collection_subject_collection_name'),
    )
    op.create_index('ix_collection_subjects_id', 'collection_subjects', ['id'])
    op.create_index('ix_collection_subjects_collection_id', 'collection_subjects', ['collection_id'])

    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('collection_code', sa.String(length=80), sa.ForeignKey('collections.code'), nullable=False),
        sa.Column('grade', sa.Integer(), nullable=True),
        sa.Column('klass', sa.Integer(), nullable=True),
        sa.Column('number', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('student_card_code', sa.String(length=80), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('collection_code', 'student_card_code', name='uq_student_collection_card'),
    )
    op.create_index('ix_students_id', 'students', ['id'])
    op.create_index('ix_students_collection_code', 'students', ['collection_code'])
    op.create_index('ix_students_student_card_code', 'students', ['student_card_code'])
    op.create_index(
        'ix_students_collection_grade_klass_number',
        'students',
        ['collection_code', 'grade', 'klass', 'number'],
    )

    op.create_table(
        'teachers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('collection_code', sa.String(length=80), sa.ForeignKey('collections.code'), nullable=False),
        sa.Column('teacher_id', sa.String(length=80), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('collection_code', 'teacher_id', name='uq_teacher_collection_teacher_id'),
    )
    op.create_index('ix_teachers_id', 'teachers', ['id'])
    op.create_index('ix_teachers_collection_code', 'teachers', ['collection_code'])
    op.create_index('ix_teachers_teacher_id', 'teachers', ['teacher_id'])
    op.create_index('ix_teachers_created_at', 'teachers', ['created_at'])

    op.create_table(
        'records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('collection_code', sa.String(length=80), sa.ForeignKey('collections.code'), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject', sa.String(length=120), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('lock_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('collection_code', 'student_id', 'subject', name='uq_record_collection_student_subject'),
    )
    op.create_index('ix_records_id', 'records', ['id'])
    op.create_index('ix_records_collection_code', 'records', ['collection_code'])
    op.create_index('ix_records_student_id', 'records', ['student_id'])
    op.create_index('ix_records_subject', 'records', ['subject'])
    op.create_index('ix_records_updated_at', 'records', ['updated_at'])
    op.create_index('ix_records_collection_updated', 'records', ['collection_code', 'updated_at'])

    op.create_table(
        'record_revisions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('record_id', sa.Integer(), sa.ForeignKey('records.id', ondelete='CASCADE'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('diff_text', sa.Text(), nullable=False, server_default=''),
        sa.Column('note', sa.Text(), nullable=False, server_default=''),
        sa.Column('modified_by', sa.String(length=120), nullable=False, server_default='unknown'),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('record_id', 'version', name='uq_record_revision_record_version'),
    )
    op.create_index('ix_record_revisions_id', 'record_revisions', ['id'])
    op.create_index('ix_record_revisions_record_id', 'record_revisions', ['record_id'])

    op.create_table(
        'record_seen',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('record_id', sa.Integer(), sa.ForeignKey('records.id', ondelete='CASCADE'), nullable=False),
        sa.Column('viewer_type', sa.String(length=20), nullable=False),
        sa.Column('viewer_key', sa.String(length=80), nullable=False),
        sa.Column('last_seen_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('record_id', 'viewer_type', 'viewer_key', name='uq_record_seen_record_viewer'),
    )
    op.create_index('ix_record_seen_id', 'record_seen', ['id'])
    op.create_index('ix_record_seen_record_id', 'record_seen', ['record_id'])
    op.create_index('ix_record_seen_viewer', 'record_seen', ['viewer_type', 'viewer_key'])


def downgrade() -> None:
    op.drop_table('record_seen')
    op.drop_table('record_revisions')
    op.drop_table('records')
    op.drop_table('teachers')
    op.drop_table('students')
    op.drop_table('collection_subjects')
    op.drop_table('collections')
