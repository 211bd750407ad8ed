from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recordbook.core.time_provider import default_time_provider
from recordbook.db import Base


def _now() -> datetime:
    return default_time_provider.naive_now()


class ViewerType(str, Enum):
    STUDENT = 'student'
    TEACHER = 'teacher'


class Collection(Base):
    __tablename__ = 'collections'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    code: Mapped[str] = mapped_column(String(80), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200))
    admin_key_hash: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    subjects: Mapped[list['CollectionSubject']] = relationship(
        'CollectionSubject',
        back_populates='collection',
        cascade='all, delete-orphan',
        order_by='CollectionSubject.id.asc()',
    )

    @property
    def subject_names(self) -> list[str]:
        return [row.name for row in self.subjects]


class CollectionSubject(Base):
    __tablename__ = 'collection_subjects'
    __table_args__ = (
        UniqueConstraint('collection_id', 'name', name='uq_collection_subject_collection_name'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    collection_id: Mapped[int] = mapped_column(ForeignKey('collections.id', ondelete='CASCADE'), index=True)
    name: Mapped[str] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    collection: Mapped['Collection'] = relationship('Collection', back_populates='subjects')


class Student(Base):
    __tablename__ = 'students'
    __table_args__ = (
        UniqueConstraint('collection_code', 'student_card_code', name='uq_student_collection_card'),
        Index('ix_students_collection_grade_klass_number', 'collection_code', 'grade', 'klass', 'number'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    collection_code: Mapped[str] = mapped_column(ForeignKey('collections.code'), index=True)
    grade: Mapped[int | None] = mapped_column(Integer, nullable=True)
    klass: Mapped[int | None] = mapped_column(Integer, nullable=True)
    number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(String(120))
    student_card_code: Mapped[str] = mapped_column(String(80), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, onupdate=_now)

    records: Mapped[list['Record']] = relationship(
        'Record',
        back_populates='student',
        cascade='all, delete-orphan',
    )


class Teacher(Base):
    __tablename__ = 'teachers'
    __table_args__ = (
        UniqueConstraint('collection_code', 'teacher_id', name='uq_teacher_collection_teacher_id'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    collection_code: Mapped[str] = mapped_column(ForeignKey('collections.code'), index=True)
    teacher_id: Mapped[str] = mapped_column(String(80), index=True)
    name: Mapped[str] = mapped_column(String(120), default='')
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now, index=True)


class Record(Base):
    __tablename__ = 'records'
    __table_args__ = (
        UniqueConstraint('collection_code', 'student_id', 'subject', name='uq_record_collection_student_subject'),
        Index('ix_records_collection_updated', 'collection_code', 'updated_at'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    collection_code: Mapped[str] = mapped_column(ForeignKey('collections.code'), index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    subject: Mapped[str] = mapped_column(String(120), index=True)
    content: Mapped[str] = mapped_column(Text, default='')
    lock_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_now, index=True)

    student: Mapped['Student'] = relationship('Student', back_populates='records')
    revisions: Mapped[list['RecordRevision']] = relationship(
        'RecordRevision',
        back_populates='record',
        cascade='all, delete-orphan',
        order_by='RecordRevision.version.asc()',
    )
    seen_marks: Mapped[list['RecordSeen']] = relationship(
        'RecordSeen',
        back_populates='record',
        cascade='all, delete-orphan',
    )

    __mapper_args__ = {'version_id_col': lock_version}

    @property
    def revision_count(self) -> int:
        return len(self.revisions)


class RecordRevision(Base):
    __tablename__ = 'record_revisions'
    __table_args__ = (
        UniqueConstraint('record_id', 'version', name='uq_record_revision_record_version'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    record_id: Mapped[int] = mapped_column(ForeignKey('records.id', ondelete='CASCADE'), index=True)
    version: Mapped[int] = mapped_column(Integer)
    diff_text: Mapped[str] = mapped_column(Text, default='')
    note: Mapped[str] = mapped_column(Text, default='')
    modified_by: Mapped[str] = mapped_column(String(120), default='unknown')
    modified_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    record: Mapped['Record'] = relationship('Record', back_populates='revisions')


class RecordSeen(Base):
    __tablename__ = 'record_seen'
    __table_args__ = (
        UniqueConstraint('record_id', 'viewer_type', 'viewer_key', name='uq_record_seen_record_viewer'),
        Index('ix_record_seen_viewer', 'viewer_type', 'viewer_key'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    record_id: Mapped[int] = mapped_column(ForeignKey('records.id', ondelete='CASCADE'), index=True)
    viewer_type: Mapped[str] = mapped_column(String(20))  # student|teacher
    viewer_key: Mapped[str] = mapped_column(String(80))
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, default=_now)

    record: Mapped['Record'] = relationship('Record', back_populates='seen_marks')
