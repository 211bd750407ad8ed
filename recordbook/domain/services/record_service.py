from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.orm.exc import StaleDataError

from recordbook.core.diff import build_patch, summarize_patch
from recordbook.core.errors import ConflictError, NotFoundError, ValidationError
from recordbook.core.time_provider import TimeProvider, default_time_provider
from recordbook.models import Collection, Record, RecordRevision, Student


logger = logging.getLogger(__name__)

INITIAL_REVISION_NOTE = 'initial creation'
UNKNOWN_EDITOR = 'unknown'


def _load_record(db: Session, record_id: int) -> Record | None:
    return (
        db.query(Record)
        .options(joinedload(Record.student), selectinload(Record.revisions))
        .filter(Record.id == record_id)
        .first()
    )


def get_record(db: Session, record_id: int) -> Record:
    record = _load_record(db, record_id)
    if not record:
        raise NotFoundError(f'Record not found: {record_id}')
    return record


def create_record(
    db: Session,
    *,
    collection_code: str,
    student_id: int,
    subject: str,
    initial_content: str,
    editor: str,
    time_provider: TimeProvider = default_time_provider,
) -> Record:
    clean_subject = (subject or '').strip()
    if not clean_subject:
        raise ValidationError('subject is required')
    collection = db.query(Collection).filter(Collection.code == (collection_code or '').strip()).first()
    if not collection:
        raise ValidationError('Unknown collection')
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student or student.collection_code != collection.code:
        raise ValidationError('Student does not belong to collection')

    exists = (
        db.query(Record.id)
        .filter(
            Record.collection_code == collection.code,
            Record.student_id == student.id,
            Record.subject == clean_subject,
        )
        .first()
    )
    if exists:
        raise ConflictError('Record already exists for student and subject')

    content = initial_content or ''
    now = time_provider.naive_now()
    record = Record(
        collection_code=collection.code,
        student_id=student.id,
        subject=clean_subject,
        content=content,
        created_at=now,
        updated_at=now,
    )
    record.revisions.append(
        RecordRevision(
            version=1,
            diff_text=build_patch('', content),
            note=INITIAL_REVISION_NOTE,
            modified_by=(editor or '').strip() or UNKNOWN_EDITOR,
            modified_at=now,
        )
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Record already exists for student and subject') from exc
    logger.info('record_created record_id=%s code=%s subject=%s', record.id, collection.code, clean_subject)
    return get_record(db, record.id)


def append_revision(
    db: Session,
    *,
    record_id: int,
    new_content: str | None,
    note: str | None,
    editor: str | None,
    expected_version: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> Record:
    """Append one revision and replace the content, all or nothing.

    Every call is an audit event, so an unchanged submission still appends a
    revision with an empty patch. ``expected_version`` is the revision count
    the caller last saw; a record that has moved on since raises
    ``ConflictError`` and the caller must reload before retrying.
    """
    record = get_record(db, record_id)
    current_version = len(record.revisions)
    if expected_version is not None and int(expected_version) != current_version:
        raise ConflictError(
            f'Record {record_id} is at version {current_version}, expected {expected_version}'
        )

    old_content = record.content or ''
    updated_content = new_content or ''
    now = time_provider.naive_now()
    revision = RecordRevision(
        version=current_version + 1,
        diff_text=build_patch(old_content, updated_content),
        note=note or '',
        modified_by=(editor or '').strip() or UNKNOWN_EDITOR,
        modified_at=now,
    )
    record.revisions.append(revision)
    record.content = updated_content
    record.updated_at = now
    try:
        db.commit()
    except (IntegrityError, StaleDataError) as exc:
        db.rollback()
        logger.warning('record_revision_conflict record_id=%s version=%s', record_id, revision.version)
        raise ConflictError(f'Record {record_id} was modified concurrently') from exc
    logger.info('record_revision_appended record_id=%s version=%s', record_id, revision.version)
    return get_record(db, record_id)


def submit_edit(
    db: Session,
    *,
    record_id: int,
    new_content: str | None,
    note: str | None,
    editor_name: str | None,
    expected_version: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> Record:
    return append_revision(
        db,
        record_id=record_id,
        new_content=new_content,
        note=note,
        editor=editor_name,
        expected_version=expected_version,
        time_provider=time_provider,
    )


def serialize_revision(revision: RecordRevision) -> dict:
    return {
        'version': revision.version,
        'diff_text': revision.diff_text,
        'note': revision.note,
        'modified_by': revision.modified_by,
        'modified_at': revision.modified_at.isoformat() if revision.modified_at else None,
        'changes': summarize_patch(revision.diff_text or ''),
    }


def serialize_record(record: Record) -> dict:
    student = record.student
    return {
        'id': record.id,
        'collection_code': record.collection_code,
        'subject': record.subject,
        'content': record.content,
        'version': len(record.revisions),
        'created_at': record.created_at.isoformat() if record.created_at else None,
        'updated_at': record.updated_at.isoformat() if record.updated_at else None,
        'student': {
            'id': student.id,
            'grade': student.grade,
            'klass': student.klass,
            'number': student.number,
            'name': student.name,
        } if student else None,
        'revisions': [serialize_revision(row) for row in record.revisions],
    }
