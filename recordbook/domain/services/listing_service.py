from __future__ import annotations

from sqlalchemy.orm import Session, joinedload

from recordbook.core.errors import NotFoundError, ValidationError
from recordbook.core.time_provider import TimeProvider, default_time_provider
from recordbook.domain.services.collection_service import get_collection
from recordbook.domain.services.party_service import find_student_by_card
from recordbook.domain.services.record_service import get_record
from recordbook.domain.services.visibility_service import has_unseen, load_marks, mark_seen, normalize_viewer
from recordbook.models import Record, ViewerType


def list_records(db: Session, *, code: str, viewer_type: str | None, viewer_key: str | None) -> list[dict]:
    """Records in the viewer's scope, newest first, flagged when unseen by that viewer.

    A student sees their own records; a teacher sees the whole collection.
    Read only.
    """
    collection = get_collection(db, code)
    clean_type = (viewer_type or '').strip().lower()
    clean_key = (viewer_key or '').strip()
    if clean_type not in (ViewerType.STUDENT.value, ViewerType.TEACHER.value):
        raise ValidationError('viewer_type must be student or teacher')

    query = (
        db.query(Record)
        .options(joinedload(Record.student))
        .filter(Record.collection_code == collection.code)
    )
    if clean_type == ViewerType.STUDENT.value:
        student = find_student_by_card(db, collection_code=collection.code, student_card_code=clean_key)
        if not student:
            raise NotFoundError('Student not found in collection')
        query = query.filter(Record.student_id == student.id)

    records = query.order_by(Record.updated_at.desc(), Record.id.desc()).all()
    marks = {}
    if normalize_viewer(clean_type, clean_key) is not None:
        marks = load_marks(db, record_ids=[row.id for row in records], viewer_type=clean_type, viewer_key=clean_key)

    items = []
    for record in records:
        student = record.student
        items.append(
            {
                'id': record.id,
                'student_id': student.id,
                'grade': student.grade,
                'klass': student.klass,
                'number': student.number,
                'name': student.name,
                'student_card_code': student.student_card_code,
                'subject': record.subject,
                'updated_at': record.updated_at.isoformat() if record.updated_at else None,
                'unseen': has_unseen(record, marks.get(record.id), viewer_type=clean_type, viewer_key=clean_key),
            }
        )
    return items


def open_record(
    db: Session,
    *,
    record_id: int,
    viewer_type: str | None,
    viewer_key: str | None,
    time_provider: TimeProvider = default_time_provider,
) -> Record:
    record = get_record(db, record_id)
    mark_seen(
        db,
        record_id=record.id,
        viewer_type=viewer_type,
        viewer_key=viewer_key,
        time_provider=time_provider,
    )
    return get_record(db, record_id)
