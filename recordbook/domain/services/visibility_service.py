from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recordbook.core.errors import NotFoundError
from recordbook.core.time_provider import TimeProvider, default_time_provider
from recordbook.models import Record, RecordSeen, ViewerType


logger = logging.getLogger(__name__)

VIEWER_TYPES = {item.value for item in ViewerType}


def normalize_viewer(viewer_type: str | None, viewer_key: str | None) -> tuple[str, str] | None:
    clean_type = (viewer_type or '').strip().lower()
    clean_key = (viewer_key or '').strip()
    if clean_type not in VIEWER_TYPES or not clean_key:
        return None
    return clean_type, clean_key


def _find_mark(db: Session, record_id: int, viewer_type: str, viewer_key: str) -> RecordSeen | None:
    return (
        db.query(RecordSeen)
        .filter(
            RecordSeen.record_id == record_id,
            RecordSeen.viewer_type == viewer_type,
            RecordSeen.viewer_key == viewer_key,
        )
        .first()
    )


def mark_seen(
    db: Session,
    *,
    record_id: int,
    viewer_type: str | None,
    viewer_key: str | None,
    time_provider: TimeProvider = default_time_provider,
) -> RecordSeen | None:
    viewer = normalize_viewer(viewer_type, viewer_key)
    if viewer is None:
        return None
    clean_type, clean_key = viewer
    now = time_provider.naive_now()

    mark = _find_mark(db, record_id, clean_type, clean_key)
    if mark is None:
        if not db.query(Record.id).filter(Record.id == record_id).first():
            raise NotFoundError(f'Record not found: {record_id}')
        mark = RecordSeen(record_id=record_id, viewer_type=clean_type, viewer_key=clean_key, last_seen_at=now)
        db.add(mark)
        try:
            db.commit()
            return mark
        except IntegrityError as exc:
            # Another request inserted the same viewer first; fall through to the update.
            db.rollback()
            logger.info('record_seen_insert_race record_id=%s viewer_type=%s', record_id, clean_type)
            mark = _find_mark(db, record_id, clean_type, clean_key)
            if mark is None:
                raise NotFoundError(f'Record not found: {record_id}') from exc

    if mark.last_seen_at is None or now > mark.last_seen_at:
        mark.last_seen_at = now
    db.commit()
    return mark


def has_unseen(record: Record, mark: RecordSeen | None, *, viewer_type: str | None, viewer_key: str | None) -> bool:
    if normalize_viewer(viewer_type, viewer_key) is None:
        return False
    if mark is None or mark.last_seen_at is None:
        return True
    return record.updated_at > mark.last_seen_at


def has_unseen_for(db: Session, record: Record, *, viewer_type: str | None, viewer_key: str | None) -> bool:
    viewer = normalize_viewer(viewer_type, viewer_key)
    if viewer is None:
        return False
    mark = _find_mark(db, record.id, *viewer)
    return has_unseen(record, mark, viewer_type=viewer[0], viewer_key=viewer[1])


def load_marks(db: Session, *, record_ids: Iterable[int], viewer_type: str, viewer_key: str) -> dict[int, RecordSeen]:
    ids = list(record_ids)
    if not ids:
        return {}
    rows = (
        db.query(RecordSeen)
        .filter(
            RecordSeen.record_id.in_(ids),
            RecordSeen.viewer_type == viewer_type,
            RecordSeen.viewer_key == viewer_key,
        )
        .all()
    )
    return {row.record_id: row for row in rows}
