from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from recordbook.config import settings
from recordbook.core.admin_key import hash_admin_key, normalize_admin_key, verify_admin_key
from recordbook.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from recordbook.models import Collection, CollectionSubject, Student, Teacher, ViewerType


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewerIdentity:
    collection_code: str
    viewer_type: str
    viewer_key: str
    display_name: str = ''


def _clean(value: str | None) -> str:
    return (value or '').strip()


def get_collection(db: Session, code: str | None) -> Collection:
    clean_code = _clean(code)
    row = (
        db.query(Collection)
        .options(selectinload(Collection.subjects))
        .filter(Collection.code == clean_code)
        .first()
    )
    if not row:
        raise NotFoundError(f'Collection not found: {clean_code}')
    return row


def create_collection(
    db: Session,
    *,
    code: str,
    name: str,
    admin_key: str,
    subjects: Iterable[str] = (),
) -> Collection:
    clean_code = _clean(code)
    clean_name = _clean(name)
    if not clean_code or not clean_name or not normalize_admin_key(admin_key):
        raise ValidationError('code, name and admin_key are required')

    if db.query(Collection.id).filter(Collection.code == clean_code).first():
        raise ConflictError(f'Collection code already exists: {clean_code}')

    row = Collection(code=clean_code, name=clean_name, admin_key_hash=hash_admin_key(admin_key))
    seen: set[str] = set()
    for subject in subjects:
        clean_subject = _clean(subject)
        if clean_subject and clean_subject not in seen:
            seen.add(clean_subject)
            row.subjects.append(CollectionSubject(name=clean_subject))
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(f'Collection code already exists: {clean_code}') from exc
    db.refresh(row)
    logger.info('collection_created code=%s subjects=%s', clean_code, len(seen))
    return row


def require_admin(db: Session, *, code: str, admin_key: str | None) -> Collection:
    collection = get_collection(db, code)
    if not verify_admin_key(admin_key, collection.admin_key_hash):
        logger.warning('admin_key_rejected code=%s', collection.code)
        raise ForbiddenError('Admin key does not match')
    return collection


def add_subject(db: Session, *, code: str, admin_key: str | None, subject: str) -> Collection:
    collection = require_admin(db, code=code, admin_key=admin_key)
    clean_subject = _clean(subject)
    if clean_subject and clean_subject not in collection.subject_names:
        collection.subjects.append(CollectionSubject(name=clean_subject))
        db.commit()
        db.refresh(collection)
        logger.info('collection_subject_added code=%s subject=%s', collection.code, clean_subject)
    return collection


def remove_subject(db: Session, *, code: str, admin_key: str | None, subject: str) -> Collection:
    collection = require_admin(db, code=code, admin_key=admin_key)
    clean_subject = _clean(subject)
    # Records of a removed subject keep their history.
    for row in list(collection.subjects):
        if row.name == clean_subject:
            collection.subjects.remove(row)
            db.commit()
            db.refresh(collection)
            logger.info('collection_subject_removed code=%s subject=%s', collection.code, clean_subject)
            break
    return collection


def join_as_student(db: Session, *, code: str, student_card_code: str | None) -> ViewerIdentity:
    collection = get_collection(db, code)
    card = _clean(student_card_code)
    if not card:
        raise ValidationError('student_card_code is required')
    student = (
        db.query(Student)
        .filter(Student.collection_code == collection.code, Student.student_card_code == card)
        .first()
    )
    if not student:
        raise NotFoundError('Student not found in collection')
    return ViewerIdentity(
        collection_code=collection.code,
        viewer_type=ViewerType.STUDENT.value,
        viewer_key=card,
        display_name=student.name,
    )


def join_as_teacher(db: Session, *, code: str, teacher_id: str | None) -> ViewerIdentity:
    collection = get_collection(db, code)
    clean_id = _clean(teacher_id)
    if not clean_id:
        raise ValidationError('teacher_id is required')
    teacher = (
        db.query(Teacher)
        .filter(Teacher.collection_code == collection.code, Teacher.teacher_id == clean_id)
        .first()
    )
    if not teacher and settings.require_registered_teachers:
        raise NotFoundError('Teacher not registered in collection')
    return ViewerIdentity(
        collection_code=collection.code,
        viewer_type=ViewerType.TEACHER.value,
        viewer_key=clean_id,
        display_name=teacher.name if teacher else '',
    )
