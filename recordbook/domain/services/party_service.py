from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recordbook.core.errors import ConflictError, NotFoundError, ValidationError
from recordbook.domain.services.collection_service import require_admin
from recordbook.models import Collection, Record, Student, Teacher


logger = logging.getLogger(__name__)


def find_student_by_card(db: Session, *, collection_code: str, student_card_code: str) -> Student | None:
    return (
        db.query(Student)
        .filter(
            Student.collection_code == collection_code,
            Student.student_card_code == (student_card_code or '').strip(),
        )
        .first()
    )


def list_students(db: Session, collection_code: str) -> list[Student]:
    return (
        db.query(Student)
        .filter(Student.collection_code == collection_code)
        .order_by(Student.grade.asc(), Student.klass.asc(), Student.number.asc(), Student.id.asc())
        .all()
    )


def list_teachers(db: Session, collection_code: str) -> list[Teacher]:
    return (
        db.query(Teacher)
        .filter(Teacher.collection_code == collection_code)
        .order_by(Teacher.created_at.desc(), Teacher.id.desc())
        .all()
    )


def ensure_subject_records(db: Session, *, collection: Collection, student: Student) -> int:
    """Create an empty record (no revisions) for every subject the student lacks."""
    existing = {
        subject
        for (subject,) in db.query(Record.subject).filter(
            Record.collection_code == collection.code,
            Record.student_id == student.id,
        )
    }
    created = 0
    for subject in collection.subject_names:
        if subject in existing:
            continue
        db.add(Record(collection_code=collection.code, student_id=student.id, subject=subject, content=''))
        created += 1
    if created:
        db.flush()
    return created


def serialize_student(student: Student) -> dict:
    return {
        'id': student.id,
        'collection_code': student.collection_code,
        'grade': student.grade,
        'klass': student.klass,
        'number': student.number,
        'name': student.name,
        'student_card_code': student.student_card_code,
    }


def serialize_teacher(teacher: Teacher) -> dict:
    return {
        'id': teacher.id,
        'collection_code': teacher.collection_code,
        'teacher_id': teacher.teacher_id,
        'name': teacher.name,
        'created_at': teacher.created_at.isoformat() if teacher.created_at else None,
    }


def add_student(
    db: Session,
    *,
    code: str,
    admin_key: str | None,
    name: str,
    student_card_code: str,
    grade: int | None = None,
    klass: int | None = None,
    number: int | None = None,
) -> Student:
    collection = require_admin(db, code=code, admin_key=admin_key)
    clean_name = (name or '').strip()
    clean_card = (student_card_code or '').strip()
    if not clean_name or not clean_card:
        raise ValidationError('name and student_card_code are required')
    if find_student_by_card(db, collection_code=collection.code, student_card_code=clean_card):
        raise ConflictError(f'Student card code already registered: {clean_card}')

    student = Student(
        collection_code=collection.code,
        grade=grade,
        klass=klass,
        number=number,
        name=clean_name,
        student_card_code=clean_card,
    )
    db.add(student)
    try:
        db.flush()
        ensure_subject_records(db, collection=collection, student=student)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(f'Student card code already registered: {clean_card}') from exc
    db.refresh(student)
    logger.info('student_added code=%s student_id=%s', collection.code, student.id)
    return student


def delete_student(db: Session, *, code: str, admin_key: str | None, student_id: int) -> None:
    collection = require_admin(db, code=code, admin_key=admin_key)
    student = (
        db.query(Student)
        .filter(Student.id == student_id, Student.collection_code == collection.code)
        .first()
    )
    if not student:
        raise NotFoundError('Student not found')
    record_count = len(student.records)
    # Records, their revisions and visibility marks go with the student.
    db.delete(student)
    db.commit()
    logger.info(
        'student_deleted code=%s student_id=%s records_removed=%s',
        collection.code,
        student_id,
        record_count,
    )


def add_teacher(db: Session, *, code: str, admin_key: str | None, teacher_id: str, name: str = '') -> Teacher:
    collection = require_admin(db, code=code, admin_key=admin_key)
    clean_id = (teacher_id or '').strip()
    if not clean_id:
        raise ValidationError('teacher_id is required')
    exists = (
        db.query(Teacher.id)
        .filter(Teacher.collection_code == collection.code, Teacher.teacher_id == clean_id)
        .first()
    )
    if exists:
        raise ConflictError(f'Teacher already registered: {clean_id}')

    teacher = Teacher(collection_code=collection.code, teacher_id=clean_id, name=(name or '').strip())
    db.add(teacher)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(f'Teacher already registered: {clean_id}') from exc
    db.refresh(teacher)
    logger.info('teacher_added code=%s teacher_id=%s', collection.code, clean_id)
    return teacher


def delete_teacher(db: Session, *, code: str, admin_key: str | None, teacher_pk: int) -> None:
    collection = require_admin(db, code=code, admin_key=admin_key)
    teacher = (
        db.query(Teacher)
        .filter(Teacher.id == teacher_pk, Teacher.collection_code == collection.code)
        .first()
    )
    if not teacher:
        raise NotFoundError('Teacher not found')
    db.delete(teacher)
    db.commit()
    logger.info('teacher_deleted code=%s teacher_pk=%s', collection.code, teacher_pk)


def collection_overview(db: Session, *, code: str, admin_key: str | None) -> dict:
    collection = require_admin(db, code=code, admin_key=admin_key)
    return {
        'code': collection.code,
        'name': collection.name,
        'subjects': collection.subject_names,
        'students': [serialize_student(row) for row in list_students(db, collection.code)],
        'teachers': [serialize_teacher(row) for row in list_teachers(db, collection.code)],
    }
