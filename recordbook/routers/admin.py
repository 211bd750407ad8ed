import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session

from recordbook.core.errors import RecordbookError
from recordbook.core.router_guard import raise_http_error, resolve_admin_key
from recordbook.db import get_db
from recordbook.domain.services.collection_service import add_subject, remove_subject
from recordbook.domain.services.party_service import (
    add_student,
    add_teacher,
    collection_overview,
    delete_student,
    delete_teacher,
    serialize_student,
    serialize_teacher,
)
from recordbook.domain.services.roster_service import bulk_upsert_students, parse_roster_csv
from recordbook.route_logging import EndpointNameRoute
from recordbook.schemas import StudentCreateRequest, SubjectRequest, TeacherCreateRequest


router = APIRouter(prefix='/api/admin/{code}', tags=['Admin'], route_class=EndpointNameRoute)
logger = logging.getLogger(__name__)


def _admin_key(request: Request) -> str | None:
    return resolve_admin_key(request)


@router.get('')
def admin_overview(code: str, admin_key: str | None = Depends(_admin_key), db: Session = Depends(get_db)):
    try:
        return collection_overview(db, code=code, admin_key=admin_key)
    except RecordbookError as exc:
        raise_http_error(exc)


@router.post('/students', status_code=201)
def admin_add_student(
    code: str,
    payload: StudentCreateRequest,
    admin_key: str | None = Depends(_admin_key),
    db: Session = Depends(get_db),
):
    try:
        student = add_student(
            db,
            code=code,
            admin_key=admin_key,
            name=payload.name,
            student_card_code=payload.student_card_code,
            grade=payload.grade,
            klass=payload.klass,
            number=payload.number,
        )
    except RecordbookError as exc:
        raise_http_error(exc)
    return serialize_student(student)


@router.delete('/students/{student_id}')
def admin_delete_student(
    code: str,
    student_id: int,
    admin_key: str | None = Depends(_admin_key),
    db: Session = Depends(get_db),
):
    try:
        delete_student(db, code=code, admin_key=admin_key, student_id=student_id)
    except RecordbookError as exc:
        raise_http_error(exc)
    return {'ok': True}


@router.post('/students/upload')
async def admin_upload_roster(
    code: str,
    csv_file: UploadFile = File(..., alias='csv'),
    admin_key: str | None = Depends(_admin_key),
    db: Session = Depends(get_db),
):
    file_bytes = await csv_file.read()
    try:
        rows = parse_roster_csv(file_bytes)
        result = bulk_upsert_students(db, code=code, admin_key=admin_key, rows=rows)
    except RecordbookError as exc:
        raise_http_error(exc)
    logger.info('roster_upload code=%s filename=%s rows=%s', code, csv_file.filename, len(rows))
    return result.as_dict()


@router.post('/teachers', status_code=201)
def admin_add_teacher(
    code: str,
    payload: TeacherCreateRequest,
    admin_key: str | None = Depends(_admin_key),
    db: Session = Depends(get_db),
):
    try:
        teacher = add_teacher(db, code=code, admin_key=admin_key, teacher_id=payload.teacher_id, name=payload.name)
    except RecordbookError as exc:
        raise_http_error(exc)
    return serialize_teacher(teacher)


@router.delete('/teachers/{teacher_pk}')
def admin_delete_teacher(
    code: str,
    teacher_pk: int,
    admin_key: str | None = Depends(_admin_key),
    db: Session = Depends(get_db),
):
    try:
        delete_teacher(db, code=code, admin_key=admin_key, teacher_pk=teacher_pk)
    except RecordbookError as exc:
        raise_http_error(exc)
    return {'ok': True}


@router.post('/subjects')
def admin_add_subject(
    code: str,
    payload: SubjectRequest,
    admin_key: str | None = Depends(_admin_key),
    db: Session = Depends(get_db),
):
    try:
        collection = add_subject(db, code=code, admin_key=admin_key, subject=payload.subject)
    except RecordbookError as exc:
        raise_http_error(exc)
    return {'subjects': collection.subject_names}


@router.delete('/subjects')
def admin_remove_subject(
    code: str,
    payload: SubjectRequest,
    admin_key: str | None = Depends(_admin_key),
    db: Session = Depends(get_db),
):
    try:
        collection = remove_subject(db, code=code, admin_key=admin_key, subject=payload.subject)
    except RecordbookError as exc:
        raise_http_error(exc)
    return {'subjects': collection.subject_names}
