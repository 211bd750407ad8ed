from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from recordbook.core.errors import RecordbookError
from recordbook.core.router_guard import raise_http_error
from recordbook.db import get_db
from recordbook.domain.services.collection_service import create_collection, join_as_student, join_as_teacher
from recordbook.domain.services.listing_service import list_records
from recordbook.domain.services.record_service import create_record, serialize_record
from recordbook.route_logging import EndpointNameRoute
from recordbook.schemas import CollectionCreateRequest, RecordCreateRequest, StudentJoinRequest, TeacherJoinRequest


router = APIRouter(prefix='/api/collections', tags=['Collections'], route_class=EndpointNameRoute)


def _identity_payload(identity) -> dict:
    return {
        'collection_code': identity.collection_code,
        'viewer_type': identity.viewer_type,
        'viewer_key': identity.viewer_key,
        'display_name': identity.display_name,
    }


@router.post('', status_code=201)
def create_collection_endpoint(payload: CollectionCreateRequest, db: Session = Depends(get_db)):
    try:
        row = create_collection(
            db,
            code=payload.code,
            name=payload.name,
            admin_key=payload.admin_key,
            subjects=payload.subjects,
        )
    except RecordbookError as exc:
        raise_http_error(exc)
    return {'code': row.code, 'name': row.name, 'subjects': row.subject_names}


@router.post('/{code}/join/student')
def join_student_endpoint(code: str, payload: StudentJoinRequest, db: Session = Depends(get_db)):
    try:
        identity = join_as_student(db, code=code, student_card_code=payload.student_card_code)
    except RecordbookError as exc:
        raise_http_error(exc)
    return _identity_payload(identity)


@router.post('/{code}/join/teacher')
def join_teacher_endpoint(code: str, payload: TeacherJoinRequest, db: Session = Depends(get_db)):
    try:
        identity = join_as_teacher(db, code=code, teacher_id=payload.teacher_id)
    except RecordbookError as exc:
        raise_http_error(exc)
    return _identity_payload(identity)


@router.get('/{code}/records')
def list_records_endpoint(
    code: str,
    viewer_type: str = Query(default='student'),
    viewer_key: str = Query(default=''),
    db: Session = Depends(get_db),
):
    try:
        items = list_records(db, code=code, viewer_type=viewer_type, viewer_key=viewer_key)
    except RecordbookError as exc:
        raise_http_error(exc)
    return {'items': items, 'viewer_type': viewer_type}


@router.post('/{code}/records', status_code=201)
def create_record_endpoint(code: str, payload: RecordCreateRequest, db: Session = Depends(get_db)):
    try:
        record = create_record(
            db,
            collection_code=code,
            student_id=payload.student_id,
            subject=payload.subject,
            initial_content=payload.content,
            editor=payload.editor,
        )
    except RecordbookError as exc:
        raise_http_error(exc)
    return serialize_record(record)
