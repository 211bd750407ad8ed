from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from recordbook.core.errors import RecordbookError
from recordbook.core.router_guard import raise_http_error
from recordbook.db import get_db
from recordbook.domain.services.listing_service import open_record
from recordbook.domain.services.record_service import serialize_record, submit_edit
from recordbook.route_logging import EndpointNameRoute
from recordbook.schemas import RecordEditRequest


router = APIRouter(prefix='/api/records', tags=['Records'], route_class=EndpointNameRoute)


@router.get('/{record_id}')
def record_detail(
    record_id: int,
    viewer_type: str = Query(default=''),
    viewer_key: str = Query(default=''),
    db: Session = Depends(get_db),
):
    try:
        record = open_record(db, record_id=record_id, viewer_type=viewer_type, viewer_key=viewer_key)
    except RecordbookError as exc:
        raise_http_error(exc)
    return serialize_record(record)


@router.post('/{record_id}/edit')
def record_edit(record_id: int, payload: RecordEditRequest, db: Session = Depends(get_db)):
    try:
        record = submit_edit(
            db,
            record_id=record_id,
            new_content=payload.content,
            note=payload.note,
            editor_name=payload.modified_by,
            expected_version=payload.expected_version,
        )
    except RecordbookError as exc:
        raise_http_error(exc)
    return serialize_record(record)
