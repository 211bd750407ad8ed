from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recordbook.core.errors import ValidationError
from recordbook.domain.services.collection_service import require_admin
from recordbook.domain.services.party_service import ensure_subject_records, find_student_by_card
from recordbook.models import Student


logger = logging.getLogger(__name__)

# Header aliases accepted in roster uploads, Korean school exports first.
GRADE_HEADERS = ('학년', 'grade', 'Grade')
KLASS_HEADERS = ('반', 'class', 'klass', 'Class')
NUMBER_HEADERS = ('번호', 'number', 'No', 'num')
NAME_HEADERS = ('이름', 'name', 'Name')
CARD_HEADERS = ('학생증코드', 'studentCardCode', 'card', 'code')


@dataclass
class RosterRow:
    name: str
    student_card_code: str
    grade: int | None = None
    klass: int | None = None
    number: int | None = None
    line: int | None = None


@dataclass
class RosterImportResult:
    created: int = 0
    updated: int = 0
    records_created: int = 0
    skipped: list[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'created': self.created,
            'updated': self.updated,
            'records_created': self.records_created,
            'skipped': list(self.skipped),
        }


def _first_value(raw: dict, headers: Iterable[str]) -> str:
    for header in headers:
        value = raw.get(header)
        if value is not None and str(value).strip() != '':
            return str(value).strip()
    return ''


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_roster_csv(file_bytes: bytes) -> list[RosterRow]:
    try:
        text = file_bytes.decode('utf-8-sig')
    except UnicodeDecodeError as exc:
        raise ValidationError('Roster CSV must be UTF-8 encoded') from exc
    reader = csv.DictReader(io.StringIO(text), skipinitialspace=True)
    if reader.fieldnames:
        reader.fieldnames = [str(item or '').strip() for item in reader.fieldnames]

    rows: list[RosterRow] = []
    for index, raw in enumerate(reader, start=2):
        if not raw or not any(str(value or '').strip() for value in raw.values() if isinstance(value, str)):
            continue
        rows.append(
            RosterRow(
                name=_first_value(raw, NAME_HEADERS),
                student_card_code=_first_value(raw, CARD_HEADERS),
                grade=_parse_int(_first_value(raw, GRADE_HEADERS)),
                klass=_parse_int(_first_value(raw, KLASS_HEADERS)),
                number=_parse_int(_first_value(raw, NUMBER_HEADERS)),
                line=index,
            )
        )
    return rows


def bulk_upsert_students(
    db: Session,
    *,
    code: str,
    admin_key: str | None,
    rows: Iterable[RosterRow],
) -> RosterImportResult:
    """Upsert each roster row on its own commit.

    Malformed rows are skipped and a row that fails to persist is rolled back
    alone, so rows committed before it stay in place.
    """
    collection = require_admin(db, code=code, admin_key=admin_key)
    collection_code = collection.code
    result = RosterImportResult()

    for position, row in enumerate(rows, start=1):
        line = row.line or position
        name = (row.name or '').strip()
        card = (row.student_card_code or '').strip()
        if not name or not card:
            result.skipped.append({'line': line, 'reason': 'name and student_card_code are required'})
            continue

        try:
            student = find_student_by_card(db, collection_code=collection_code, student_card_code=card)
            if student:
                student.grade = row.grade
                student.klass = row.klass
                student.number = row.number
                student.name = name
                is_new = False
            else:
                student = Student(
                    collection_code=collection_code,
                    grade=row.grade,
                    klass=row.klass,
                    number=row.number,
                    name=name,
                    student_card_code=card,
                )
                db.add(student)
                db.flush()
                is_new = True
            records_created = ensure_subject_records(db, collection=collection, student=student)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning('roster_row_failed code=%s line=%s error=%s', collection_code, line, exc)
            result.skipped.append({'line': line, 'reason': str(exc)})
            continue

        if is_new:
            result.created += 1
        else:
            result.updated += 1
        result.records_created += records_created

    logger.info(
        'roster_import_done code=%s created=%s updated=%s skipped=%s',
        collection_code,
        result.created,
        result.updated,
        len(result.skipped),
    )
    return result
